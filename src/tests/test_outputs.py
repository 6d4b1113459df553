"""
===============================================================================
CONIC ORBIT PROPAGATOR - Configuration and Output Test Suite
===============================================================================
Tests for the YAML configuration, command-line overrides and the files a
headless session writes (table CSV, telemetry CSV, figures).
===============================================================================
"""

import sys
import os
import argparse
import logging

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pandas as pd
import pytest

import main
from main import apply_overrides, load_config, run_session
from visualization.orbit_plots import plot_state_history


def make_args(**overrides):
    fields = dict(body=None, conic=None, semimajor_axis=None, eccentricity=None,
                  true_anomaly=None, time_scale=None, duration=None)
    fields.update(overrides)
    return argparse.Namespace(**fields)


class TestConfig:

    def test_default_config_file(self):
        config = load_config()
        assert config['central_body']['name'] == 'Earth'
        assert config['orbit']['semimajor_axis'] == pytest.approx(3.822)
        assert config['animation']['table_size'] == 181

    def test_empty_config_file(self, tmp_path):
        path = tmp_path / 'empty.yaml'
        path.write_text('')
        assert load_config(str(path)) == {}

    def test_overrides(self):
        config = {'orbit': {'conic_section': 'ellipse', 'eccentricity': 0.7318}}
        args = make_args(body='Mars', conic='hyperbola', duration=5.0)
        out = apply_overrides(config, args)
        assert out['central_body'] == {'name': 'Mars'}
        assert out['orbit']['conic_section'] == 'hyperbola'
        assert 'eccentricity' not in out['orbit']
        assert out['animation']['duration'] == 5.0

    def test_overrides_keep_explicit_eccentricity(self):
        args = make_args(conic='hyperbola', eccentricity=2.0)
        out = apply_overrides({}, args)
        assert out['orbit']['eccentricity'] == 2.0


class TestSessionOutputs:

    def test_run_session_writes_files(self, tmp_path):
        config = {'animation': {'duration': 0.5}}
        engine, telemetry = run_session(config, str(tmp_path), make_plots=True)

        table = pd.read_csv(tmp_path / 'trajectory_table.csv', index_col='sample')
        assert len(table) == 181
        assert len(telemetry) == 30
        assert (tmp_path / 'telemetry.csv').exists()
        for name in ('orbit_3d.png', 'trajectory_table.png', 'telemetry.png'):
            assert (tmp_path / 'plots' / name).stat().st_size > 0

    def test_flyby_session_without_plots(self, tmp_path):
        config = {'orbit': {'conic_section': 'hyperbola'}, 'animation': {'duration': 60.0}}
        engine, telemetry = run_session(config, str(tmp_path), make_plots=False)
        assert engine.readout().halted
        assert not (tmp_path / 'plots').exists()
        table = pd.read_csv(tmp_path / 'trajectory_table.csv')
        assert int(table['valid'].sum()) == engine.table.valid_count

    def test_state_history_rejects_more_than_four_signals(self, tmp_path):
        times = [0.0, 1.0]
        with pytest.raises(ValueError):
            plot_state_history(times, [times] * 5, list('abcde'), 'too many',
                               str(tmp_path / 'history.png'))
        assert not (tmp_path / 'history.png').exists()


class TestCommandLine:

    def test_config_path_logged_after_logging_setup(self, tmp_path, monkeypatch, caplog):
        seen_at_setup = []

        def fake_setup_logging(output_dir, verbose=False):
            seen_at_setup.extend(
                rec for rec in caplog.records if 'Configuration loaded' in rec.getMessage()
            )

        monkeypatch.setattr(main, 'setup_logging', fake_setup_logging)
        monkeypatch.setattr(sys, 'argv', [
            'main.py', '--output', str(tmp_path), '--no-plots', '--duration', '0.2',
        ])
        with caplog.at_level(logging.INFO, logger='ORBIT_MAIN'):
            main.main()

        assert seen_at_setup == []
        loaded = [rec for rec in caplog.records if 'Configuration loaded' in rec.getMessage()]
        assert len(loaded) == 1
        assert main.DEFAULT_CONFIG_PATH in loaded[0].getMessage()
        assert (tmp_path / 'trajectory_table.csv').exists()
