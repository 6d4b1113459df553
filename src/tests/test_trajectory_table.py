"""
===============================================================================
CONIC ORBIT PROPAGATOR - Trajectory Table Test Suite
===============================================================================
Tests for the sampled conic: fixed cardinality, the Lagrange determinant on
every entry, the pinned -180/+180 deg seam, hyperbola valid mask, time
ordering, immutability, idempotent rebuilds, bracket lookup and
non-convergence reporting.
===============================================================================
"""

import sys
import os
import logging

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from core.constants import DEFAULT_TABLE_SIZE, DEG2RAD
from dynamics.orbital_elements import OrbitalElements
from simulation.trajectory_table import TrajectorySample, build_trajectory_table


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def hohmann():
    return OrbitalElements(3.822, 0.7318)


@pytest.fixture
def ellipse_table(hohmann):
    return build_trajectory_table(hohmann)


@pytest.fixture
def hyperbola_table():
    return build_trajectory_table(OrbitalElements(-3.822, 1.5))


ELLIPSE_ECCENTRICITIES = [0.0, 0.1, 0.5, 0.7318, 0.9]
HYPERBOLA_ECCENTRICITIES = [1.2, 1.5, 2.5, 5.0]


# =============================================================================
# Test: Structure
# =============================================================================

class TestTableStructure:

    def test_default_size(self, ellipse_table):
        assert DEFAULT_TABLE_SIZE == 181
        assert len(ellipse_table) == 181
        assert ellipse_table.positions.shape == (181, 3)
        assert ellipse_table.velocities.shape == (181, 3)

    def test_ellipse_all_valid(self, ellipse_table):
        assert ellipse_table.valid_count == 181
        assert ellipse_table.first_valid == 0
        assert ellipse_table.last_valid == 180

    def test_custom_size(self, hohmann):
        table = build_trajectory_table(hohmann, size=37)
        assert len(table) == 37

    def test_size_too_small(self, hohmann):
        with pytest.raises(ValueError):
            build_trajectory_table(hohmann, size=1)

    def test_times_ascending(self, ellipse_table, hyperbola_table):
        for table in (ellipse_table, hyperbola_table):
            valid_times = table.times[table.valid_mask]
            assert np.all(np.diff(valid_times) > 0.0)

    def test_ellipse_spans_one_period(self, ellipse_table, hohmann):
        assert_allclose(ellipse_table.end_time - ellipse_table.start_time,
                        hohmann.period, atol=1e-4)
        assert_allclose(ellipse_table.period, hohmann.period)

    def test_periapsis_sample(self, ellipse_table, hohmann):
        sample = ellipse_table[90]
        assert sample.time_of_flight == 0.0
        assert_allclose(sample.true_anomaly_deg, 0.0, atol=1e-12)
        assert_allclose(sample.position(hohmann.rp, hohmann.vp), [hohmann.rp, 0.0, 0.0])

    def test_read_only(self, ellipse_table):
        with pytest.raises(ValueError):
            ellipse_table.times[0] = 1.0
        with pytest.raises(ValueError):
            ellipse_table.positions[0, 0] = 1.0


# =============================================================================
# Test: Lagrange determinant
# =============================================================================

class TestLagrangeDeterminant:

    @pytest.mark.parametrize("e", ELLIPSE_ECCENTRICITIES)
    def test_ellipse_entries(self, e):
        table = build_trajectory_table(OrbitalElements(3.822, e))
        det = table.lagrange_determinants()
        assert np.max(np.abs(det - 1.0)) < 1e-6

    @pytest.mark.parametrize("e", HYPERBOLA_ECCENTRICITIES)
    def test_hyperbola_entries(self, e):
        table = build_trajectory_table(OrbitalElements(-3.822, e))
        det = table.lagrange_determinants()[table.valid_mask]
        assert np.max(np.abs(det - 1.0)) < 1e-6

    def test_sample_property_matches_column(self, ellipse_table):
        sample = ellipse_table[17]
        assert_allclose(sample.lagrange_determinant, ellipse_table.lagrange_determinants()[17])


# =============================================================================
# Test: True anomaly column
# =============================================================================

class TestTrueAnomalyColumn:

    @pytest.mark.parametrize("e", ELLIPSE_ECCENTRICITIES)
    def test_seam_pinned(self, e):
        table = build_trajectory_table(OrbitalElements(3.822, e))
        assert table.true_anomalies_deg[0] == -180.0
        assert table.true_anomalies_deg[-1] == 180.0

    def test_tracks_grid(self, ellipse_table):
        grid = np.linspace(-180.0, 180.0, 181)
        assert np.max(np.abs(ellipse_table.true_anomalies_deg - grid)) < 0.5

    def test_consistent_with_orbit_equation(self, ellipse_table, hohmann):
        """Stored angle and solved position lie on the same conic point."""
        nu = ellipse_table.true_anomalies_deg * DEG2RAD
        r_expected = hohmann.p / (1.0 + hohmann.e * np.cos(nu))
        r_table = np.linalg.norm(ellipse_table.positions, axis=1)
        assert_allclose(r_table, r_expected, rtol=1e-8)

    def test_ascending(self, ellipse_table):
        assert np.all(np.diff(ellipse_table.true_anomalies_deg) > 0.0)


# =============================================================================
# Test: Hyperbola valid mask
# =============================================================================

class TestHyperbolaMask:

    @pytest.mark.parametrize("e", HYPERBOLA_ECCENTRICITIES)
    def test_mask_matches_margin(self, e):
        table = build_trajectory_table(OrbitalElements(-3.822, e))
        grid = np.linspace(-180.0, 180.0, 181) * DEG2RAD
        limit = 0.5 * (np.pi + 2.0 * np.arcsin(1.0 / e)) - np.pi / 10
        assert_array_equal(table.valid_mask, np.abs(grid) < limit)

    def test_invalid_slots_are_nan(self, hyperbola_table):
        invalid = ~hyperbola_table.valid_mask
        assert invalid[0] and invalid[-1]
        assert np.all(np.isnan(hyperbola_table.times[invalid]))
        assert np.all(np.isnan(hyperbola_table.positions[invalid, :2]))
        sample = hyperbola_table[0]
        assert not sample.valid
        assert np.isnan(sample.f)

    def test_no_period(self, hyperbola_table):
        assert hyperbola_table.period is None
        assert not hyperbola_table.is_ellipse

    def test_symmetric_valid_run(self, hyperbola_table):
        assert hyperbola_table.first_valid == 180 - hyperbola_table.last_valid
        assert_allclose(hyperbola_table.start_time, -hyperbola_table.end_time, rtol=1e-6)


# =============================================================================
# Test: Idempotence
# =============================================================================

class TestIdempotentRebuild:

    @pytest.mark.parametrize("a, e", [(3.822, 0.7318), (-3.822, 1.5)])
    def test_rebuild_identical(self, a, e):
        el = OrbitalElements(a, e)
        first = build_trajectory_table(el)
        second = build_trajectory_table(el)
        assert_array_equal(first.times, second.times)
        assert_array_equal(first.true_anomalies_deg, second.true_anomalies_deg)
        assert_array_equal(first.f, second.f)
        assert_array_equal(first.g, second.g)
        assert_array_equal(first.fdot, second.fdot)
        assert_array_equal(first.gdot, second.gdot)
        assert_array_equal(first.valid_mask, second.valid_mask)

    def test_orientation_does_not_matter(self):
        a = build_trajectory_table(OrbitalElements.from_degrees(3.822, 0.7318, 0.0, -28.0, -81.0))
        b = build_trajectory_table(OrbitalElements(3.822, 0.7318))
        assert_array_equal(a.positions, b.positions)


# =============================================================================
# Test: Lookup and container protocol
# =============================================================================

class TestLookup:

    def test_locate_on_sample(self, ellipse_table):
        assert ellipse_table.locate(ellipse_table.times[10]) == 10

    def test_locate_between_samples(self, ellipse_table):
        t = 0.5 * (ellipse_table.times[40] + ellipse_table.times[41])
        assert ellipse_table.locate(t) == 40

    def test_locate_clamps(self, ellipse_table, hyperbola_table):
        assert ellipse_table.locate(-1e9) == 0
        assert ellipse_table.locate(1e9) == 179
        assert hyperbola_table.locate(-1e9) == hyperbola_table.first_valid
        assert hyperbola_table.locate(1e9) == hyperbola_table.last_valid - 1

    def test_getitem_and_iter(self, ellipse_table):
        samples = list(ellipse_table)
        assert len(samples) == 181
        assert isinstance(samples[0], TrajectorySample)
        assert ellipse_table[-1].index == 180
        with pytest.raises(IndexError):
            ellipse_table[181]

    def test_dataframe(self, hyperbola_table):
        df = hyperbola_table.to_dataframe()
        assert len(df) == 181
        assert df.index.name == 'sample'
        assert int(df['valid'].sum()) == hyperbola_table.valid_count
        assert {'time_of_flight', 'true_anomaly_deg', 'lagrange_determinant'} <= set(df.columns)


# =============================================================================
# Test: Logging and convergence reporting
# =============================================================================

class TestReporting:

    def test_rebuild_logged(self, hohmann, caplog):
        with caplog.at_level(logging.INFO, logger='simulation.trajectory_table'):
            build_trajectory_table(hohmann)
        assert any('Trajectory table rebuilt' in rec.message for rec in caplog.records)

    def test_default_build_converges(self, ellipse_table, hyperbola_table):
        assert ellipse_table.non_converged_count == 0
        assert hyperbola_table.non_converged_count == 0

    def test_non_convergence_is_a_warning(self, hohmann, caplog):
        with caplog.at_level(logging.WARNING, logger='simulation.trajectory_table'):
            table = build_trajectory_table(hohmann, max_iterations=1)
        assert table.non_converged_count > 0
        assert table.valid_count == 181
        warnings = [rec for rec in caplog.records if rec.levelno == logging.WARNING]
        assert len(warnings) == table.non_converged_count
        assert np.max(np.abs(table.lagrange_determinants() - 1.0)) < 1e-6
