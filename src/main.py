"""
===============================================================================
CONIC ORBIT PROPAGATOR - Main Entry Point
===============================================================================
Headless driver for the orbit animation engine.

Builds a session from config/orbit_config.yaml (plus command-line
overrides), plays it back at the configured frame rate and writes:

    output/trajectory_table.csv   -- the sampled conic
    output/telemetry.csv          -- per-frame interpolated state
    output/plots/*.png            -- orbit and time-history figures
    output/simulation.log         -- run log

Dependencies:
    numpy, pandas, matplotlib, pyyaml
    Install: pip install -e .

Usage:
    python src/main.py
    python src/main.py --body Mars --conic hyperbola --eccentricity 2.0
    python src/main.py --duration 30 --time-scale sec-equals-1hour
===============================================================================
"""

import sys
import os
import argparse
import time
import logging
from pathlib import Path
from datetime import datetime

import yaml

# ---------------------------------------------------------------------------
# Path setup: ensure all project modules are importable
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))
DEFAULT_CONFIG_PATH = str(PROJECT_ROOT.parent / 'config' / 'orbit_config.yaml')

from core.constants import TIME_SCALES
from simulation.sim_engine import OrbitAnimationEngine
from visualization.orbit_plots import plot_orbit_3d, plot_perifocal_table, plot_state_history

logger = logging.getLogger('ORBIT_MAIN')


def load_config(config_path: str = None) -> dict:
    """
    Load session configuration from a YAML file.

    Args:
        config_path: Path to YAML config. Defaults to config/orbit_config.yaml

    Returns:
        Dictionary of configuration sections (empty if the file is empty)
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f) or {}
    return config


def setup_logging(output_dir: str, verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(os.path.join(output_dir, 'simulation.log'), mode='w'),
        ],
    )


def apply_overrides(config: dict, args: argparse.Namespace) -> dict:
    """Layer command-line overrides onto the loaded configuration."""
    orbit = config.setdefault('orbit', {}) or {}
    animation = config.setdefault('animation', {}) or {}
    config['orbit'] = orbit
    config['animation'] = animation

    if args.body is not None:
        config['central_body'] = {'name': args.body}
    if args.conic is not None:
        orbit['conic_section'] = args.conic
        if args.eccentricity is None:
            orbit.pop('eccentricity', None)
    if args.semimajor_axis is not None:
        orbit['semimajor_axis'] = args.semimajor_axis
    if args.eccentricity is not None:
        orbit['eccentricity'] = args.eccentricity
    if args.true_anomaly is not None:
        orbit['true_anomaly_deg'] = args.true_anomaly
    if args.time_scale is not None:
        animation['time_scale'] = args.time_scale
    if args.duration is not None:
        animation['duration'] = args.duration
    return config


def run_session(config: dict, output_dir: str, make_plots: bool = True):
    """
    Build, run and export one session.

    Returns:
        (engine, telemetry DataFrame)
    """
    engine = OrbitAnimationEngine(config)
    engine.initialize()

    table_path = os.path.join(output_dir, 'trajectory_table.csv')
    engine.table.to_dataframe().to_csv(table_path)
    logger.info("Trajectory table saved to %s", table_path)

    telemetry = engine.run()

    output_cfg = config.get('output') or {}
    telemetry_path = os.path.join(output_dir, output_cfg.get('telemetry_csv', 'telemetry.csv'))
    if not telemetry.empty:
        engine.save_telemetry(telemetry_path)

    if make_plots:
        plots_dir = os.path.join(output_dir, 'plots')
        os.makedirs(plots_dir, exist_ok=True)
        table = engine.table
        valid = table.positions[table.valid_mask]
        body = engine.units.body.name

        plot_orbit_3d(
            valid @ engine.rotation.T,
            engine.units.body_radius_cdu,
            f"{engine.elements.conic_section.value.title()} about {body}",
            os.path.join(plots_dir, 'orbit_3d.png'),
            current_position=engine.readout().position_ijk,
            body_name=body,
        )
        plot_perifocal_table(
            table.positions, table.valid_mask, engine.units.body_radius_cdu,
            'Trajectory table (perifocal frame)',
            os.path.join(plots_dir, 'trajectory_table.png'),
        )
        if not telemetry.empty:
            plot_state_history(
                telemetry['time_s'].to_numpy(),
                [telemetry['radius'].to_numpy(), telemetry['speed'].to_numpy(),
                 telemetry['true_anomaly_deg'].to_numpy()],
                ['radius [CDU]', 'speed [CDU/CTU]', 'true anomaly [deg]'],
                'Playback telemetry',
                os.path.join(plots_dir, 'telemetry.png'),
            )
        logger.info("Plots saved to %s", plots_dir)

    return engine, telemetry


def main():
    """
    Main entry point. Parses command line arguments and runs one session.
    """
    parser = argparse.ArgumentParser(
        description='Keplerian conic orbit propagation and playback',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                                  Default Hohmann transfer ellipse
  python main.py --conic hyperbola                Hyperbolic flyby (e = 1.5)
  python main.py --body moon --semimajor-axis 5   Lunar ellipse
        """
    )

    parser.add_argument('--config', type=str, default=None,
                        help='Path to orbit config YAML')
    parser.add_argument('--output', type=str, default=None,
                        help='Output directory (default: from config, else output/)')
    parser.add_argument('--body', type=str, default=None,
                        help='Central body name (Earth, Mars, sun2, ...)')
    parser.add_argument('--conic', choices=['ellipse', 'hyperbola'], default=None,
                        help='Conic section')
    parser.add_argument('--semimajor-axis', type=float, default=None,
                        help='|a| in canonical distance units')
    parser.add_argument('--eccentricity', type=float, default=None,
                        help='Eccentricity')
    parser.add_argument('--true-anomaly', type=float, default=None,
                        help='Starting true anomaly (deg)')
    parser.add_argument('--time-scale', choices=list(TIME_SCALES), default=None,
                        help='Time-scale menu choice')
    parser.add_argument('--duration', type=float, default=None,
                        help='Real seconds of playback')
    parser.add_argument('--no-plots', action='store_true',
                        help='Skip figure generation')
    parser.add_argument('--verbose', action='store_true',
                        help='Debug logging')

    args = parser.parse_args()

    config = load_config(args.config)
    config = apply_overrides(config, args)

    output_dir = args.output or (config.get('output') or {}).get('directory', 'output')
    os.makedirs(output_dir, exist_ok=True)
    setup_logging(output_dir, args.verbose)
    logger.info("Configuration loaded from: %s", args.config or DEFAULT_CONFIG_PATH)

    print("=" * 70)
    print("  CONIC ORBIT PROPAGATOR")
    print(f"  Start time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 70)

    start = time.time()
    engine, telemetry = run_session(config, output_dir, make_plots=not args.no_plots)
    summary = engine.get_summary()
    readout = engine.readout()

    print("\n" + "=" * 70)
    print("  SESSION COMPLETE")
    for key, value in summary.items():
        if isinstance(value, float):
            print(f"    {key:<25s}: {value:.4f}")
        else:
            print(f"    {key:<25s}: {value}")
    print(f"    {'final true anomaly [deg]':<25s}: {readout.true_anomaly_deg:.2f}")
    if readout.radius_km is not None:
        print(f"    {'final radius [km]':<25s}: {readout.radius_km:.1f}")
        print(f"    {'final speed [km/s]':<25s}: {readout.speed_km_s:.4f}")
        print(f"    {'final time [' + readout.time_display_unit + ']':<25s}: "
              f"{readout.time_since_periapsis_display:.3f}")
    print(f"  Wall time: {time.time() - start:.2f} s   Frames: {len(telemetry)}")
    print(f"  Outputs saved to: {output_dir}")
    print("=" * 70)

    if readout.halted:
        print("  Flyby complete: time since periapsis is unbounded.")


if __name__ == '__main__':
    main()
