"""
===============================================================================
CONIC ORBIT PROPAGATOR - Orbit Animation Engine
===============================================================================
Session orchestrator.  Owns the element set, the trajectory table, the
simulation clock and the interpolator, and exposes the two paths that
touch them:

    EDIT PATH    -- element, orientation, body, conic and time-scale
                    changes.  Shape edits (a, e) halt playback, update the
                    derived scalars at once and mark the table dirty; the
                    table is rebuilt at the next commit point (end of a
                    drag gesture, or the next play()).
    ANIMATE PATH -- step() advances the clock by one tick, interpolates the
                    table and records telemetry.  run() drives step() at a
                    fixed frame rate for a headless session.

Only the edit path writes the table and the bracket, and it pauses
playback first, so the animate path never reads a half-built table.

Readouts combine the interpolated state with closed-form anomalies and
report canonical and physical values in perifocal, inertial and local
(UVW) frames.  Telemetry is accumulated per tick and returned as a pandas
DataFrame.
===============================================================================
"""

import copy
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

import numpy as np
import pandas as pd

from core.constants import (
    DEFAULT_AOP_DEG,
    DEFAULT_CENTRAL_BODY,
    DEFAULT_CONIC_SECTION,
    DEFAULT_ELLIPSE_ECCENTRICITY,
    DEFAULT_FRAME_RATE,
    DEFAULT_HYPERBOLA_ECCENTRICITY,
    DEFAULT_INCLINATION_DEG,
    DEFAULT_LAN_DEG,
    DEFAULT_SEMIMAJOR_AXIS,
    DEFAULT_TABLE_SIZE,
    DEFAULT_TIME_SCALE_CHOICE,
    DEG2RAD,
    HYPERBOLA_ASYMPTOTE_MARGIN,
    RAD2DEG,
    UnitSystem,
    allowed_time_scales,
    get_central_body,
    get_time_scale,
)
from core.frames import perifocal_to_inertial, perifocal_to_local
from dynamics.anomaly import (
    flyby_time_span,
    kepler_anomalies,
    perifocal_state,
    time_since_periapsis,
    wrap_anomaly,
)
from dynamics.orbital_elements import ConicSection, Ellipse, OrbitalElements
from simulation.animation import AnimationFrame, AnimationInterpolator, SimulationClock
from simulation.trajectory_table import TrajectoryTable, build_trajectory_table

logger = logging.getLogger(__name__)


# Persisted setting key -> (config section, config key)
SETTINGS_KEYS = {
    'central-body': ('central_body', 'name'),
    'conic-section': ('orbit', 'conic_section'),
    'semimajor-axis': ('orbit', 'semimajor_axis'),
    'eccentricity': ('orbit', 'eccentricity'),
    'longitude-of-ascending-node': ('orbit', 'longitude_of_ascending_node_deg'),
    'inclination': ('orbit', 'inclination_deg'),
    'argument-of-periapsis': ('orbit', 'argument_of_periapsis_deg'),
    'timeScaleMenuChoice': ('animation', 'time_scale'),
    'trueAnomaly360': ('animation', 'true_anomaly_360'),
}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def _section(config: Mapping[str, Any], name: str) -> Dict[str, Any]:
    value = config.get(name) or {}
    if isinstance(value, str):
        # ``central_body: Earth`` shorthand
        return {'name': value}
    return dict(value)


@dataclass(frozen=True)
class OrbitReadout:
    """
    Everything the display layer shows for the current instant.

    Values that are undefined at the current position (past a hyperbola's
    asymptote, or the period of a hyperbola) are None.  Vectors are
    3-element arrays; distances in CDU, speeds in CDU/CTU, times in CTU
    unless the field name says otherwise.
    """
    time_since_periapsis: Optional[float]
    time_since_periapsis_s: Optional[float]
    time_since_periapsis_display: Optional[float]
    time_display_unit: str
    true_anomaly_deg: float
    eccentric_anomaly_deg: Optional[float]
    hyperbolic_anomaly_deg: Optional[float]
    mean_anomaly_deg: Optional[float]
    radius: Optional[float]
    speed: Optional[float]
    radius_km: Optional[float]
    speed_km_s: Optional[float]
    circular_speed: Optional[float]
    escape_speed: Optional[float]
    q_ratio: Optional[float]
    c3: Optional[float]
    mean_motion_deg: float
    period: Optional[float]
    period_s: Optional[float]
    specific_energy: float
    specific_energy_km2_s2: float
    angular_momentum: float
    angular_momentum_km2_s: float
    periapsis_valid: bool
    halted: bool
    position_pqw: Optional[np.ndarray]
    velocity_pqw: Optional[np.ndarray]
    position_ijk: Optional[np.ndarray]
    velocity_ijk: Optional[np.ndarray]
    position_uvw: Optional[np.ndarray]
    velocity_uvw: Optional[np.ndarray]


class OrbitAnimationEngine:
    """
    Interactive conic-orbit session.

    Parameters
    ----------
    config : dict
        Session configuration with optional sections:
            - 'central_body' : {'name': str}  (or just the name)
            - 'orbit'        : conic_section, semimajor_axis, eccentricity,
                               longitude_of_ascending_node_deg,
                               inclination_deg, argument_of_periapsis_deg,
                               true_anomaly_deg
            - 'animation'    : time_scale, table_size, frame_rate,
                               duration, true_anomaly_360
        Missing keys fall back to the defaults in core.constants.

    Attributes
    ----------
    units : UnitSystem
    elements : OrbitalElements
    table : TrajectoryTable
    clock : SimulationClock
    interpolator : AnimationInterpolator
    rotation : np.ndarray
        Current PQW -> IJK direction cosine matrix.
    dirty : bool
        True while the table lags behind an uncommitted shape edit.
    playing : bool
    telemetry : list of dict
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        self.config: Dict[str, Any] = config or {}

        anim = _section(self.config, 'animation')
        self.table_size: int = int(anim.get('table_size', DEFAULT_TABLE_SIZE))
        self.frame_rate: float = float(anim.get('frame_rate', DEFAULT_FRAME_RATE))
        self.duration: Optional[float] = anim.get('duration')
        self.time_scale_choice: str = anim.get('time_scale', DEFAULT_TIME_SCALE_CHOICE)
        self.true_anomaly_360: bool = _as_bool(anim.get('true_anomaly_360', False))
        self.margin: float = HYPERBOLA_ASYMPTOTE_MARGIN

        if self.table_size < 2:
            raise ValueError(f"table_size must be at least 2, got {self.table_size}")
        if self.frame_rate <= 0.0:
            raise ValueError(f"frame_rate must be positive, got {self.frame_rate}")

        # Populated by initialize()
        self.units: Optional[UnitSystem] = None
        self.elements: Optional[OrbitalElements] = None
        self.table: Optional[TrajectoryTable] = None
        self.clock: Optional[SimulationClock] = None
        self.interpolator: Optional[AnimationInterpolator] = None
        self.rotation: np.ndarray = np.eye(3)

        self.dirty = False
        self.playing = False
        self.off_trajectory = False
        self.periapsis_valid = True
        self._scrub_true_anomaly_deg = 0.0
        # Exact state for a scrub between a flyby's sampled run and its asymptote
        self._exact_frame: Optional[AnimationFrame] = None

        self.telemetry: List[Dict[str, Any]] = []
        self.settings_passthrough: Dict[str, Any] = {}
        self.elapsed_real: float = 0.0
        self.frame_count = 0
        self.rebuild_count = 0
        self._wall_start: Optional[float] = None

        logger.info(
            "OrbitAnimationEngine created.  table_size=%d  frame_rate=%.1f fps",
            self.table_size, self.frame_rate,
        )

    # =========================================================================
    # INITIALIZATION
    # =========================================================================

    def initialize(self) -> None:
        """
        Build the unit system, element set, table and clock from the
        configuration and place the body at the configured true anomaly.
        """
        body_cfg = _section(self.config, 'central_body')
        self.units = UnitSystem(body_cfg.get('name', DEFAULT_CENTRAL_BODY))

        orbit = _section(self.config, 'orbit')
        conic_section = ConicSection.from_name(
            orbit.get('conic_section', DEFAULT_CONIC_SECTION)
        )
        a = abs(float(orbit.get('semimajor_axis', DEFAULT_SEMIMAJOR_AXIS)))
        if conic_section is ConicSection.ELLIPSE:
            e = float(orbit.get('eccentricity', DEFAULT_ELLIPSE_ECCENTRICITY))
        else:
            a = -a
            e = float(orbit.get('eccentricity', DEFAULT_HYPERBOLA_ECCENTRICITY))

        self.elements = OrbitalElements.from_degrees(
            a, e,
            float(orbit.get('longitude_of_ascending_node_deg', DEFAULT_LAN_DEG)),
            float(orbit.get('inclination_deg', DEFAULT_INCLINATION_DEG)),
            float(orbit.get('argument_of_periapsis_deg', DEFAULT_AOP_DEG)),
        )
        self.rotation = perifocal_to_inertial(
            self.elements.raan, self.elements.inc, self.elements.aop
        )

        self.clock = SimulationClock(self.units.ctu)
        self.telemetry.clear()
        self.elapsed_real = 0.0
        self.frame_count = 0
        self.playing = False

        self._rebuild_table()
        self.set_true_anomaly(float(orbit.get('true_anomaly_deg', 0.0)))
        self._check_periapsis()
        self.set_time_scale(self.time_scale_choice)

        logger.info(
            "Session initialized.  %r  body=%s  %r",
            self.elements, self.units.body.name, self.units,
        )

    def _rebuild_table(self) -> None:
        self.table = build_trajectory_table(self.elements, self.table_size, self.margin)
        self.interpolator = AnimationInterpolator(self.table, self.clock)
        self.dirty = False
        self.rebuild_count += 1

    def _check_periapsis(self) -> None:
        self.periapsis_valid = not self.elements.periapsis_intersects(
            self.units.body_radius_cdu
        )
        if not self.periapsis_valid:
            logger.warning(
                "Periapsis radius %.4f CDU is inside %s (radius %.4f CDU)",
                self.elements.rp, self.units.body.name, self.units.body_radius_cdu,
            )

    # =========================================================================
    # EDIT PATH -- SHAPE
    # =========================================================================

    def set_semimajor_axis(self, a: float) -> None:
        """
        Edit |a|; the sign follows the current conic type.  Playback halts
        and the table is marked dirty until commit_elements().
        """
        a = abs(float(a)) if self.elements.is_ellipse else -abs(float(a))
        self.set_shape(a, self.elements.e)

    def set_eccentricity(self, e: float) -> None:
        """Edit e within the current conic's band; see set_semimajor_axis()."""
        self.set_shape(self.elements.a, e)

    def set_shape(self, a: float, e: float) -> None:
        """
        Replace (a, e) together.

        Raises
        ------
        EccentricityDomainError
            If the pair is outside the supported domain.  Nothing changes.
        """
        self.pause()
        self.elements.set_shape(a, e)
        self.dirty = True
        logger.debug("Shape edited: a=%.4f e=%.4f (table dirty)", a, e)

    def commit_elements(self) -> bool:
        """
        Commit point for shape edits: rebuild the table, re-synchronise at
        the current true anomaly and re-check the periapsis and time scale.

        Returns
        -------
        bool
            True if a rebuild happened.
        """
        if not self.dirty:
            return False
        nu_deg = self.current_true_anomaly_deg()
        self._rebuild_table()
        self.set_true_anomaly(nu_deg)
        self._check_periapsis()
        self.set_time_scale(self.time_scale_choice)
        return True

    def toggle_conic_section(self, eccentricity: Optional[float] = None) -> None:
        """
        Switch ellipse <-> hyperbola: flip the sign of a, take an
        eccentricity from the other band, rebuild and restart at periapsis.
        """
        self.pause()
        if self.elements.is_ellipse:
            e = DEFAULT_HYPERBOLA_ECCENTRICITY if eccentricity is None else eccentricity
        else:
            e = DEFAULT_ELLIPSE_ECCENTRICITY if eccentricity is None else eccentricity
        self.elements.set_shape(-self.elements.a, e)
        self._rebuild_table()
        self.set_true_anomaly(0.0)
        self._check_periapsis()
        self.set_time_scale(self.time_scale_choice)
        logger.info("Conic section switched to %s", self.elements.conic_section.value)

    # =========================================================================
    # EDIT PATH -- ORIENTATION, BODY, TIME SCALE
    # =========================================================================

    def set_orientation(
        self,
        raan_deg: Optional[float] = None,
        inc_deg: Optional[float] = None,
        aop_deg: Optional[float] = None,
    ) -> np.ndarray:
        """Update any of (RAAN, i, omega) in degrees; returns the new PQW->IJK matrix."""
        if raan_deg is not None:
            self.elements.raan_deg = raan_deg
        if inc_deg is not None:
            self.elements.inc_deg = inc_deg
        if aop_deg is not None:
            self.elements.aop_deg = aop_deg
        self.rotation = perifocal_to_inertial(
            self.elements.raan, self.elements.inc, self.elements.aop
        )
        return self.rotation

    def set_central_body(self, name: str) -> None:
        """Switch central body; the canonical elements are kept as they are."""
        body = get_central_body(name)
        nu_deg = self.current_true_anomaly_deg()
        self.pause()
        self.units = UnitSystem(body)
        self.clock.ctu = self.units.ctu
        self._rebuild_table()
        self.set_true_anomaly(nu_deg)
        self._check_periapsis()
        self.set_time_scale(self.time_scale_choice)
        logger.info("Central body changed to %s  %r", body.name, self.units)

    @property
    def span(self) -> float:
        """Period (ellipse) or flyby span (hyperbola) in CTU."""
        conic = self.elements.conic()
        if isinstance(conic, Ellipse):
            return conic.period
        t_start, t_end = flyby_time_span(conic, self.margin)
        return t_end - t_start

    def allowed_time_scales(self) -> List[str]:
        return allowed_time_scales(self.units.time_to_seconds(self.span))

    def set_time_scale(self, choice: str) -> str:
        """
        Select a time-scale menu entry.  A scale too fast for the current
        orbit falls back to the fastest allowed one.

        Returns
        -------
        str
            The menu entry actually in effect.

        Raises
        ------
        ValueError
            If *choice* is not a menu entry.
        """
        get_time_scale(choice)
        allowed = self.allowed_time_scales()
        if choice not in allowed:
            fallback = allowed[-1]
            logger.warning(
                "Time scale %s exceeds 10%% of the orbit span; using %s",
                choice, fallback,
            )
            choice = fallback
        self.time_scale_choice = choice
        self.clock.time_scale = get_time_scale(choice)[0]
        return choice

    # =========================================================================
    # EDIT PATH -- SCRUB
    # =========================================================================

    def set_true_anomaly(self, nu_deg: float) -> Optional[AnimationFrame]:
        """
        Jump to an explicit true anomaly (deg).

        Returns
        -------
        AnimationFrame or None
            None if *nu_deg* is past a hyperbola's asymptote; the body is
            then off the trajectory and has no state until the next scrub
            or play().  Between the last table sample and the asymptote the
            state is computed in closed form instead of interpolated.
        """
        if self.dirty:
            self._rebuild_table()
        nu = wrap_anomaly(nu_deg * DEG2RAD)
        t = time_since_periapsis(self.elements.conic(), nu)
        self._scrub_true_anomaly_deg = nu * RAD2DEG
        self._exact_frame = None
        if t is None:
            self.off_trajectory = True
            logger.info("True anomaly %.2f deg is past the asymptote", nu_deg)
            return None
        self.off_trajectory = False

        table = self.table
        if not table.is_ellipse and not table.start_time <= t <= table.end_time:
            r_pqw, v_pqw = perifocal_state(self.elements, nu)
            self.clock.set_time(t)
            self._exact_frame = AnimationFrame(t, r_pqw, v_pqw, nu * RAD2DEG)
            logger.debug(
                "True anomaly %.2f deg is outside the sampled flyby; exact state at t=%.6f CTU",
                nu_deg, t,
            )
            return self._exact_frame
        return self.interpolator.sync_to_time(t)

    def _resume_interpolation(self) -> None:
        """Hand a closed-form scrub state back to the table interpolator."""
        self._exact_frame = None
        self.interpolator.sync()

    def current_true_anomaly_deg(self) -> float:
        if self.off_trajectory or self.interpolator is None:
            return self._scrub_true_anomaly_deg
        if self._exact_frame is not None:
            return self._exact_frame.true_anomaly_deg
        return self.interpolator.current_frame().true_anomaly_deg

    # =========================================================================
    # ANIMATE PATH
    # =========================================================================

    def play(self) -> None:
        """Start playback, rebuilding first if the table is dirty."""
        if self.dirty:
            self.commit_elements()
        if self._exact_frame is not None:
            self._resume_interpolation()
        if not self.elements.is_ellipse and (self.off_trajectory or self.interpolator.halted):
            self.set_true_anomaly(0.0)
        self.playing = True

    def pause(self) -> None:
        self.playing = False

    def toggle_play(self) -> bool:
        if self.playing:
            self.pause()
        else:
            self.play()
        return self.playing

    def step(self, frame_dt: Optional[float] = None) -> Optional[AnimationFrame]:
        """
        One animation tick.

        Parameters
        ----------
        frame_dt : float, optional
            Real seconds since the previous tick; defaults to 1/frame_rate.

        Returns
        -------
        AnimationFrame or None
            None when paused.
        """
        if not self.playing or self.off_trajectory:
            return None
        if frame_dt is None:
            frame_dt = 1.0 / self.frame_rate
        if self._exact_frame is not None:
            self._resume_interpolation()

        frame = self.interpolator.advance(frame_dt)
        self.elapsed_real += frame_dt
        self.frame_count += 1
        self._log_telemetry(frame)

        if frame.halted:
            self.playing = False
        return frame

    def run(self, duration: Optional[float] = None) -> pd.DataFrame:
        """
        Headless playback for *duration* real seconds at the configured
        frame rate, or until a flyby halts.

        Parameters
        ----------
        duration : float, optional
            Real seconds to play.  Defaults to the configured duration, or
            one orbit span at the current time scale.

        Returns
        -------
        pd.DataFrame
            Telemetry recorded during the run.
        """
        if duration is None:
            duration = self.duration
        if duration is None:
            duration = self.units.time_to_seconds(self.span) / self.clock.time_scale

        n_frames = int(round(duration * self.frame_rate))
        frame_dt = 1.0 / self.frame_rate

        self._wall_start = time.time()
        logger.info(
            "Run started.  %.1f s real time, %d frames, time scale %s",
            duration, n_frames, self.time_scale_choice,
        )

        self.play()
        for _ in range(n_frames):
            if self.step(frame_dt) is None or not self.playing:
                break

        wall_total = time.time() - self._wall_start
        logger.info(
            "Run complete.  %d frames in %.2f s wall time.  t=%.4f CTU",
            self.frame_count, wall_total, self.clock.time_after_periapsis,
        )
        return self.get_telemetry()

    def current_frame(self) -> Optional[AnimationFrame]:
        if self.off_trajectory:
            return None
        if self._exact_frame is not None:
            return self._exact_frame
        return self.interpolator.current_frame()

    # =========================================================================
    # READOUTS
    # =========================================================================

    def readout(self) -> OrbitReadout:
        """Canonical and physical readouts for the current instant."""
        elements = self.elements
        units = self.units
        conic = elements.conic()
        frame = self.current_frame()

        nu_deg = self._scrub_true_anomaly_deg if frame is None else frame.true_anomaly_deg
        anomalies = kepler_anomalies(conic, nu_deg * DEG2RAD)

        def deg(value):
            return None if value is None else value * RAD2DEG

        period = elements.period
        t = None
        if frame is not None:
            t = frame.time_after_periapsis

        if self.true_anomaly_360 and nu_deg < 0.0:
            nu_deg += 360.0
            if period is not None and t is not None:
                t += period

        # Time since periapsis is shown in the selected menu entry's unit
        _, unit_seconds, unit_label = get_time_scale(self.time_scale_choice)
        t_seconds = None if t is None else units.time_to_seconds(t)

        pos = vel = r = v = None
        vcs = vesc = q_ratio = c3 = None
        pos_ijk = vel_ijk = pos_uvw = vel_uvw = None
        if frame is not None:
            pos, vel = frame.position, frame.velocity
            r = float(np.linalg.norm(pos))
            v = float(np.linalg.norm(vel))
            vcs = float(np.sqrt(elements.mu / r))
            vesc = float(np.sqrt(2.0) * vcs)
            q_ratio = v * v / (vcs * vcs)
            c3 = v * v - vesc * vesc
            pos_ijk = self.rotation @ pos
            vel_ijk = self.rotation @ vel
            local = perifocal_to_local(frame.true_anomaly_deg * DEG2RAD)
            pos_uvw = local @ pos
            vel_uvw = local @ vel

        return OrbitReadout(
            time_since_periapsis=t,
            time_since_periapsis_s=t_seconds,
            time_since_periapsis_display=None if t is None else t_seconds / unit_seconds,
            time_display_unit=unit_label,
            true_anomaly_deg=nu_deg,
            eccentric_anomaly_deg=None if anomalies is None else deg(anomalies.eccentric_anomaly),
            hyperbolic_anomaly_deg=None if anomalies is None else deg(anomalies.hyperbolic_anomaly),
            mean_anomaly_deg=None if anomalies is None else deg(anomalies.mean_anomaly),
            radius=r,
            speed=v,
            radius_km=None if r is None else units.distance_to_km(r),
            speed_km_s=None if v is None else units.speed_to_km_s(v),
            circular_speed=vcs,
            escape_speed=vesc,
            q_ratio=q_ratio,
            c3=c3,
            mean_motion_deg=elements.mean_motion * RAD2DEG,
            period=period,
            period_s=None if period is None else units.time_to_seconds(period),
            specific_energy=elements.specific_energy,
            specific_energy_km2_s2=units.energy_to_km2_s2(elements.specific_energy),
            angular_momentum=elements.h,
            angular_momentum_km2_s=units.angular_momentum_to_km2_s(elements.h),
            periapsis_valid=self.periapsis_valid,
            halted=False if frame is None else frame.halted,
            position_pqw=pos,
            velocity_pqw=vel,
            position_ijk=pos_ijk,
            velocity_ijk=vel_ijk,
            position_uvw=pos_uvw,
            velocity_uvw=vel_uvw,
        )

    # =========================================================================
    # TELEMETRY
    # =========================================================================

    def _log_telemetry(self, frame: AnimationFrame) -> None:
        pos = self.rotation @ frame.position
        vel = self.rotation @ frame.velocity
        record = {
            'time': self.clock.time_after_periapsis,
            'time_s': self.clock.seconds,
            'elapsed_real_s': self.elapsed_real,
            'true_anomaly_deg': frame.true_anomaly_deg,
            'pos_x': pos[0],
            'pos_y': pos[1],
            'pos_z': pos[2],
            'vel_x': vel[0],
            'vel_y': vel[1],
            'vel_z': vel[2],
            'radius': float(np.linalg.norm(pos)),
            'speed': float(np.linalg.norm(vel)),
            'body_rotation_deg': self.units.body_rotation_angle(self.clock.seconds) * RAD2DEG,
            'halted': frame.halted,
        }
        self.telemetry.append(record)

    def get_telemetry(self) -> pd.DataFrame:
        """
        Telemetry records as a DataFrame indexed by time (CTU).

        Returns
        -------
        pd.DataFrame
            Columns: time_s, elapsed_real_s, true_anomaly_deg,
            pos_x/y/z, vel_x/y/z (inertial), radius, speed,
            body_rotation_deg, halted.
        """
        if not self.telemetry:
            logger.warning("No telemetry recorded.")
            return pd.DataFrame()

        df = pd.DataFrame(self.telemetry)
        df.set_index('time', inplace=True)
        return df

    def save_telemetry(self, filepath: str) -> None:
        df = self.get_telemetry()
        df.to_csv(filepath)
        logger.info("Telemetry saved to %s  (%d records)", filepath, len(df))

    # =========================================================================
    # SETTINGS
    # =========================================================================

    def to_settings(self) -> Dict[str, Any]:
        """
        Session state as persisted key/value pairs.  Keys this engine does
        not know about, received through from_settings(), are carried
        through unchanged.
        """
        settings = dict(self.settings_passthrough)
        settings.update({
            'central-body': self.units.body.name,
            'conic-section': self.elements.conic_section.value,
            'semimajor-axis': abs(self.elements.a),
            'eccentricity': self.elements.e,
            'longitude-of-ascending-node': self.elements.raan_deg,
            'inclination': self.elements.inc_deg,
            'argument-of-periapsis': self.elements.aop_deg,
            'timeScaleMenuChoice': self.time_scale_choice,
            'trueAnomaly360': self.true_anomaly_360,
        })
        return settings

    @classmethod
    def from_settings(
        cls,
        settings: Mapping[str, Any],
        config: Optional[Dict[str, Any]] = None,
    ) -> 'OrbitAnimationEngine':
        """Build and initialize a session from persisted settings layered over *config*."""
        merged = copy.deepcopy(config) if config else {}
        passthrough = {}
        for key, value in settings.items():
            if key not in SETTINGS_KEYS:
                passthrough[key] = value
                continue
            section, name = SETTINGS_KEYS[key]
            target = _section(merged, section)
            target[name] = value
            merged[section] = target

        engine = cls(merged)
        engine.settings_passthrough = passthrough
        engine.initialize()
        return engine

    # =========================================================================
    # SUMMARY
    # =========================================================================

    def get_summary(self) -> Dict[str, Any]:
        """
        Compile a summary of the session.

        Returns
        -------
        dict
            central_body, conic_section, a, e, rp, ra, period, specific_energy,
            angular_momentum, periapsis_valid, table_samples, table_valid,
            non_converged, rebuilds, frames, time_after_periapsis
        """
        summary = {
            'central_body': self.units.body.name,
            'conic_section': self.elements.conic_section.value,
            'a': self.elements.a,
            'e': self.elements.e,
            'rp': self.elements.rp,
            'ra': self.elements.ra,
            'period': self.elements.period,
            'specific_energy': self.elements.specific_energy,
            'angular_momentum': self.elements.h,
            'periapsis_valid': self.periapsis_valid,
            'table_samples': len(self.table),
            'table_valid': self.table.valid_count,
            'non_converged': self.table.non_converged_count,
            'rebuilds': self.rebuild_count,
            'frames': self.frame_count,
            'time_after_periapsis': self.clock.time_after_periapsis,
        }

        logger.info("Session Summary:")
        for key, value in summary.items():
            if isinstance(value, float):
                logger.info("  %-25s: %.4f", key, value)
            else:
                logger.info("  %-25s: %s", key, value)

        return summary

    # =========================================================================
    # REPRESENTATION
    # =========================================================================

    def __repr__(self) -> str:
        if self.elements is None:
            return "OrbitAnimationEngine(UNINITIALIZED)"
        return (
            f"OrbitAnimationEngine({self.elements.conic_section.value}, "
            f"body={self.units.body.name}, "
            f"t={self.clock.time_after_periapsis:.4f} CTU, "
            f"playing={self.playing}, records={len(self.telemetry)})"
        )
