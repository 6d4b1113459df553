"""
===============================================================================
CONIC ORBIT PROPAGATOR - Animation Clock and Interpolator
===============================================================================
Real-time playback of a TrajectoryTable.

SimulationClock holds the time after periapsis in canonical units and
advances it by ``time_scale * frame_dt`` real seconds per tick.

AnimationInterpolator keeps the bracket (i0, i1) of table samples that
contains the clock and linearly interpolates position, velocity and true
anomaly in time inside it:

    y(t) = y[i0] + (t - t[i0]) * (y[i1] - y[i0]) / (t[i1] - t[i0])

The slopes are computed once per bracket, so a tick costs a few vector
operations and no Kepler solve.  Brackets are refreshed only when the
clock leaves [t[i0], t[i1]), and since interpolation at t[i1] in the old
bracket returns exactly sample i1 the output is continuous across a
refresh.

End of table:
    Ellipse   -- the clock wraps by one period (apoapsis seam) and the
                 bracket restarts at the first sample.
    Hyperbola -- the clock is clamped at the last valid sample, motion
                 halts and the reported time is infinite.
===============================================================================
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from simulation.trajectory_table import TrajectoryTable

logger = logging.getLogger(__name__)


# =============================================================================
# SIMULATION CLOCK
# =============================================================================

class SimulationClock:
    """
    Time after periapsis in canonical units and its physical counterpart.

    Parameters
    ----------
    ctu : float
        Length of one canonical time unit (s).
    time_scale : float
        Simulated seconds per real second.
    time_after_periapsis : float
        Initial time since periapsis (CTU).
    """

    def __init__(self, ctu: float, time_scale: float = 1.0,
                 time_after_periapsis: float = 0.0) -> None:
        if ctu <= 0.0:
            raise ValueError(f"Canonical time unit must be positive, got {ctu}")
        self.ctu = float(ctu)
        self.time_scale = float(time_scale)
        self.time_after_periapsis = float(time_after_periapsis)

    @property
    def seconds(self) -> float:
        """Time after periapsis in seconds."""
        return self.time_after_periapsis * self.ctu

    def advance(self, frame_dt: float) -> float:
        """Move forward by *frame_dt* real seconds; returns the new time (CTU)."""
        self.time_after_periapsis += self.time_scale * frame_dt / self.ctu
        return self.time_after_periapsis

    def set_time(self, t: float) -> None:
        self.time_after_periapsis = float(t)

    def wrap(self, start: float, period: float) -> bool:
        """
        Bring the clock into [start, start + period).

        Returns
        -------
        bool
            True if the time changed.
        """
        t = self.time_after_periapsis
        if start <= t < start + period:
            return False
        self.time_after_periapsis = start + (t - start) % period
        return True

    def clamp(self, lower: float, upper: float) -> bool:
        """Clamp the clock into [lower, upper]; True if it was clamped at *upper*."""
        t = self.time_after_periapsis
        if t >= upper:
            self.time_after_periapsis = upper
            return True
        if t < lower:
            self.time_after_periapsis = lower
        return False

    def __repr__(self) -> str:
        return (
            f"SimulationClock(t={self.time_after_periapsis:.6f} CTU, "
            f"{self.seconds:.1f} s, scale={self.time_scale:g})"
        )


# =============================================================================
# INTERPOLATION
# =============================================================================

@dataclass(frozen=True)
class InterpolationWindow:
    """Bracket state: end point values at i0 and their time slopes."""
    i0: int
    i1: int
    t0: float
    t1: float
    position: np.ndarray
    velocity: np.ndarray
    true_anomaly_deg: float
    position_rate: np.ndarray
    velocity_rate: np.ndarray
    true_anomaly_rate: float

    def contains(self, t: float) -> bool:
        return self.t0 <= t < self.t1


@dataclass(frozen=True)
class AnimationFrame:
    """
    Interpolated output for one tick.

    Attributes
    ----------
    time_after_periapsis : float
        Clock time (CTU); ``inf`` once a hyperbolic flyby has halted.
    position, velocity : np.ndarray
        Perifocal state (CDU, CDU/CTU).
    true_anomaly_deg : float
        Interpolated true anomaly in [-180, 180] (deg).
    halted : bool
        True when motion has stopped at the end of a flyby.
    """
    time_after_periapsis: float
    position: np.ndarray
    velocity: np.ndarray
    true_anomaly_deg: float
    halted: bool = False


class AnimationInterpolator:
    """
    Linear interpolation of a TrajectoryTable driven by a SimulationClock.

    Call sync() (or sync_to_time()) after building, after a scrub and after
    swapping tables; call advance() once per animation tick.
    """

    def __init__(self, table: TrajectoryTable, clock: SimulationClock) -> None:
        self.table = table
        self.clock = clock
        self.window: Optional[InterpolationWindow] = None
        self.halted = False
        self.refresh_count = 0

    # =====================================================================
    # BRACKET MANAGEMENT
    # =====================================================================

    def _make_window(self, i0: int) -> InterpolationWindow:
        table = self.table
        i1 = i0 + 1
        p0, v0, nu0, t0 = table.state_at_index(i0)
        p1, v1, nu1, t1 = table.state_at_index(i1)
        span = t1 - t0
        return InterpolationWindow(
            i0=i0, i1=i1, t0=t0, t1=t1,
            position=p0, velocity=v0, true_anomaly_deg=nu0,
            position_rate=(p1 - p0) / span,
            velocity_rate=(v1 - v0) / span,
            true_anomaly_rate=(nu1 - nu0) / span,
        )

    def _refresh(self) -> None:
        i0 = self.table.locate(self.clock.time_after_periapsis)
        self.window = self._make_window(i0)
        self.refresh_count += 1
        logger.debug(
            "Bracket refreshed: (%d, %d) at t=%.6f CTU",
            self.window.i0, self.window.i1, self.clock.time_after_periapsis,
        )

    def _bound_clock(self) -> None:
        table = self.table
        if table.is_ellipse:
            if self.clock.wrap(table.start_time, table.period):
                logger.debug(
                    "Clock wrapped by one period to t=%.6f CTU",
                    self.clock.time_after_periapsis,
                )
            return
        if self.clock.clamp(table.start_time, table.end_time):
            if not self.halted:
                logger.info("Flyby reached the end of the trajectory table; motion halted")
            self.halted = True

    # =====================================================================
    # PUBLIC API
    # =====================================================================

    def sync(self) -> AnimationFrame:
        """Rebuild the bracket from scratch at the current clock time."""
        self.halted = False
        self._bound_clock()
        self._refresh()
        return self.current_frame()

    def sync_to_time(self, t: float) -> AnimationFrame:
        """Set the clock to *t* (CTU) and re-synchronise."""
        self.clock.set_time(t)
        return self.sync()

    def advance(self, frame_dt: float) -> AnimationFrame:
        """
        One animation tick of *frame_dt* real seconds.

        Parameters
        ----------
        frame_dt : float
            Real time since the previous tick (s).

        Returns
        -------
        AnimationFrame
        """
        if self.window is None:
            return self.sync()
        if self.halted:
            return self.current_frame()

        self.clock.advance(frame_dt)
        self._bound_clock()
        if self.halted or not self.window.contains(self.clock.time_after_periapsis):
            self._refresh()
        return self.current_frame()

    def current_frame(self) -> AnimationFrame:
        """Interpolated state at the current clock time."""
        if self.window is None:
            self.sync()
        w = self.window
        dt = self.clock.time_after_periapsis - w.t0
        position = w.position + w.position_rate * dt
        velocity = w.velocity + w.velocity_rate * dt
        nu_deg = w.true_anomaly_deg + w.true_anomaly_rate * dt
        t = np.inf if self.halted else self.clock.time_after_periapsis
        return AnimationFrame(t, position, velocity, float(nu_deg), self.halted)

    def __repr__(self) -> str:
        bracket = None if self.window is None else (self.window.i0, self.window.i1)
        return (
            f"AnimationInterpolator(bracket={bracket}, halted={self.halted}, "
            f"{self.clock!r})"
        )
