"""
===============================================================================
CONIC ORBIT PROPAGATOR - Trajectory Table
===============================================================================
Samples the conic at fixed true-anomaly steps from -180 deg to +180 deg and
records, for every sample, the time of flight from periapsis and the
Lagrange coefficients (f, g, fdot, gdot) that carry the periapsis state

    r_p = (rp, 0, 0)        v_p = (0, vp, 0)        (perifocal frame)

to the sample:

    r = f r_p + g v_p = (f rp, g vp, 0)
    v = fdot r_p + gdot v_p = (fdot rp, gdot vp, 0)

Each sample runs the anomaly converter for its time and the
universal-variable solver for its coefficients.  The stored true anomaly
is recomputed from the solved position with atan2, not copied from the
grid, so the angle, time and state of a sample always agree.

On a hyperbola only samples with |nu| < (pi + delta)/2 - th are solved
(th is the asymptote margin, pi/10 by default).  The remaining slots are
kept, flagged valid=False and filled with NaN, so every table has the
same number of entries and index i always means grid angle i.

The table is immutable.  Any change of a, e or conic type means building
a new one.
===============================================================================
"""

import logging
import time
from dataclasses import dataclass
from typing import Iterator, Optional

import numpy as np
import pandas as pd

from core.constants import (
    DEFAULT_TABLE_SIZE,
    DEG2RAD,
    HYPERBOLA_ASYMPTOTE_MARGIN,
    RAD2DEG,
    SOLVER_MAX_ITERATIONS,
    SOLVER_TOLERANCE,
)
from dynamics.anomaly import is_on_trajectory, time_since_periapsis
from dynamics.orbital_elements import Conic, Ellipse, OrbitalElements
from dynamics.universal_variable import solve

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrajectorySample:
    """
    One row of the trajectory table.

    Attributes
    ----------
    index : int
        Position in the table (grid angle index).
    time_of_flight : float
        Time since periapsis (CTU); NaN when invalid.
    true_anomaly_deg : float
        True anomaly recomputed from the solved position (deg); NaN when
        invalid.
    f, g, fdot, gdot : float
        Lagrange coefficients relative to the periapsis state.
    valid : bool
        False for hyperbola slots too close to (or past) the asymptote.
    converged : bool
        Newton iteration status for this sample.
    iterations : int
        Newton steps used.
    """
    index: int
    time_of_flight: float
    true_anomaly_deg: float
    f: float
    g: float
    fdot: float
    gdot: float
    valid: bool
    converged: bool
    iterations: int

    def position(self, rp: float, vp: float) -> np.ndarray:
        """Perifocal position (CDU) given the periapsis radius and speed."""
        return np.array([self.f * rp, self.g * vp, 0.0], dtype=np.float64)

    def velocity(self, rp: float, vp: float) -> np.ndarray:
        """Perifocal velocity (CDU/CTU) given the periapsis radius and speed."""
        return np.array([self.fdot * rp, self.gdot * vp, 0.0], dtype=np.float64)

    @property
    def lagrange_determinant(self) -> float:
        return self.f * self.gdot - self.g * self.fdot


def _frozen(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


class TrajectoryTable:
    """
    Immutable lookup table of one conic.

    Built by build_trajectory_table(); not meant to be constructed by hand.
    Column arrays are read-only numpy views of shape (N,) and the state
    arrays are (N, 3).

    Parameters
    ----------
    conic : Ellipse or Hyperbola
        The conic the table samples.
    rp, vp : float
        Periapsis radius (CDU) and speed (CDU/CTU) of the reference state.
    times, true_anomalies_deg, f, g, fdot, gdot : np.ndarray
        Per-sample columns (NaN in invalid slots).
    valid, converged : np.ndarray of bool
    iterations : np.ndarray of int
    """

    def __init__(
        self,
        conic: Conic,
        rp: float,
        vp: float,
        times: np.ndarray,
        true_anomalies_deg: np.ndarray,
        f: np.ndarray,
        g: np.ndarray,
        fdot: np.ndarray,
        gdot: np.ndarray,
        valid: np.ndarray,
        converged: np.ndarray,
        iterations: np.ndarray,
    ) -> None:
        valid_idx = np.flatnonzero(valid)
        if valid_idx.size < 2:
            raise ValueError(
                f"Trajectory table needs at least two valid samples, got {valid_idx.size}"
            )

        self.conic = conic
        self.rp = float(rp)
        self.vp = float(vp)
        self.times = _frozen(times)
        self.true_anomalies_deg = _frozen(true_anomalies_deg)
        self.f = _frozen(f)
        self.g = _frozen(g)
        self.fdot = _frozen(fdot)
        self.gdot = _frozen(gdot)
        self.valid_mask = _frozen(valid)
        self.converged_mask = _frozen(converged)
        self.iterations = _frozen(iterations)

        self.first_valid = int(valid_idx[0])
        self.last_valid = int(valid_idx[-1])

        self.positions = _frozen(np.column_stack([f * rp, g * vp, np.zeros_like(f)]))
        self.velocities = _frozen(np.column_stack([fdot * rp, gdot * vp, np.zeros_like(f)]))

    # =====================================================================
    # PROPERTIES
    # =====================================================================

    @property
    def is_ellipse(self) -> bool:
        return isinstance(self.conic, Ellipse)

    @property
    def period(self) -> Optional[float]:
        """Orbital period (CTU); None for a hyperbola."""
        if self.is_ellipse:
            return self.conic.period
        return None

    @property
    def start_time(self) -> float:
        return float(self.times[self.first_valid])

    @property
    def end_time(self) -> float:
        return float(self.times[self.last_valid])

    @property
    def valid_count(self) -> int:
        return int(np.count_nonzero(self.valid_mask))

    @property
    def non_converged_count(self) -> int:
        return int(np.count_nonzero(self.valid_mask & ~self.converged_mask))

    def lagrange_determinants(self) -> np.ndarray:
        """f*gdot - g*fdot per sample (NaN in invalid slots)."""
        return self.f * self.gdot - self.g * self.fdot

    # =====================================================================
    # LOOKUP
    # =====================================================================

    def locate(self, t: float) -> int:
        """
        Index i0 of the bracket [times[i0], times[i0 + 1]) containing *t*.

        Only the valid run of samples is searched.  Times before the first
        valid sample map to the first bracket and times at or after the
        last valid sample map to the last bracket.
        """
        lo, hi = self.first_valid, self.last_valid
        i = int(np.searchsorted(self.times[lo:hi + 1], t, side='right')) - 1 + lo
        return min(max(i, lo), hi - 1)

    def state_at_index(self, index: int):
        """(position, velocity, true_anomaly_deg, time) of one sample."""
        return (
            self.positions[index],
            self.velocities[index],
            float(self.true_anomalies_deg[index]),
            float(self.times[index]),
        )

    # =====================================================================
    # CONTAINER PROTOCOL
    # =====================================================================

    def __len__(self) -> int:
        return self.times.shape[0]

    def __getitem__(self, index: int) -> TrajectorySample:
        if index < 0:
            index += len(self)
        if not 0 <= index < len(self):
            raise IndexError(f"Table index {index} out of range")
        return TrajectorySample(
            index=index,
            time_of_flight=float(self.times[index]),
            true_anomaly_deg=float(self.true_anomalies_deg[index]),
            f=float(self.f[index]),
            g=float(self.g[index]),
            fdot=float(self.fdot[index]),
            gdot=float(self.gdot[index]),
            valid=bool(self.valid_mask[index]),
            converged=bool(self.converged_mask[index]),
            iterations=int(self.iterations[index]),
        )

    def __iter__(self) -> Iterator[TrajectorySample]:
        for i in range(len(self)):
            yield self[i]

    def to_dataframe(self) -> pd.DataFrame:
        """The table as a DataFrame indexed by sample number."""
        df = pd.DataFrame({
            'time_of_flight': self.times,
            'true_anomaly_deg': self.true_anomalies_deg,
            'f': self.f,
            'g': self.g,
            'fdot': self.fdot,
            'gdot': self.gdot,
            'pos_p': self.positions[:, 0],
            'pos_q': self.positions[:, 1],
            'vel_p': self.velocities[:, 0],
            'vel_q': self.velocities[:, 1],
            'lagrange_determinant': self.lagrange_determinants(),
            'valid': self.valid_mask,
            'converged': self.converged_mask,
            'iterations': self.iterations,
        })
        df.index.name = 'sample'
        return df

    def __repr__(self) -> str:
        kind = 'ellipse' if self.is_ellipse else 'hyperbola'
        return (
            f"TrajectoryTable({kind}, a={self.conic.a:.4f}, e={self.conic.e:.4f}, "
            f"samples={len(self)}, valid={self.valid_count})"
        )


# =============================================================================
# BUILDER
# =============================================================================

def build_trajectory_table(
    elements: OrbitalElements,
    size: int = DEFAULT_TABLE_SIZE,
    margin: float = HYPERBOLA_ASYMPTOTE_MARGIN,
    max_iterations: int = SOLVER_MAX_ITERATIONS,
    tolerance: float = SOLVER_TOLERANCE,
) -> TrajectoryTable:
    """
    Sample the conic described by *elements* into a TrajectoryTable.

    Parameters
    ----------
    elements : OrbitalElements
        Shape (a, e) of the conic.  Orientation is not used.
    size : int
        Number of grid angles, evenly spaced over [-180, 180] deg.  The
        default 181 gives 2 deg steps.
    margin : float
        Angular margin th (rad) kept clear of a hyperbola's asymptote.
    max_iterations, tolerance
        Passed to the universal-variable solver.

    Returns
    -------
    TrajectoryTable

    Raises
    ------
    ValueError
        If size < 2, or fewer than two samples end up valid.
    """
    if size < 2:
        raise ValueError(f"Table size must be at least 2, got {size}")

    t_wall = time.perf_counter()

    conic = elements.conic()
    rp = elements.rp
    vp = elements.vp
    a = elements.a
    mu = elements.mu

    grid_deg = np.linspace(-180.0, 180.0, size)

    times = np.full(size, np.nan)
    nus = np.full(size, np.nan)
    f = np.full(size, np.nan)
    g = np.full(size, np.nan)
    fdot = np.full(size, np.nan)
    gdot = np.full(size, np.nan)
    valid = np.zeros(size, dtype=bool)
    converged = np.zeros(size, dtype=bool)
    iterations = np.zeros(size, dtype=np.int64)

    for i, nu_deg in enumerate(grid_deg):
        nu = nu_deg * DEG2RAD
        if not is_on_trajectory(conic, nu, margin):
            continue

        t = time_since_periapsis(conic, nu)
        if t is None:
            continue

        result = solve(t, 0.0, rp, 0.0, a, mu, max_iterations, tolerance)
        if not result.converged:
            logger.warning(
                "Universal-variable solve did not converge at nu=%.1f deg after "
                "%d iterations (residual %.3e CTU); using last iterate",
                nu_deg, result.iterations, result.residual,
            )

        times[i] = result.time_of_flight
        f[i] = result.f
        g[i] = result.g
        fdot[i] = result.fdot
        gdot[i] = result.gdot
        nus[i] = np.arctan2(result.g * vp, result.f * rp) * RAD2DEG
        valid[i] = True
        converged[i] = result.converged
        iterations[i] = result.iterations

    # atan2 lands on either side of the +/-180 deg seam; pin the ends.
    if valid[0]:
        nus[0] = -180.0
    if isinstance(conic, Ellipse) and valid[-1]:
        nus[-1] = 180.0

    table = TrajectoryTable(
        conic, rp, vp, times, nus, f, g, fdot, gdot, valid, converged, iterations
    )

    elapsed_ms = 1000.0 * (time.perf_counter() - t_wall)
    logger.info(
        "Trajectory table rebuilt: %d samples, %d valid, %d not converged, %.2f ms",
        size, table.valid_count, table.non_converged_count, elapsed_ms,
    )
    return table
