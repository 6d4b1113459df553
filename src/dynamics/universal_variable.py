"""
===============================================================================
CONIC ORBIT PROPAGATOR - Universal-Variable Kepler Solver
===============================================================================
Solves Kepler's problem -- where is the body a time t after a reference
state? -- with one formulation for ellipses and hyperbolas alike.

The universal anomaly x replaces E and F.  With z = x^2 / a and the
Stumpff functions C(z), S(z), the time of flight from the reference state
(r0, r0.v0) at t0 is (Bate Eq. 4.4-14):

    sqrt(mu) (t - t0) = (r0.v0/sqrt(mu)) x^2 C + (1 - r0/a) x^3 S + r0 x

and its derivative is the radius at x (Bate Eq. 4.4-17):

    sqrt(mu) dt/dx = x^2 C + (r0.v0/sqrt(mu)) x (1 - z S) + r0 (1 - z C) = r

Newton-Raphson on x converges in a handful of steps away from e = 1.
The Lagrange coefficients then give the state at t as a linear
combination of the reference state (Bate pp. 201-202):

    f    = 1 - x^2 C / r0             g    = t_n(x) - x^3 S / sqrt(mu)
    fdot = sqrt(mu) x (z S - 1) / (r0 r)
    gdot = 1 - x^2 C / r

where t_n(x) is the flight time the final x reaches.  With g taken at
t_n rather than at the requested time, f*gdot - g*fdot = 1 for every x.

Stumpff functions:
    C(z) = (1 - cos(sqrt(z))) / z               z > 0
         = (cosh(sqrt(-z)) - 1) / (-z)          z < 0
    S(z) = (sqrt(z) - sin(sqrt(z))) / z^(3/2)   z > 0
         = (sinh(sqrt(-z)) - sqrt(-z)) / (-z)^(3/2)  z < 0
Near z = 0 both branches are replaced by their common Taylor series.

The iteration is capped.  Hitting the cap is not an error: the last
iterate is returned with converged=False and the caller decides how loud
to be about it.

References
----------
    [1] Bate, Mueller & White, "Fundamentals of Astrodynamics", Dover,
        Ch. 4.
    [2] Curtis, "Orbital Mechanics for Engineering Students", 4th ed.,
        Algorithm 3.3.
===============================================================================
"""

import logging
from dataclasses import dataclass

import numpy as np

from core.constants import MU_CANONICAL, SOLVER_MAX_ITERATIONS, SOLVER_TOLERANCE

logger = logging.getLogger(__name__)

# Below this |z| the closed forms lose precision to cancellation.
_SERIES_Z = 1e-6


# =============================================================================
# STUMPFF FUNCTIONS
# =============================================================================

def stumpff_c(z: float) -> float:
    """Stumpff function C(z)."""
    if z > _SERIES_Z:
        sz = np.sqrt(z)
        return float((1.0 - np.cos(sz)) / z)
    if z < -_SERIES_Z:
        sz = np.sqrt(-z)
        return float((np.cosh(sz) - 1.0) / (-z))
    return 0.5 - z / 24.0 + z * z / 720.0


def stumpff_s(z: float) -> float:
    """Stumpff function S(z)."""
    if z > _SERIES_Z:
        sz = np.sqrt(z)
        return float((sz - np.sin(sz)) / (z * sz))
    if z < -_SERIES_Z:
        sz = np.sqrt(-z)
        return float((np.sinh(sz) - sz) / ((-z) * sz))
    return 1.0 / 6.0 - z / 120.0 + z * z / 5040.0


# =============================================================================
# SOLVER
# =============================================================================

@dataclass(frozen=True)
class SolverResult:
    """
    Outcome of one universal-variable solve.

    Attributes
    ----------
    x : float
        Universal anomaly (CDU^(1/2)).
    z : float
        x^2 / a.
    time_of_flight : float
        Time reached by the final x (CTU); differs from the requested t
        by ``residual``.
    f, g, fdot, gdot : float
        Lagrange coefficients (g in CTU, fdot in 1/CTU).
    r : float
        Radius at time_of_flight (CDU).
    iterations : int
        Newton steps taken.
    converged : bool
        False if the iteration cap was reached first.
    residual : float
        Requested minus reached time, t - time_of_flight (CTU).
    """
    x: float
    z: float
    time_of_flight: float
    f: float
    g: float
    fdot: float
    gdot: float
    r: float
    iterations: int
    converged: bool
    residual: float

    @property
    def lagrange_determinant(self) -> float:
        """f*gdot - g*fdot; equals 1 for an exact solution."""
        return self.f * self.gdot - self.g * self.fdot


def initial_guess(
    t: float,
    t0: float,
    r0: float,
    r0_dot_v0: float,
    a: float,
    mu: float = MU_CANONICAL,
) -> float:
    """
    Starting value of x for the Newton iteration (Bate p. 206).

    Ellipse (a > 0):
        x0 = sqrt(mu) (t - t0) / a
    Hyperbola (a < 0):
        x0 = sign(dt) sqrt(-a) ln( -2 mu dt /
                 (a (r0.v0 + sign(dt) sqrt(-mu a) (1 - r0/a))) )

    If the hyperbolic logarithm has no real value (possible only for
    unusual reference states) the guess falls back to sqrt(mu) dt / r0.
    """
    dt = t - t0
    if a > 0.0:
        return float(np.sqrt(mu) * dt / a)

    if dt == 0.0:
        return 0.0

    sign = np.sign(dt)
    denom = a * (r0_dot_v0 + sign * np.sqrt(-mu * a) * (1.0 - r0 / a))
    arg = -2.0 * mu * dt / denom if denom != 0.0 else 0.0
    if arg <= 0.0:
        return float(np.sqrt(mu) * dt / r0)
    return float(sign * np.sqrt(-a) * np.log(arg))


def solve(
    t: float,
    t0: float,
    r0: float,
    r0_dot_v0: float,
    a: float,
    mu: float = MU_CANONICAL,
    max_iterations: int = SOLVER_MAX_ITERATIONS,
    tolerance: float = SOLVER_TOLERANCE,
) -> SolverResult:
    """
    Find the universal anomaly at time *t* and the Lagrange coefficients
    that carry the reference state at *t0* to *t*.

    Parameters
    ----------
    t : float
        Target time (CTU).
    t0 : float
        Time of the reference state (CTU).
    r0 : float
        Reference radius |r0| (CDU).
    r0_dot_v0 : float
        r0 . v0 (CDU^2/CTU); zero at periapsis.
    a : float
        Signed semi-major axis (CDU).
    mu : float
        Gravitational parameter.
    max_iterations : int
        Newton iteration cap.
    tolerance : float
        Convergence threshold on |(t - t0) - t_n| (CTU).

    Returns
    -------
    SolverResult
        Always returned; inspect ``converged`` for the iteration status.
    """
    sqrt_mu = np.sqrt(mu)
    dt = t - t0
    x = initial_guess(t, t0, r0, r0_dot_v0, a, mu)

    converged = False
    residual = np.inf
    iterations = 0

    for iterations in range(1, max_iterations + 1):
        z = x * x / a
        c = stumpff_c(z)
        s = stumpff_s(z)

        tn = (r0_dot_v0 * x * x * c / sqrt_mu
              + (1.0 - r0 / a) * x * x * x * s
              + r0 * x) / sqrt_mu
        dtdx = (x * x * c
                + r0_dot_v0 * x * (1.0 - z * s) / sqrt_mu
                + r0 * (1.0 - z * c)) / sqrt_mu

        residual = dt - tn
        if dtdx == 0.0 or not np.isfinite(dtdx):
            break
        x = x + residual / dtdx

        if abs(residual) < tolerance:
            converged = True
            break

    # Coefficients at the final iterate.  g uses the flight time that x
    # actually reaches, so f*gdot - g*fdot = 1 holds to round-off even when
    # the cap was hit; that time is reported back as time_of_flight.
    z = x * x / a
    c = stumpff_c(z)
    s = stumpff_s(z)
    tn = (r0_dot_v0 * x * x * c / sqrt_mu
          + (1.0 - r0 / a) * x * x * x * s
          + r0 * x) / sqrt_mu
    residual = dt - tn
    r = (x * x * c
         + r0_dot_v0 * x * (1.0 - z * s) / sqrt_mu
         + r0 * (1.0 - z * c))

    f = 1.0 - x * x * c / r0
    g = tn - x * x * x * s / sqrt_mu
    fdot = sqrt_mu * x * (z * s - 1.0) / (r0 * r)
    gdot = 1.0 - x * x * c / r

    if not converged:
        logger.debug(
            "Universal-variable solve hit the cap: t=%.6f, x=%.6e, residual=%.3e",
            t, x, residual,
        )

    return SolverResult(
        x=float(x), z=float(z),
        time_of_flight=float(t0 + tn),
        f=float(f), g=float(g), fdot=float(fdot), gdot=float(gdot),
        r=float(r),
        iterations=iterations,
        converged=converged,
        residual=float(residual),
    )
