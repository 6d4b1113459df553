"""
===============================================================================
CONIC ORBIT PROPAGATOR - Anomaly Conversions
===============================================================================
Closed-form maps between true anomaly, eccentric / hyperbolic anomaly, mean
anomaly and time since periapsis (Bate, Mueller & White pp. 182-188).

    Ellipse:    cos E  = (e + cos nu) / (1 + e cos nu),   E in [-pi, pi]
                M      = E - e sin E
    Hyperbola:  cosh F = (e + cos nu) / (1 + e cos nu)
                M      = e sinh F - F

    t - tp = M / n

No iteration is involved.  On a hyperbola a true anomaly at or beyond the
asymptote, |nu| >= (pi + delta)/2, has no real solution: the functions
return None and callers must treat the body as not on this branch.
===============================================================================
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from core.constants import PI, TWO_PI, RAD2DEG
from dynamics.orbital_elements import Conic, Ellipse, Hyperbola, OrbitalElements


@dataclass(frozen=True)
class KeplerAnomalies:
    """
    All anomalies for one position on the conic.

    Attributes
    ----------
    true_anomaly : float
        nu (rad).
    eccentric_anomaly : float or None
        E (rad); None on a hyperbola.
    hyperbolic_anomaly : float or None
        F (rad); None on an ellipse.
    mean_anomaly : float
        M (rad).
    time_since_periapsis : float
        M / n (CTU).  Negative before periapsis.
    """
    true_anomaly: float
    eccentric_anomaly: Optional[float]
    hyperbolic_anomaly: Optional[float]
    mean_anomaly: float
    time_since_periapsis: float

    def in_degrees(self) -> dict:
        def deg(x):
            return None if x is None else x * RAD2DEG
        return {
            'true_anomaly_deg': deg(self.true_anomaly),
            'eccentric_anomaly_deg': deg(self.eccentric_anomaly),
            'hyperbolic_anomaly_deg': deg(self.hyperbolic_anomaly),
            'mean_anomaly_deg': deg(self.mean_anomaly),
        }


def wrap_anomaly(nu: float) -> float:
    """
    Bring nu into [-pi, pi].  Values already in range (both end points
    included) are returned unchanged so that +pi and -pi stay distinct.
    """
    if -PI <= nu <= PI:
        return float(nu)
    return float((nu + PI) % TWO_PI - PI)


def is_on_trajectory(conic: Conic, nu: float, margin: float = 0.0) -> bool:
    """
    True if the body can be at true anomaly *nu*.

    Every anomaly is reachable on an ellipse.  On a hyperbola the anomaly
    must satisfy |nu| < (pi + delta)/2 - margin.
    """
    if isinstance(conic, Ellipse):
        return True
    if isinstance(conic, Hyperbola):
        return abs(wrap_anomaly(nu)) < conic.asymptote_anomaly - margin
    raise TypeError(f"Unsupported conic: {conic!r}")


def _cos_ratio(e: float, nu: float) -> float:
    cosnu = np.cos(nu)
    return (e + cosnu) / (1.0 + e * cosnu)


def eccentric_anomaly(e: float, nu: float) -> float:
    """E (rad) for an ellipse, same sign as nu."""
    nu = wrap_anomaly(nu)
    E = float(np.arccos(np.clip(_cos_ratio(e, nu), -1.0, 1.0)))
    return -E if nu < 0.0 else E


def hyperbolic_anomaly(e: float, nu: float) -> Optional[float]:
    """F (rad) for a hyperbola, same sign as nu; None past the asymptote."""
    nu = wrap_anomaly(nu)
    if abs(nu) >= 0.5 * (PI + 2.0 * np.arcsin(1.0 / e)):
        return None
    F = float(np.arccosh(max(_cos_ratio(e, nu), 1.0)))
    return -F if nu < 0.0 else F


def kepler_anomalies(conic: Conic, nu: float) -> Optional[KeplerAnomalies]:
    """
    Eccentric/hyperbolic, mean anomaly and time since periapsis at *nu*.

    Parameters
    ----------
    conic : Ellipse or Hyperbola
        Tagged conic from OrbitalElements.conic().
    nu : float
        True anomaly (rad).

    Returns
    -------
    KeplerAnomalies or None
        None if *nu* is past the asymptote of a hyperbola.
    """
    nu = wrap_anomaly(nu)

    if isinstance(conic, Ellipse):
        E = eccentric_anomaly(conic.e, nu)
        M = E - conic.e * np.sin(E)
        return KeplerAnomalies(nu, E, None, float(M), float(M / conic.mean_motion))

    if isinstance(conic, Hyperbola):
        F = hyperbolic_anomaly(conic.e, nu)
        if F is None:
            return None
        M = conic.e * np.sinh(F) - F
        return KeplerAnomalies(nu, None, F, float(M), float(M / conic.mean_motion))

    raise TypeError(f"Unsupported conic: {conic!r}")


def time_since_periapsis(conic: Conic, nu: float) -> Optional[float]:
    """Time from periapsis to true anomaly *nu* (CTU), or None if undefined."""
    anomalies = kepler_anomalies(conic, nu)
    if anomalies is None:
        return None
    return anomalies.time_since_periapsis


def flyby_time_span(conic: Hyperbola, margin: float) -> Tuple[float, float]:
    """
    Finite time window of a hyperbolic flyby.

    Reaching the asymptote takes infinite time, so the flyby is cut at
    nu = +/-((pi + delta)/2 - margin).

    Returns
    -------
    (t_start, t_end) : tuple of float
        Times since periapsis at the two ends (CTU); t_start = -t_end.
    """
    nu_end = conic.asymptote_anomaly - margin
    t_end = time_since_periapsis(conic, nu_end)
    t_start = time_since_periapsis(conic, -nu_end)
    return t_start, t_end


def perifocal_state(
    elements: OrbitalElements, nu: float
) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    """
    Exact perifocal position and velocity at true anomaly *nu*
    (Bate pp. 72-73):

        r = p / (1 + e cos nu) * [cos nu, sin nu, 0]
        v = sqrt(mu/p) * [-sin nu, e + cos nu, 0]

    Returns
    -------
    (r_pqw, v_pqw) or None
        3-element arrays (CDU, CDU/CTU).  None past the asymptote of a
        hyperbola.
    """
    if not is_on_trajectory(elements.conic(), nu):
        return None

    e = elements.e
    cosnu = np.cos(nu)
    sinnu = np.sin(nu)
    r = elements.p / (1.0 + e * cosnu)
    k = elements.sqrt_mu_over_p
    r_pqw = np.array([r * cosnu, r * sinnu, 0.0], dtype=np.float64)
    v_pqw = np.array([-k * sinnu, k * (e + cosnu), 0.0], dtype=np.float64)
    return r_pqw, v_pqw
