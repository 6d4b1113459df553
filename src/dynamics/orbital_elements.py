"""
===============================================================================
CONIC ORBIT PROPAGATOR - Orbital Element Set
===============================================================================
The single source of truth for the orbit being animated.

OrbitalElements holds the shape (a, e) and orientation (RAAN, inc, aop) of
a Keplerian conic in canonical units.  Every derived scalar -- semi-latus
rectum, periapsis/apoapsis radius, periapsis speed, angular momentum,
specific energy, mean motion, period, hyperbolic turning angle -- is a
property computed from (a, e) on access, so nothing derived can drift out
of step with the elements.

The sign of the semi-major axis is the conic-type discriminant:

    a > 0, 0 <= e <= 0.98      ellipse
    a < 0, 1.02 <= e <= 5      hyperbola

The near-parabolic band 0.98 < e < 1.02 is rejected.

For algorithms that branch on the conic type, OrbitalElements.conic()
returns a tagged value -- Ellipse(a, e) or Hyperbola(a, e, delta) -- so the
branch is a single isinstance dispatch rather than sign checks scattered
through the numerics.

References
----------
    [1] Bate, Mueller & White, "Fundamentals of Astrodynamics", Dover,
        Ch. 1 and 4.
===============================================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import numpy as np

from core.constants import (
    MU_CANONICAL,
    TWO_PI,
    DEG2RAD,
    RAD2DEG,
    ELLIPSE_E_MIN,
    ELLIPSE_E_MAX,
    HYPERBOLA_E_MIN,
    HYPERBOLA_E_MAX,
)


class ConicSection(Enum):
    """Conic type selected by the sign of the semi-major axis."""
    ELLIPSE = 'ellipse'
    HYPERBOLA = 'hyperbola'

    @classmethod
    def from_name(cls, name: str) -> 'ConicSection':
        try:
            return cls(name.lower())
        except ValueError:
            raise ValueError(
                f"Unknown conic section: {name}. Valid: {[c.value for c in cls]}"
            ) from None


class EccentricityDomainError(ValueError):
    """Eccentricity outside the supported bands, or inconsistent with sign(a)."""


def validate_shape(a: float, e: float) -> ConicSection:
    """
    Check that (a, e) describe a supported conic.

    Parameters
    ----------
    a : float
        Semi-major axis (CDU), signed.
    e : float
        Eccentricity.

    Returns
    -------
    ConicSection
        The conic type implied by sign(a).

    Raises
    ------
    ValueError
        If a is zero or not finite.
    EccentricityDomainError
        If e lies in the near-parabolic band, outside [0, 5], or does not
        match the conic type implied by sign(a).
    """
    if not np.isfinite(a) or a == 0.0:
        raise ValueError(f"Semi-major axis must be finite and non-zero, got {a}")
    if not np.isfinite(e):
        raise EccentricityDomainError(f"Eccentricity must be finite, got {e}")

    if ELLIPSE_E_MAX < e < HYPERBOLA_E_MIN:
        raise EccentricityDomainError(
            f"e = {e} lies in the near-parabolic band "
            f"({ELLIPSE_E_MAX}, {HYPERBOLA_E_MIN}) and is not supported"
        )

    if a > 0.0:
        if not ELLIPSE_E_MIN <= e <= ELLIPSE_E_MAX:
            raise EccentricityDomainError(
                f"Ellipse (a > 0) requires {ELLIPSE_E_MIN} <= e <= {ELLIPSE_E_MAX}, got {e}"
            )
        return ConicSection.ELLIPSE

    if not HYPERBOLA_E_MIN <= e <= HYPERBOLA_E_MAX:
        raise EccentricityDomainError(
            f"Hyperbola (a < 0) requires {HYPERBOLA_E_MIN} <= e <= {HYPERBOLA_E_MAX}, got {e}"
        )
    return ConicSection.HYPERBOLA


# =============================================================================
# CONIC TAGGED UNION
# =============================================================================

@dataclass(frozen=True)
class Ellipse:
    """Closed conic: a > 0, 0 <= e < 1."""
    a: float
    e: float
    mu: float = MU_CANONICAL

    @property
    def mean_motion(self) -> float:
        """n = sqrt(mu / a^3) (rad/CTU)."""
        return float(np.sqrt(self.mu / self.a ** 3))

    @property
    def period(self) -> float:
        """T = 2*pi / n (CTU)."""
        return TWO_PI / self.mean_motion


@dataclass(frozen=True)
class Hyperbola:
    """
    Open conic: a < 0, e > 1.

    Attributes
    ----------
    delta : float
        Turning angle between the asymptotes, 2*asin(1/e) (rad).
    """
    a: float
    e: float
    delta: float
    mu: float = MU_CANONICAL

    @property
    def mean_motion(self) -> float:
        """n = sqrt(mu / (-a)^3) (rad/CTU)."""
        return float(np.sqrt(self.mu / (-self.a) ** 3))

    @property
    def asymptote_anomaly(self) -> float:
        """
        True anomaly of the asymptote, (pi + delta)/2 (rad).  The body is on
        the trajectory only for |nu| strictly below this value.
        """
        return 0.5 * (np.pi + self.delta)


Conic = Union[Ellipse, Hyperbola]


def turning_angle(e: float) -> float:
    """Hyperbolic turning angle delta = 2*asin(1/e) (rad); e > 1."""
    return float(2.0 * np.arcsin(1.0 / e))


# =============================================================================
# ELEMENT SET
# =============================================================================

class OrbitalElements:
    """
    Classical orbital elements of a two-body conic in canonical units.

    Angular elements are stored in radians; the ``*_deg`` properties are
    the degree-valued boundary used by configuration and display code.

    Parameters
    ----------
    a : float
        Semi-major axis (CDU).  Positive for an ellipse, negative for a
        hyperbola.
    e : float
        Eccentricity.
    raan : float
        Right ascension / longitude of the ascending node (rad).
    inc : float
        Inclination (rad).
    aop : float
        Argument of periapsis (rad).
    mu : float
        Gravitational parameter (CDU^3/CTU^2), 1 in canonical units.

    Raises
    ------
    EccentricityDomainError
        See validate_shape().
    """

    def __init__(
        self,
        a: float,
        e: float,
        raan: float = 0.0,
        inc: float = 0.0,
        aop: float = 0.0,
        mu: float = MU_CANONICAL,
    ) -> None:
        self.mu = float(mu)
        self._conic_section = validate_shape(a, e)
        self._a = float(a)
        self._e = float(e)
        self.raan = float(raan)
        self.inc = float(inc)
        self.aop = float(aop)

    @classmethod
    def from_degrees(
        cls,
        a: float,
        e: float,
        raan_deg: float = 0.0,
        inc_deg: float = 0.0,
        aop_deg: float = 0.0,
        mu: float = MU_CANONICAL,
    ) -> 'OrbitalElements':
        """Construct from degree-valued angular elements."""
        return cls(a, e, raan_deg * DEG2RAD, inc_deg * DEG2RAD, aop_deg * DEG2RAD, mu)

    # =====================================================================
    # SHAPE
    # =====================================================================

    @property
    def a(self) -> float:
        return self._a

    @property
    def e(self) -> float:
        return self._e

    @property
    def conic_section(self) -> ConicSection:
        return self._conic_section

    @property
    def is_ellipse(self) -> bool:
        return self._conic_section is ConicSection.ELLIPSE

    def set_shape(self, a: float, e: float) -> None:
        """
        Replace (a, e) together.  The pair is validated before either is
        stored, so a rejected edit leaves the elements unchanged.
        """
        self._conic_section = validate_shape(a, e)
        self._a = float(a)
        self._e = float(e)

    def conic(self) -> Conic:
        """Tagged conic value for type-dispatched algorithms."""
        if self.is_ellipse:
            return Ellipse(self._a, self._e, self.mu)
        return Hyperbola(self._a, self._e, turning_angle(self._e), self.mu)

    # =====================================================================
    # ORIENTATION (degree boundary)
    # =====================================================================

    @property
    def raan_deg(self) -> float:
        return self.raan * RAD2DEG

    @raan_deg.setter
    def raan_deg(self, value: float) -> None:
        self.raan = float(value) * DEG2RAD

    @property
    def inc_deg(self) -> float:
        return self.inc * RAD2DEG

    @inc_deg.setter
    def inc_deg(self, value: float) -> None:
        self.inc = float(value) * DEG2RAD

    @property
    def aop_deg(self) -> float:
        return self.aop * RAD2DEG

    @aop_deg.setter
    def aop_deg(self, value: float) -> None:
        self.aop = float(value) * DEG2RAD

    # =====================================================================
    # DERIVED SCALARS
    # =====================================================================

    @property
    def p(self) -> float:
        """Semi-latus rectum p = a(1 - e^2) (CDU); positive for both conics."""
        return self._a * (1.0 - self._e * self._e)

    @property
    def rp(self) -> float:
        """Periapsis radius a(1 - e) (CDU)."""
        return self._a * (1.0 - self._e)

    @property
    def ra(self) -> Optional[float]:
        """Apoapsis radius a(1 + e) (CDU); None for a hyperbola."""
        if not self.is_ellipse:
            return None
        return self._a * (1.0 + self._e)

    @property
    def vp(self) -> float:
        """Periapsis speed sqrt(mu/a * (1+e)/(1-e)) (CDU/CTU)."""
        return float(np.sqrt((self.mu / self._a) * (1.0 + self._e) / (1.0 - self._e)))

    @property
    def sqrt_mu_over_p(self) -> float:
        """sqrt(mu/p): scale of the perifocal velocity components."""
        return float(np.sqrt(self.mu / self.p))

    @property
    def h(self) -> float:
        """Specific angular momentum rp * vp (CDU^2/CTU)."""
        return self.rp * self.vp

    @property
    def specific_energy(self) -> float:
        """Specific orbital energy -mu/(2a) (CDU^2/CTU^2)."""
        return -self.mu / (2.0 * self._a)

    @property
    def mean_motion(self) -> float:
        return self.conic().mean_motion

    @property
    def period(self) -> Optional[float]:
        """Orbital period (CTU); None for a hyperbola."""
        conic = self.conic()
        if isinstance(conic, Ellipse):
            return conic.period
        return None

    @property
    def turning_angle(self) -> Optional[float]:
        """Hyperbolic turning angle delta (rad); None for an ellipse."""
        if self.is_ellipse:
            return None
        return turning_angle(self._e)

    def periapsis_intersects(self, body_radius: float) -> bool:
        """True if the periapsis radius lies inside the central body."""
        return self.rp < body_radius

    # =====================================================================
    # UTILITIES
    # =====================================================================

    def copy(self) -> 'OrbitalElements':
        return OrbitalElements(self._a, self._e, self.raan, self.inc, self.aop, self.mu)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OrbitalElements):
            return NotImplemented
        return (self._a, self._e, self.raan, self.inc, self.aop, self.mu) == (
            other._a, other._e, other.raan, other.inc, other.aop, other.mu
        )

    # Mutable (set_shape and the angle setters), so not hashable
    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"OrbitalElements(a={self._a:.4f}, e={self._e:.4f}, "
            f"raan={self.raan_deg:.2f} deg, inc={self.inc_deg:.2f} deg, "
            f"aop={self.aop_deg:.2f} deg, {self._conic_section.value})"
        )
