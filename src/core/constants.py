"""
===============================================================================
CONIC ORBIT PROPAGATOR - Constants and Canonical Units
===============================================================================
Central repository for the constants used by the propagation engine.

All orbital computations run in canonical units local to one central body:
the canonical distance unit (CDU) is a body-specific length and the
canonical time unit (CTU) is chosen so that the gravitational parameter
equals one:

    CTU = sqrt(CDU^3 / mu)          mu = 1 CDU^3 / CTU^2

Physical data below are in km, s and km^3/s^2 (the units in which the
catalogue is usually published).  Conversion helpers live on UnitSystem.
===============================================================================
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np


# =============================================================================
# MATHEMATICAL CONSTANTS
# =============================================================================
PI = np.pi
TWO_PI = 2.0 * np.pi
DEG2RAD = PI / 180.0
RAD2DEG = 180.0 / PI

# =============================================================================
# CANONICAL SYSTEM
# =============================================================================
MU_CANONICAL = 1.0
AU_KM = 149597870.70                   # 1 AU (km), exact

# =============================================================================
# ECCENTRICITY DOMAIN
# =============================================================================
# The near-parabolic band (0.98, 1.02) is excluded; the Newton iteration
# needs many more steps as e -> 1.
ELLIPSE_E_MIN = 0.0
ELLIPSE_E_MAX = 0.98
HYPERBOLA_E_MIN = 1.02
HYPERBOLA_E_MAX = 5.0

# =============================================================================
# TRAJECTORY TABLE / SOLVER DEFAULTS
# =============================================================================
DEFAULT_TABLE_SIZE = 181               # 2 deg steps from -180 to +180
SOLVER_MAX_ITERATIONS = 50
SOLVER_TOLERANCE = 1e-3                # CTU
HYPERBOLA_ASYMPTOTE_MARGIN = PI / 10   # rad kept clear of the asymptote

# =============================================================================
# SESSION DEFAULTS (Hohmann transfer from 160 km to GEO around Earth)
# =============================================================================
DEFAULT_CENTRAL_BODY = 'Earth'
DEFAULT_CONIC_SECTION = 'ellipse'
DEFAULT_SEMIMAJOR_AXIS = 3.822         # CDU
DEFAULT_ELLIPSE_ECCENTRICITY = 0.7318
DEFAULT_HYPERBOLA_ECCENTRICITY = 1.5
DEFAULT_LAN_DEG = 0.0
DEFAULT_INCLINATION_DEG = -28.0
DEFAULT_AOP_DEG = -81.0
DEFAULT_FRAME_RATE = 60.0              # frames per real second


# =============================================================================
# CENTRAL BODIES
# =============================================================================

@dataclass(frozen=True)
class CentralBody:
    """
    Physical data for one selectable central body.

    Attributes
    ----------
    name : str
        Catalogue name (``'Earth'``, ``'sun1'``, ...).
    mu : float
        Gravitational parameter (km^3/s^2).
    radius : float
        Mean physical radius (km).
    cdu : float
        Canonical distance unit (km).  Usually the body radius; ``sun2``
        uses 1 AU so that planetary distances fit the element ranges.
    rotation_period_hours : float
        Sidereal rotation period (hr).  Negative for retrograde rotators.
    escape_velocity : float
        Escape speed at the surface (km/s).
    """
    name: str
    mu: float
    radius: float
    cdu: float
    rotation_period_hours: float
    escape_velocity: float


CENTRAL_BODIES: Dict[str, CentralBody] = {
    body.name.lower(): body for body in (
        CentralBody('sun1', 132712440018.0, 696000.0, 696000.0, 1000000.0, 617.5),
        CentralBody('sun2', 132712440018.0, 696000.0, AU_KM, 1000000.0, 617.5),
        CentralBody('Mercury', 22032.0, 2439.7, 2439.7, 1407.6, 4.3),
        CentralBody('Venus', 324859.0, 6051.8, 6051.8, -5832.6, 10.36),
        CentralBody('Earth', 398600.4418, 6378.1, 6378.1, 23.9345, 11.186),
        CentralBody('moon', 4904.8695, 1079.6, 1079.6, 655.728, 2.38),
        CentralBody('Mars', 42828.0, 3389.5, 3389.5, 24.6229, 5.03),
        CentralBody('Jupiter', 126687000.0, 69911.0, 69911.0, 9.925, 59.5),
        CentralBody('Saturn', 37931000.0, 58232.0, 58232.0, 10.656, 35.5),
        CentralBody('Uranus', 5794000.0, 25362.0, 25362.0, -17.24, 21.3),
        CentralBody('Neptune', 6835100.0, 24622.0, 24622.0, 16.11, 23.5),
    )
}


def get_central_body(body_name: str) -> CentralBody:
    """
    Look up a central body by name (case-insensitive).

    Args:
        body_name: Catalogue name, e.g. 'Earth', 'sun2', 'moon'

    Returns:
        The matching CentralBody record

    Raises:
        ValueError: If body_name is not recognized
    """
    key = body_name.lower()
    if key not in CENTRAL_BODIES:
        valid = [b.name for b in CENTRAL_BODIES.values()]
        raise ValueError(f"Unknown body: {body_name}. Valid: {valid}")
    return CENTRAL_BODIES[key]


# =============================================================================
# UNIT SYSTEM
# =============================================================================

class UnitSystem:
    """
    Canonical unit convention tied to one central body.

    Parameters
    ----------
    body : CentralBody or str
        The central body, or its catalogue name.
    """

    def __init__(self, body) -> None:
        if isinstance(body, str):
            body = get_central_body(body)
        self.body: CentralBody = body
        self.cdu: float = body.cdu
        self.ctu: float = float(np.sqrt(body.cdu ** 3 / body.mu))

    @property
    def body_radius_cdu(self) -> float:
        """Physical radius of the central body in CDU."""
        return self.body.radius / self.cdu

    @property
    def rotation_period_seconds(self) -> float:
        return 3600.0 * self.body.rotation_period_hours

    def time_to_seconds(self, t: float) -> float:
        return t * self.ctu

    def seconds_to_time(self, seconds: float) -> float:
        return seconds / self.ctu

    def distance_to_km(self, d: float) -> float:
        return d * self.cdu

    def speed_to_km_s(self, v: float) -> float:
        return v * self.cdu / self.ctu

    def angular_momentum_to_km2_s(self, h: float) -> float:
        return h * self.cdu * self.cdu / self.ctu

    def energy_to_km2_s2(self, energy: float) -> float:
        return energy * self.cdu * self.cdu / (self.ctu * self.ctu)

    def body_rotation_angle(self, seconds: float) -> float:
        """
        Spin angle (rad, wrapped to [0, 2*pi)) of the central body after
        *seconds* of simulated time.  Negative rotation periods turn the
        body the other way.
        """
        return float((TWO_PI * seconds / self.rotation_period_seconds) % TWO_PI)

    def __repr__(self) -> str:
        return (
            f"UnitSystem(body={self.body.name}, CDU={self.cdu:.1f} km, "
            f"CTU={self.ctu:.3f} s)"
        )


# =============================================================================
# TIME-SCALE MENU
# =============================================================================
# name -> (simulated seconds per real second, display unit seconds, label)
TIME_SCALES: Dict[str, Tuple[float, float, str]] = {
    'sec-equals-1sec': (1.0, 1.0, 'seconds'),
    'sec-equals-1minute': (60.0, 60.0, 'minutes'),
    'sec-equals-5minutes': (300.0, 60.0, 'minutes'),
    'sec-equals-15minutes': (900.0, 60.0, 'minutes'),
    'sec-equals-1hour': (3600.0, 3600.0, 'hours'),
    'sec-equals-1day': (86400.0, 86400.0, 'days'),
}
DEFAULT_TIME_SCALE_CHOICE = 'sec-equals-15minutes'

# A time scale may not exceed this fraction of the period (or flyby span).
TIME_SCALE_PERIOD_FRACTION = 0.1


def get_time_scale(choice: str) -> Tuple[float, float, str]:
    """
    Look up a time-scale menu entry.

    Raises:
        ValueError: If choice is not a menu entry
    """
    if choice not in TIME_SCALES:
        raise ValueError(f"Unknown time scale: {choice}. Valid: {list(TIME_SCALES)}")
    return TIME_SCALES[choice]


def allowed_time_scales(period_seconds: float) -> List[str]:
    """
    Menu entries whose rate is at most TIME_SCALE_PERIOD_FRACTION of the
    period.  The first (slowest) entry is always allowed.
    """
    limit = TIME_SCALE_PERIOD_FRACTION * period_seconds
    choices = list(TIME_SCALES)
    allowed = [choices[0]]
    for choice in choices[1:]:
        if TIME_SCALES[choice][0] <= limit:
            allowed.append(choice)
    return allowed
