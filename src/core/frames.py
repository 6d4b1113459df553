"""
===============================================================================
CONIC ORBIT PROPAGATOR - Reference Frame Transformations
===============================================================================
Supports: Perifocal (PQW), Inertial (IJK), Local orbiting-body (UVW).

    PQW -- orbit plane frame: P toward periapsis, Q 90 deg ahead in the
           direction of motion, W along the angular momentum.
    IJK -- inertial frame of the central body (equatorial for planets).
    UVW -- body-relative frame: U along the radius vector, W along the
           angular momentum, V completing the triad.

The propagator works entirely in PQW; these rotations carry its outputs
into the other frames for display.  Both are time independent: PQW->IJK
depends only on (RAAN, inc, aop) and PQW->UVW only on the true anomaly.
Angles are in radians.

References
----------
    [1] Bate, Mueller & White, "Fundamentals of Astrodynamics", Dover,
        pp. 80-83.
    [2] Vallado, "Fundamentals of Astrodynamics and Applications", 4th ed.

===============================================================================
"""

import numpy as np


# =============================================================================
# ELEMENTARY ROTATION MATRICES
# =============================================================================

def Rx(angle: float) -> np.ndarray:
    """
    Elementary (frame) rotation matrix about the X-axis.

        Rx(a) = | 1    0       0     |
                | 0   cos(a)  sin(a)  |
                | 0  -sin(a)  cos(a)  |

    Parameters
    ----------
    angle : float
        Rotation angle in radians.

    Returns
    -------
    np.ndarray
        3x3 rotation matrix.
    """
    c = np.cos(angle)
    s = np.sin(angle)
    return np.array([
        [1.0,  0.0,  0.0],
        [0.0,    c,    s],
        [0.0,   -s,    c],
    ], dtype=np.float64)


def Rz(angle: float) -> np.ndarray:
    """
    Elementary (frame) rotation matrix about the Z-axis.

        Rz(a) = |  cos(a)  sin(a)  0 |
                | -sin(a)  cos(a)  0 |
                |    0       0     1 |

    Parameters
    ----------
    angle : float
        Rotation angle in radians.

    Returns
    -------
    np.ndarray
        3x3 rotation matrix.
    """
    c = np.cos(angle)
    s = np.sin(angle)
    return np.array([
        [  c,    s,  0.0],
        [ -s,    c,  0.0],
        [0.0,  0.0,  1.0],
    ], dtype=np.float64)


# =============================================================================
# PERIFOCAL -> INERTIAL
# =============================================================================

def perifocal_to_inertial(RAAN: float, inc: float, omega: float) -> np.ndarray:
    """
    Direction cosine matrix from the perifocal (PQW) frame to the inertial
    (IJK) frame, built from the classical 3-1-3 Euler sequence.

    The inertial frame is carried onto PQW by:
        1. Rotate about K by RAAN            (line of nodes)
        2. Rotate about the node line by inc (orbit plane tilt)
        3. Rotate about W by omega           (periapsis direction)

    so the matrix that carries PQW components back to IJK is

        R_ijk_pqw = Rz(-RAAN) * Rx(-inc) * Rz(-omega)

    Written out (Bate, Eq. 2.6-12):

        | cO*cw - sO*sw*ci   -cO*sw - sO*cw*ci    sO*si |
        | sO*cw + cO*sw*ci   -sO*sw + cO*cw*ci   -cO*si |
        |      sw*si              cw*si             ci  |

    Parameters
    ----------
    RAAN : float
        Right ascension / longitude of the ascending node (rad).
    inc : float
        Orbital inclination (rad).
    omega : float
        Argument of periapsis (rad).

    Returns
    -------
    np.ndarray
        3x3 proper orthogonal matrix; ``r_ijk = R @ r_pqw``.
    """
    return Rz(-RAAN) @ Rx(-inc) @ Rz(-omega)


# =============================================================================
# PERIFOCAL -> LOCAL (UVW)
# =============================================================================

def perifocal_to_local(nu: float) -> np.ndarray:
    """
    Direction cosine matrix from the perifocal frame to the body-relative
    UVW frame: a pure rotation about W by the true anomaly.

    Parameters
    ----------
    nu : float
        True anomaly (rad).

    Returns
    -------
    np.ndarray
        3x3 matrix; ``r_uvw = R @ r_pqw``.  The radius vector always maps
        onto +U: ``R @ (r cos nu, r sin nu, 0) = (r, 0, 0)``.
    """
    return Rz(nu)


def rotate(matrix: np.ndarray, vector: np.ndarray) -> np.ndarray:
    """Apply a 3x3 rotation to a 2- or 3-element vector (z defaults to 0)."""
    v = np.zeros(3, dtype=np.float64)
    vec = np.asarray(vector, dtype=np.float64)
    v[:vec.shape[0]] = vec
    return matrix @ v
