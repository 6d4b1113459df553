"""
===============================================================================
CONIC ORBIT PROPAGATOR - Universal-Variable Solver Test Suite
===============================================================================
Tests for the Stumpff functions (closed forms and the series join at
z = 0), the initial guess, Newton convergence, the Lagrange determinant
identity, and the anomaly -> time -> solver -> anomaly round trip.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest
from numpy.testing import assert_allclose

from core.constants import DEG2RAD, RAD2DEG
from dynamics.anomaly import time_since_periapsis
from dynamics.orbital_elements import OrbitalElements
from dynamics.universal_variable import initial_guess, solve, stumpff_c, stumpff_s


def recovered_true_anomaly_deg(elements, result):
    """True anomaly of the solved position relative to the periapsis state."""
    return np.arctan2(result.g * elements.vp, result.f * elements.rp) * RAD2DEG


def angle_difference_deg(a, b):
    return (a - b + 180.0) % 360.0 - 180.0


# =============================================================================
# Test: Stumpff functions
# =============================================================================

class TestStumpff:

    def test_values_at_zero(self):
        assert stumpff_c(0.0) == 0.5
        assert_allclose(stumpff_s(0.0), 1.0 / 6.0, rtol=1e-15)

    @pytest.mark.parametrize("z", [4.0, 0.5, 30.0])
    def test_trigonometric_branch(self, z):
        sz = np.sqrt(z)
        assert_allclose(stumpff_c(z), (1.0 - np.cos(sz)) / z, rtol=1e-14)
        assert_allclose(stumpff_s(z), (sz - np.sin(sz)) / sz ** 3, rtol=1e-14)

    @pytest.mark.parametrize("z", [-4.0, -0.5, -30.0])
    def test_hyperbolic_branch(self, z):
        sz = np.sqrt(-z)
        assert_allclose(stumpff_c(z), (np.cosh(sz) - 1.0) / (-z), rtol=1e-14)
        assert_allclose(stumpff_s(z), (np.sinh(sz) - sz) / sz ** 3, rtol=1e-14)

    @pytest.mark.parametrize("func", [stumpff_c, stumpff_s])
    def test_continuous_across_series_join(self, func):
        """Closed form and series agree on both sides of the z = 0 join."""
        for z in (1e-6, -1e-6):
            inside = func(z * 0.999)
            outside = func(z * 1.001)
            assert_allclose(inside, outside, rtol=1e-6)

    @pytest.mark.parametrize("func", [stumpff_c, stumpff_s])
    def test_monotonic_decreasing(self, func):
        zs = np.linspace(-20.0, 20.0, 401)
        values = np.array([func(z) for z in zs])
        assert np.all(np.diff(values) < 0.0)


# =============================================================================
# Test: Initial guess
# =============================================================================

class TestInitialGuess:

    def test_ellipse_guess(self):
        assert_allclose(initial_guess(5.0, 1.0, 1.0, 0.0, 4.0), 1.0)

    def test_zero_elapsed_time(self):
        assert initial_guess(0.0, 0.0, 1.9, 0.0, -3.8) == 0.0

    @pytest.mark.parametrize("dt", [-50.0, -20.0, 20.0, 50.0])
    def test_hyperbola_guess_sign(self, dt):
        x0 = initial_guess(dt, 0.0, 1.911, 0.0, -3.822)
        assert np.isfinite(x0)
        assert np.sign(x0) == np.sign(dt)


# =============================================================================
# Test: Solver
# =============================================================================

class TestSolver:

    def test_zero_time_is_identity(self):
        result = solve(0.0, 0.0, 1.025, 0.0, 3.822)
        assert result.converged
        assert result.x == 0.0
        assert_allclose([result.f, result.g, result.fdot, result.gdot],
                        [1.0, 0.0, 0.0, 1.0], atol=1e-15)

    def test_converges_quickly(self):
        el = OrbitalElements(3.822, 0.7318)
        t = time_since_periapsis(el.conic(), 2.0)
        result = solve(t, 0.0, el.rp, 0.0, el.a)
        assert result.converged
        assert result.iterations < 15
        assert abs(result.residual) < 1e-3

    def test_iteration_cap_reported(self):
        el = OrbitalElements(3.822, 0.7318)
        result = solve(10.0, 0.0, el.rp, 0.0, el.a, max_iterations=1)
        assert not result.converged
        assert result.iterations == 1

    @pytest.mark.parametrize("max_iterations", [1, 2, 50])
    def test_determinant_holds_for_any_iterate(self, max_iterations):
        """f*gdot - g*fdot = 1 whether or not Newton has converged."""
        el = OrbitalElements(3.822, 0.7318)
        result = solve(10.0, 0.0, el.rp, 0.0, el.a, max_iterations=max_iterations)
        assert_allclose(result.lagrange_determinant, 1.0, atol=1e-9)

    def test_time_of_flight_matches_request(self):
        el = OrbitalElements(-3.822, 1.5)
        result = solve(7.5, 0.0, el.rp, 0.0, el.a)
        assert result.converged
        assert_allclose(result.time_of_flight, 7.5 - result.residual, rtol=1e-14)
        assert abs(result.time_of_flight - 7.5) < 1e-3

    def test_radius_matches_orbit_equation(self):
        el = OrbitalElements(3.822, 0.7318)
        t = time_since_periapsis(el.conic(), 1.0)
        result = solve(t, 0.0, el.rp, 0.0, el.a)
        position = np.array([result.f * el.rp, result.g * el.vp])
        assert_allclose(np.linalg.norm(position), result.r, rtol=1e-10)


# =============================================================================
# Test: Round trip nu -> t -> solve -> nu
# =============================================================================

class TestRoundTrip:

    @pytest.mark.parametrize("e", [0.0, 0.1, 0.5, 0.7318, 0.9, 0.98])
    def test_ellipse_round_trip(self, e):
        el = OrbitalElements(3.822, e)
        conic = el.conic()
        for nu_deg in np.arange(-180.0, 180.0, 10.0):
            t = time_since_periapsis(conic, nu_deg * DEG2RAD)
            result = solve(t, 0.0, el.rp, 0.0, el.a)
            nu_back = recovered_true_anomaly_deg(el, result)
            assert abs(angle_difference_deg(nu_back, nu_deg)) < 2.0

    @pytest.mark.parametrize("e", [1.2, 1.5, 2.5, 5.0])
    def test_hyperbola_round_trip(self, e):
        el = OrbitalElements(-3.822, e)
        conic = el.conic()
        limit = conic.asymptote_anomaly - np.pi / 10
        for nu in np.linspace(-limit, limit, 25):
            t = time_since_periapsis(conic, nu)
            result = solve(t, 0.0, el.rp, 0.0, el.a)
            assert result.converged
            nu_back = recovered_true_anomaly_deg(el, result)
            assert abs(angle_difference_deg(nu_back, nu * RAD2DEG)) < 2.0
            assert_allclose(result.lagrange_determinant, 1.0, atol=1e-6)
