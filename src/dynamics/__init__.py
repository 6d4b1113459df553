"""
===============================================================================
CONIC ORBIT PROPAGATOR - Dynamics Module
===============================================================================
Two-body Keplerian motion on an ellipse or a hyperbola.

Submodules:
    orbital_elements   -- Element set, derived scalars, Ellipse/Hyperbola union
    anomaly            -- True / eccentric / hyperbolic / mean anomaly and time
    universal_variable -- Stumpff functions and the Newton universal-variable solve
===============================================================================
"""
