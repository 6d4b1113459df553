"""
===============================================================================
CONIC ORBIT PROPAGATOR - Simulation Module
===============================================================================
Sampling the conic into a lookup table and playing it back in real time.

Submodules:
    trajectory_table -- Fixed-size true-anomaly table of Lagrange coefficients
    animation        -- Simulation clock and linear table interpolator
    sim_engine       -- Session orchestrator: element edits, playback, readouts
===============================================================================
"""
