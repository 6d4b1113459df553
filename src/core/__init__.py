"""
===============================================================================
CONIC ORBIT PROPAGATOR - Core Package
===============================================================================
Shared constants, canonical units and reference-frame rotations.

Modules:
    constants : Canonical unit system, central-body catalogue, time scales
    frames    : Perifocal -> inertial and perifocal -> local rotations
===============================================================================
"""
