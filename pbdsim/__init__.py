"""Position based dynamics: particles, constraints, bodies and a simulation world."""

__version__ = "0.1.0"