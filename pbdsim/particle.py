"""Point masses used by the position-based dynamics solver."""

from __future__ import annotations

import numpy as np


class Particle:
    """A spherical point mass.

    ``x`` is the current position, ``p`` the predicted position, ``v`` the
    velocity and ``w`` the inverse mass (zero for immovable particles).
    ``constraints`` holds weak references to constraints the particle takes
    part in; collision and pre-condition constraints are owned per step.
    """

    def __init__(self, x: float = 0.0, y: float = 0.0, z: float = 0.0,
                 particle_id: int = 0, mass: float = 1.0, radius: float = 0.5):
        self.x = np.array([x, y, z], dtype=float)
        self.p = self.x.copy()
        self.v = np.zeros(3)
        self.pp = np.zeros(3)
        self.radius = radius
        self.id = particle_id
        self.body_id = 0
        self.hash_value = 0
        self.cell = (0, 0, 0)
        self.collision_vector = np.zeros(3)
        self.collision_grad_len = 0.0
        self.constraints: list = []
        self.collision_constraints: list = []
        self.precondition_constraints: list = []
        self.non_collision_particles: list = []
        self._mass = mass
        self.w = 1.0 / mass if mass > 0 else 0.0

    @property
    def mass(self) -> float:
        return self._mass

    def set_mass(self, mass: float) -> None:
        """Set the mass; a non-positive mass makes the particle immovable."""
        if mass <= 0:
            self._mass = 0.0
            self.w = 0.0
            return
        self._mass = mass
        self.w = 1.0 / mass

    def set_cell(self, i: int, j: int, k: int) -> None:
        self.cell = (i, j, k)

    def transform_matrix(self) -> np.ndarray:
        """Model matrix scaling a unit sphere to the particle's diameter at ``x``."""
        matrix = np.eye(4)
        matrix[:3, :3] *= 2.0 * self.radius
        matrix[:3, 3] = self.x
        return matrix

    def translation(self) -> np.ndarray:
        return self.x.copy()

    def end_pin_to_position(self) -> None:
        """Drop every constraint attached to the particle."""
        self.constraints.clear()