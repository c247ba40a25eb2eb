"""Simulated objects that drive the transforms of scene objects."""

from __future__ import annotations

import numpy as np

from pbdsim.particle import Particle


class DynamicObject:
    """An object of the dynamics world; by default it has no particles and no motion."""

    def __init__(self):
        self.id = 0

    def transform_matrix(self) -> np.ndarray:
        return np.eye(4)

    def translation(self) -> np.ndarray:
        return np.zeros(3)

    def particles(self) -> list:
        return []

    def num_particles(self) -> int:
        return 0


class SingleParticle(DynamicObject):
    """A dynamic object that follows one particle, drawn at its diameter."""

    def __init__(self, particle: Particle):
        super().__init__()
        self.particle = particle
        self.radius = particle.radius

    def transform_matrix(self) -> np.ndarray:
        matrix = np.eye(4)
        matrix[:3, :3] *= 2.0 * self.radius
        matrix[:3, 3] = self.particle.x
        return matrix

    def translation(self) -> np.ndarray:
        return self.particle.x.copy()

    def particles(self) -> list:
        """A lone particle is not listed as a body particle."""
        return []

    def num_particles(self) -> int:
        return 0