"""A control surface for steering a dynamics world from a user interface."""

from __future__ import annotations

from pbdsim.world import DynamicsWorld


class DynamicsWorldController:
    """Starts, stops and steps a world and forwards parameter changes to it."""

    def __init__(self, world: DynamicsWorld):
        self.world = world
        self.simulating = False

    def start_stop_sim(self) -> None:
        """Toggle continuous simulation."""
        self.simulating = not self.simulating
        self.world.set_simulate(self.simulating)

    def step_sim(self) -> None:
        """Advance the world by exactly one time step."""
        self.world.step()

    def set_gravity_y(self, y: float) -> None:
        self.world.gravity[1] = y

    def set_time_step_size(self, ts: float) -> None:
        self.world.dt = ts

    def set_precondition_iteration(self, iterations: int) -> None:
        self.world.precondition_iterations = iterations

    def set_constraint_iteration(self, iterations: int) -> None:
        self.world.constraint_iterations = iterations

    def set_pbd_damping(self, damping: float) -> None:
        self.world.damping = damping

    def set_distance_constraint_stretch(self, stretch: float) -> None:
        self.world.settings.distance_stretch = stretch

    def set_distance_constraint_compress(self, compress: float) -> None:
        self.world.settings.distance_compress = compress

    def set_shape_matching_attract(self, attract: float) -> None:
        self.world.shape_match_attract = attract

    def set_particle_mass(self, mass: float) -> None:
        self.world.set_all_particles_mass(mass)