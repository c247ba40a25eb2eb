"""The position-based dynamics world: integration, collision detection and solving."""

from __future__ import annotations

import math
import weakref

import numpy as np

from pbdsim.collision import (
    Plane,
    check_sphere_sphere as _spheres_overlap,
    distance_from_point_to_plane,
    intersect_segment_plane,
)
from pbdsim.constraints import (
    Constraint,
    DistanceEqualityConstraint,
    FrictionConstraint,
    HalfSpaceConstraint,
    HalfSpaceFrictionConstraint,
    HalfSpacePreConditionConstraint,
    ParticleParticleConstraint,
    ParticleParticlePreConditionConstraint,
    PinTogetherConstraint,
    SolverSettings,
)
from pbdsim.hashgrid import HashGrid
from pbdsim.particle import Particle

_SLEEP_DISTANCE = 0.003
_MIN_PLANE_MOTION = 0.0001
_MIN_BODY_MASS = 0.001


def _vec3(value) -> np.ndarray:
    return np.array(value, dtype=float).reshape(3)


def _resolve(item):
    return item() if isinstance(item, weakref.ReferenceType) else item


def _live_constraints(particle: Particle):
    for item in particle.constraints:
        constraint = _resolve(item)
        if constraint is not None:
            yield constraint


def _skew(r: np.ndarray) -> np.ndarray:
    return np.array([
        [0.0, -r[2], r[1]],
        [r[2], 0.0, -r[0]],
        [-r[1], r[0], 0.0],
    ])


class DynamicsWorld:
    """Owns particles, planes and constraints and advances them one time step at a time."""

    def __init__(self, dt: float = 1.0 / 60.0, gravity=(0.0, -9.8, 0.0),
                 precondition_iterations: int = 1, constraint_iterations: int = 4,
                 damping: float = 0.0, particle_mass: float = 1.0,
                 cell_size: float = 1.0, settings: SolverSettings | None = None,
                 scene=None):
        self.dt = dt
        self.gravity = _vec3(gravity)
        self.precondition_iterations = precondition_iterations
        self.constraint_iterations = constraint_iterations
        self.damping = damping
        self.particle_mass = particle_mass
        self.settings = settings if settings is not None else SolverSettings()
        self.shape_match_attract = 1.0
        self.scene = scene
        self.simulating = False
        self.frame_count = 0
        self.hash_grid = HashGrid(cell_size)
        self.particles: list[Particle] = []
        self.non_uniform_particles: list[Particle] = []
        self.planes: list[Plane] = []
        self.constraints: list[Constraint] = []
        self.dynamic_objects: list = []
        self.debug_lines: list[tuple[Particle, Particle]] = []
        self.particle_count = 0
        self.object_count = 0

    def initialize(self) -> None:
        """Add the ground plane and clear every particle's accumulated correction."""
        self.add_plane(Plane(normal=(0.0, 1.0, 0.0), offset=(0.0, 0.0, 0.0)))
        for particle in self.particles:
            particle.pp = np.zeros(3)

    def update(self) -> None:
        """Advance the simulation by one time step when simulating."""
        if not self.simulating:
            return
        dt = self.dt

        for particle in self.particles:
            particle.v = particle.v + dt * particle.w * self.gravity

        self.pbd_damping()

        for particle in self.particles:
            particle.p = particle.x + dt * particle.v

        self.collision_check_all()

        for particle in self.particles:
            for constraint in _live_constraints(particle):
                constraint.set_dirty(True)

        for _ in range(self.precondition_iterations):
            for particle in self.particles:
                for constraint in particle.precondition_constraints:
                    constraint.project()
        self.frame_count += 1

        for _ in range(self.constraint_iterations):
            for particle in self.particles:
                for constraint in _live_constraints(particle):
                    constraint.project()
            for particle in self.particles:
                for constraint in _live_constraints(particle):
                    constraint.set_dirty(True)
                for constraint in particle.collision_constraints:
                    constraint.project()

        for particle in self.particles:
            particle.collision_constraints.clear()
            particle.precondition_constraints.clear()

        for particle in self.particles:
            moved = particle.p - particle.x
            if float(np.linalg.norm(moved)) < _SLEEP_DISTANCE:
                particle.v = np.zeros(3)
                continue
            particle.v = moved / dt
            particle.x = particle.p.copy()

        for particle in self.non_uniform_particles:
            for constraint in _live_constraints(particle):
                constraint.project()
            particle.x = particle.p.copy()

    def step(self) -> None:
        """Advance exactly one time step, then stop simulating."""
        self.simulating = True
        self.update()
        self.simulating = False

    def set_simulate(self, simulating: bool) -> None:
        self.simulating = simulating

    def set_all_particles_mass(self, mass: float) -> None:
        """Give every movable particle the same mass; immovable ones stay so."""
        for particle in self.particles:
            if particle.mass <= _MIN_BODY_MASS:
                continue
            particle.set_mass(mass)

    def time_step_ms(self) -> int:
        return int(self.dt * 1000)

    def pbd_damping(self) -> None:
        """Blend each body's particle velocities towards its rigid-body motion."""
        for body in self.dynamic_objects:
            if body.num_particles() < 1:
                continue
            members = body.particles()
            total_mass = sum(p.mass for p in members)
            if total_mass <= _MIN_BODY_MASS:
                return
            xcm = sum((p.mass * p.x for p in members), np.zeros(3)) / total_mass
            vcm = sum((p.mass * p.v for p in members), np.zeros(3)) / total_mass

            angular_momentum = np.zeros(3)
            inertia = np.zeros((3, 3))
            for particle in members:
                ri = particle.x - xcm
                angular_momentum += np.cross(ri, particle.mass * particle.v)
                skew = _skew(ri)
                inertia += skew @ skew.T * particle.mass
            omega = np.linalg.pinv(inertia) @ angular_momentum

            for particle in members:
                ri = particle.x - xcm
                dv = vcm + np.cross(omega, ri) - particle.v
                particle.v = particle.v + self.damping * dv

    def add_particle(self, x: float, y: float, z: float) -> Particle:
        self.particle_count += 1
        particle = Particle(x, y, z, self.particle_count, mass=self.particle_mass)
        self.particles.append(particle)
        return particle

    def add_plane(self, plane: Plane) -> None:
        self.planes.append(plane)

    def collision_check_all(self) -> None:
        self.hash_grid.clear()
        for particle in self.particles:
            self.collision_check(particle)

    def collision_check(self, particle: Particle) -> None:
        """Insert a particle into the grid and collide it with neighbours and planes."""
        cell = self.hash_grid.point_to_cell(*particle.p)
        cell_hash = HashGrid.hash_cell(cell)
        particle.hash_value = cell_hash
        self.hash_grid.insert(cell_hash, particle)

        for neighbour_cell in HashGrid.neighbour_cells(cell):
            neighbour_hash = HashGrid.hash_cell(neighbour_cell)
            if not self.hash_grid.cell_exists(neighbour_hash):
                continue
            for other in self.hash_grid.buckets[neighbour_hash]:
                if particle.body_id != other.body_id:
                    self.check_sphere_sphere(particle, other)

        for plane in self.planes:
            self.check_sphere_plane(particle, plane)

        for other in self.non_uniform_particles:
            self.check_sphere_sphere(particle, other)

    def check_sphere_sphere(self, p1: Particle, p2: Particle) -> None:
        """Add contact constraints for overlap of predicted and of current positions."""
        if _spheres_overlap(p1.p, p2.p, p1.radius, p2.radius) is not None:
            self.add_particle_particle_constraint(p1, p2)
            self.add_friction_constraint(p1, p2)
        if _spheres_overlap(p1.x, p2.x, p1.radius, p2.radius) is not None:
            self.add_particle_particle_precondition_constraint(p1, p2)

    def check_sphere_plane(self, particle: Particle, plane: Plane) -> None:
        """Add half-space constraints when the predicted position crosses the plane."""
        origin = plane.offset + particle.radius * plane.normal
        if distance_from_point_to_plane(particle.p, plane.normal, origin) > 0:
            return
        qc = intersect_segment_plane(particle.x, particle.p, plane.normal, origin)
        if float(np.linalg.norm(particle.x - particle.p)) < _MIN_PLANE_MOTION:
            return
        if math.isnan(float(qc[0])):
            return
        particle.collision_constraints.append(HalfSpaceConstraint(particle, qc, plane.normal))
        self.add_half_space_friction_constraint(particle, plane.offset, plane.normal)
        self.add_half_space_precondition_constraint(particle, qc, plane.normal)

    def add_distance_equality_constraint(self, p1: Particle, p2: Particle
                                         ) -> DistanceEqualityConstraint:
        """A spring whose rest length is the particles' current distance."""
        rest_length = float(np.linalg.norm(p1.x - p2.x))
        spring = DistanceEqualityConstraint(p1, p2, rest_length, settings=self.settings)
        self.constraints.append(spring)
        p1.constraints.append(weakref.ref(spring))
        p2.constraints.append(weakref.ref(spring))
        self.debug_lines.append((p1, p2))
        return spring

    def add_pin_together_constraint(self, particles) -> PinTogetherConstraint:
        members = list(particles)
        constraint = PinTogetherConstraint(members)
        for particle in members:
            particle.constraints.append(weakref.ref(constraint))
        self.constraints.append(constraint)
        return constraint

    def add_particle_particle_constraint(self, p1: Particle, p2: Particle) -> None:
        constraint = ParticleParticleConstraint(p1, p2, settings=self.settings)
        p1.collision_constraints.append(constraint)
        p2.collision_constraints.append(constraint)

    def add_particle_particle_precondition_constraint(self, p1: Particle, p2: Particle) -> None:
        constraint = ParticleParticlePreConditionConstraint(p1, p2, settings=self.settings)
        p1.precondition_constraints.append(constraint)
        p2.precondition_constraints.append(constraint)

    def add_friction_constraint(self, p1: Particle, p2: Particle) -> None:
        constraint = FrictionConstraint(p1, p2, settings=self.settings)
        p1.collision_constraints.append(constraint)
        p2.collision_constraints.append(constraint)

    def add_half_space_friction_constraint(self, particle: Particle, origin, normal) -> None:
        """Friction against the ground plane; the plane given is not used."""
        constraint = HalfSpaceFrictionConstraint(particle, (0.0, 0.0, 0.0), (0.0, 1.0, 0.0))
        particle.collision_constraints.append(constraint)

    def add_half_space_precondition_constraint(self, particle: Particle, qc, normal) -> None:
        constraint = HalfSpacePreConditionConstraint(particle, qc, normal)
        particle.precondition_constraints.append(constraint)

    def delete_constraint(self, constraint: Constraint) -> None:
        """Detach a constraint from its particles and from the world."""
        for ref in constraint.particles:
            particle = ref()
            if particle is None:
                continue
            particle.constraints = [
                item for item in particle.constraints if _resolve(item) is not constraint
            ]
        self.constraints = [c for c in self.constraints if c is not constraint]