"""Position-based constraints projected by the dynamics solver."""

from __future__ import annotations

import weakref
from dataclasses import dataclass
from enum import Enum, auto

import numpy as np

from pbdsim.particle import Particle

_HALF_SPACE_FRICTION_STATIC = 0.5
_HALF_SPACE_FRICTION_DYNAMIC = 0.5
_SDF_THRESHOLD = 0.01


def _vec3(value) -> np.ndarray:
    return np.asarray(value, dtype=float).reshape(3)


def _normalized(value) -> np.ndarray:
    vector = _vec3(value)
    length = float(np.linalg.norm(vector))
    return vector / length if length > 0.0 else np.zeros(3)


def _deref(item):
    return item() if isinstance(item, weakref.ReferenceType) else item


@dataclass
class SolverSettings:
    """Tunable coefficients shared by constraints of one world."""

    distance_stretch: float = 1.0
    distance_compress: float = 1.0
    friction_static: float = 0.5
    friction_dynamic: float = 0.5
    use_sdf_collision: bool = False


class ConstraintType(Enum):
    NONE = auto()
    HALFSPACE = auto()
    HALFSPACE_PRE = auto()
    PIN = auto()
    PARTICLEPARTICLE = auto()
    PARTICLEPARTICLE_PRE = auto()
    DISTANCE = auto()
    SHAPEMATCH = auto()
    SHAPEMATCH_RIGID = auto()
    PINTOGETHER = auto()


class Constraint:
    """Common state: a dirty flag and weak references to the constrained particles."""

    def __init__(self, ctype: ConstraintType = ConstraintType.NONE, particles=()):
        self.ctype = ctype
        self.dirty = True
        self.particles = [weakref.ref(p) for p in particles]

    def set_dirty(self, dirty: bool) -> None:
        self.dirty = dirty


class HalfSpaceConstraint(Constraint):
    """Keeps a particle on the positive side of a plane through ``qc``."""

    def __init__(self, particle: Particle, qc, normal):
        super().__init__(ConstraintType.HALFSPACE)
        self.particle = particle
        self.qc = _vec3(qc)
        self.normal = _vec3(normal)

    def project(self) -> None:
        if self.constraint_function() > 0:
            return
        self.particle.p = self.particle.p + self.delta_p()

    def constraint_function(self, position=None) -> float:
        pos = self.particle.p if position is None else _vec3(position)
        if np.array_equal(pos, self.qc):
            return 0.0
        return float(np.dot(pos - self.qc, self.normal))

    def delta_p(self) -> np.ndarray:
        return self.constraint_function() * -self.normal


class HalfSpacePreConditionConstraint(Constraint):
    """Pushes both the current and predicted position out of a plane."""

    def __init__(self, particle: Particle, qc, normal):
        super().__init__(ConstraintType.HALFSPACE_PRE)
        self.particle = particle
        self.qc = _vec3(qc)
        self.normal = _vec3(normal)

    def project(self) -> None:
        correction = self.constraint_function() * -self.normal
        self.particle.x = self.particle.x + correction
        self.particle.p = self.particle.p + correction

    def constraint_function(self) -> float:
        if np.array_equal(self.particle.x, self.qc):
            return 0.0
        return float(np.dot(self.particle.x - self.qc, self.normal))


class PinConstraint(Constraint):
    """Holds a particle's predicted position at a fixed point."""

    def __init__(self, particle: Particle, position):
        super().__init__(ConstraintType.PIN, [particle])
        self.particle = particle
        self.pin_position = _vec3(position).copy()

    def project(self) -> None:
        self.particle.p = self.pin_position.copy()

    def constraint_function(self) -> float:
        return 0.0

    def set_position(self, position) -> None:
        self.pin_position = _vec3(position).copy()


def _sdf_vector(p1: Particle, p2: Particle, vector) -> np.ndarray:
    if max(p1.collision_grad_len, p2.collision_grad_len) >= _SDF_THRESHOLD:
        if p1.collision_grad_len > p2.collision_grad_len:
            return -p1.collision_vector * p1.collision_grad_len
        return p2.collision_vector * p2.collision_grad_len
    return _vec3(vector)


def _separation(p1: Particle, p2: Particle) -> float:
    return float(np.linalg.norm(p2.p - p1.p)) - (p1.radius + p2.radius)


class ParticleParticleConstraint(Constraint):
    """Separates two overlapping particles along the line between them."""

    def __init__(self, p1: Particle, p2: Particle, d: float | None = None,
                 settings: SolverSettings | None = None):
        super().__init__(ConstraintType.PARTICLEPARTICLE)
        self.p1 = p1
        self.p2 = p2
        self.settings = settings if settings is not None else SolverSettings()
        self.d = _separation(p1, p2) if d is None else d

    def project(self) -> None:
        if not self.dirty:
            return
        p1, p2 = self.p1, self.p2
        direction = _normalized(p2.p - p1.p)
        total_weight = p1.w + p2.w
        self.d = self.constraint_function()
        collision = self.d * direction
        if self.settings.use_sdf_collision:
            collision = self.sdf_collision_vector(collision)
        if total_weight > 0:
            p1.p = p1.p + (p1.w / total_weight) * collision
            p2.p = p2.p - (p2.w / total_weight) * collision
        self.dirty = False

    def constraint_function(self) -> float:
        return _separation(self.p1, self.p2)

    def sdf_collision_vector(self, vector) -> np.ndarray:
        """The signed-distance gradient of the steeper particle, else ``vector``."""
        return _sdf_vector(self.p1, self.p2, vector)


class ParticleParticlePreConditionConstraint(Constraint):
    """Overlap of current positions; its correction is switched off by ``enabled``."""

    enabled = False

    def __init__(self, p1: Particle, p2: Particle, settings: SolverSettings | None = None):
        super().__init__(ConstraintType.PARTICLEPARTICLE_PRE)
        self.p1 = p1
        self.p2 = p2
        self.settings = settings if settings is not None else SolverSettings()
        self.d = self.constraint_function()

    def project(self) -> None:
        if not self.dirty or not self.enabled:
            return
        p1, p2 = self.p1, self.p2
        direction = _normalized(p2.x - p1.x)
        total_weight = p1.w + p2.w
        self.d = self.constraint_function()
        collision = self.d * direction
        if self.settings.use_sdf_collision:
            collision = _sdf_vector(p1, p2, collision)
        if total_weight > 0:
            correction_a = (p1.w / total_weight) * collision
            correction_b = (p2.w / total_weight) * -collision
            p1.x = p1.x + correction_a
            p2.x = p2.x + correction_b
            p1.p = p1.p + correction_a
            p2.p = p2.p + correction_b
        self.dirty = False

    def constraint_function(self) -> float:
        return _separation(self.p1, self.p2)


class DistanceEqualityConstraint(Constraint):
    """A spring that restores the distance between two particles to ``rest_length``."""

    def __init__(self, p1: Particle, p2: Particle, rest_length: float = 0.0,
                 settings: SolverSettings | None = None):
        super().__init__(ConstraintType.DISTANCE, [p1, p2])
        self.p1 = p1
        self.p2 = p2
        self.rest_length = rest_length
        self.settings = settings if settings is not None else SolverSettings()
        self.spring_dir = np.zeros(3)
        self.spring_length = 0.0

    def constraint_function(self) -> float:
        self.spring_dir = self.p1.p - self.p2.p
        self.spring_length = float(np.linalg.norm(self.spring_dir))
        return self.spring_length - self.rest_length

    def project(self) -> None:
        if not self.dirty:
            return
        c = self.constraint_function()
        if self.spring_length > self.rest_length:
            resistance = self.settings.distance_stretch
        else:
            resistance = self.settings.distance_compress
        w1, w2 = self.p1.w, self.p2.w
        if self.spring_length > 0 and w1 + w2 > 0:
            change_dir = self.spring_dir / self.spring_length
            self.p1.p = self.p1.p - (w1 / (w1 + w2)) * c * change_dir * resistance
            self.p2.p = self.p2.p + (w2 / (w1 + w2)) * c * change_dir * resistance
        self.dirty = False


class ShapeMatchingConstraint(Constraint):
    """Moves particles to the best rigid fit of their rest shape.

    With ``rigid`` set, the fitted rigid motion is also kept in ``transform``.
    Particles may be given as particles or weak references; dead references
    are skipped.
    """

    def __init__(self, particles, rest_shape, rigid: bool = False):
        super().__init__(ConstraintType.SHAPEMATCH_RIGID if rigid else ConstraintType.SHAPEMATCH)
        rest = [_vec3(r) for r in rest_shape]
        self.members: list[Particle] = []
        live_rest = []
        for item, position in zip(particles, rest):
            particle = _deref(item)
            if particle is not None:
                self.members.append(particle)
                live_rest.append(position)
        if not self.members:
            raise ValueError("shape matching needs at least one live particle")
        self.rest_positions = np.array(live_rest)
        self.rest_center = self.rest_positions.mean(axis=0)
        centred = np.array(rest) - self.rest_center
        self.aqq = centred.T @ centred
        self.rotation = np.eye(3)
        self.previous_rotation = np.eye(3)
        self.transform = np.eye(4)

    def project(self) -> None:
        if not self.dirty:
            return
        positions = np.array([p.p for p in self.members])
        center = positions.mean(axis=0)
        rest_offsets = self.rest_positions - self.rest_center
        apq = (positions - center).T @ rest_offsets
        a = apq @ np.linalg.inv(self.aqq)
        u, _, vt = np.linalg.svd(a)
        rotation = u @ vt
        if self.ctype is ConstraintType.SHAPEMATCH_RIGID:
            transform = np.eye(4)
            transform[:3, :3] = rotation
            transform[:3, 3] = center - rotation @ self.rest_center
            self.transform = transform
        self.previous_rotation = self.rotation
        self.rotation = rotation
        goals = rest_offsets @ rotation.T + center
        for particle, goal in zip(self.members, goals):
            particle.p = goal.copy()
        self.dirty = False

    def constraint_function(self) -> float:
        return 0.0


class FrictionConstraint(Constraint):
    """Damps relative tangential motion of two colliding particles."""

    def __init__(self, p1: Particle, p2: Particle, settings: SolverSettings | None = None):
        super().__init__()
        self.p1 = p1
        self.p2 = p2
        self.settings = settings if settings is not None else SolverSettings()
        self.collision_normal = _normalized(p2.x - p1.x)

    def project(self) -> None:
        if not self.dirty:
            return
        p1, p2 = self.p1, self.p2
        td = (p1.p - p1.x) - (p2.p - p2.x) - self.constraint_function() * self.collision_normal
        td_length = float(np.linalg.norm(td))
        total_weight = p1.w + p2.w
        if td_length < self.settings.friction_static:
            xj = td
        else:
            xj = td * min(self.settings.friction_dynamic / td_length, 1.0)
        if total_weight > 0:
            p1.p = p1.p - (p1.w / total_weight) * xj
            p2.p = p2.p + (p2.w / total_weight) * xj
        self.dirty = False

    def constraint_function(self) -> float:
        relative = (self.p1.p - self.p1.x) - (self.p2.p - self.p2.x)
        return float(np.dot(relative, self.collision_normal))


class HalfSpaceFrictionConstraint(Constraint):
    """Damps a particle's tangential motion along a plane."""

    def __init__(self, particle: Particle, origin, normal):
        super().__init__()
        self.particle = particle
        self.plane_origin = _vec3(origin)
        self.collision_normal = _vec3(normal)

    def project(self) -> None:
        if not self.dirty:
            return
        particle = self.particle
        td = (particle.p - particle.x) - self.constraint_function() * self.collision_normal
        td_length = float(np.linalg.norm(td))
        if td_length < _HALF_SPACE_FRICTION_STATIC:
            particle.p = particle.p - td
        else:
            particle.p = particle.p - td * min(_HALF_SPACE_FRICTION_DYNAMIC / td_length, 1.0)
        self.dirty = False

    def constraint_function(self) -> float:
        return float(np.dot(self.particle.p - self.particle.x, self.collision_normal))


class PinTogetherConstraint(Constraint):
    """Moves a group of particles to their common mean position."""

    def __init__(self, particles):
        members = list(particles)
        super().__init__(ConstraintType.PINTOGETHER, members)
        self.members = members
        self.average_position = np.zeros(3)

    def project(self) -> None:
        self.average_position = np.mean([p.p for p in self.members], axis=0)
        for particle in self.members:
            particle.p = self.average_position.copy()

    def constraint_function(self) -> float:
        return 1.0