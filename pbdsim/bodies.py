"""Multi-particle bodies: rigid shapes, rigid particle grids and soft meshes."""

from __future__ import annotations

import weakref

import numpy as np

from pbdsim.constraints import ShapeMatchingConstraint
from pbdsim.dynamic_object import DynamicObject
from pbdsim.mesh import Model, point_index_of_vertex
from pbdsim.particle import Particle


def _vec3(value) -> np.ndarray:
    return np.array(value, dtype=float).reshape(3)


def _live(refs) -> list[Particle]:
    return [p for p in (ref() for ref in refs) if p is not None]


def _disable_self_collision(refs) -> None:
    members = _live(refs)
    for particle in members:
        particle.non_collision_particles.extend(
            other for other in members if other is not particle
        )


def _copy_model(model: Model | None) -> Model | None:
    if model is None:
        return None
    copy = Model()
    copy.clone(model)
    return copy


def _write_positions(model: Model | None, refs) -> None:
    if model is None:
        return
    for shape in model.meshes:
        for point_index, vertex_indices in shape.points_to_verts.items():
            particle = refs[point_index]()
            if particle is None:
                raise RuntimeError(f"particle of point {point_index} no longer exists")
            position = particle.translation()
            for vertex_index in vertex_indices:
                shape.set_vertex_position(vertex_index, position)
        shape.recompute_normals()


def _shape_matching_constraint(refs, rest_shape, rigid: bool) -> ShapeMatchingConstraint:
    """Build a shape-matching constraint; particles keep only a weak reference to it."""
    constraint = ShapeMatchingConstraint(refs, rest_shape, rigid=rigid)
    for particle in _live(refs):
        particle.constraints.append(weakref.ref(constraint))
    _disable_self_collision(refs)
    return constraint


class RigidBody(DynamicObject):
    """A rigid mesh whose points are particles kept in shape by shape matching."""

    def __init__(self, model: Model | None = None):
        super().__init__()
        self._particles: list[weakref.ReferenceType] = []
        self.rest_shape: list[np.ndarray] = []
        self.constraint: ShapeMatchingConstraint | None = None
        self.model = _copy_model(model)
        if self.model is not None:
            self.model.hidden = False

    def add_particle(self, local_pos, particle: Particle) -> None:
        self._particles.append(weakref.ref(particle))
        self.rest_shape.append(_vec3(local_pos))

    def create_constraint(self) -> ShapeMatchingConstraint:
        """Build the shape-matching constraint and exclude body-internal collisions.

        The caller owns the returned constraint.
        """
        self.constraint = _shape_matching_constraint(self._particles, self.rest_shape, False)
        return self.constraint

    def update_model_buffers(self) -> None:
        """Move the mesh vertices to their particles and recompute flat normals."""
        _write_positions(self.model, self._particles)

    def transform_matrix(self) -> np.ndarray:
        """Deforms the mesh in place, so the model matrix is the identity."""
        self.update_model_buffers()
        return np.eye(4)

    def translation(self) -> np.ndarray:
        return np.zeros(3)

    def particles(self) -> list[Particle]:
        """The body's particles that still exist, in insertion order."""
        return _live(self._particles)

    def num_particles(self) -> int:
        return len(self._particles)


class RigidBodyGrid(DynamicObject):
    """A rigid body sampled by particles whose fitted motion is the model matrix."""

    def __init__(self):
        super().__init__()
        self._particles: list[weakref.ReferenceType] = []
        self.rest_shape: list[np.ndarray] = []
        self.constraint: ShapeMatchingConstraint | None = None

    def add_particle(self, local_pos, particle: Particle) -> None:
        self._particles.append(weakref.ref(particle))
        self.rest_shape.append(_vec3(local_pos))

    def create_constraint(self) -> ShapeMatchingConstraint:
        """Build the rigid shape-matching constraint and exclude body-internal collisions.

        The caller owns the returned constraint.
        """
        self.constraint = _shape_matching_constraint(self._particles, self.rest_shape, True)
        return self.constraint

    def transform_matrix(self) -> np.ndarray:
        if self.constraint is None:
            return np.eye(4)
        return self.constraint.transform.copy()

    def translation(self) -> np.ndarray:
        return np.zeros(3)

    def particles(self) -> list[Particle]:
        """The body's particles that still exist, in insertion order."""
        return _live(self._particles)

    def num_particles(self) -> int:
        return len(self._particles)


class SoftBody(DynamicObject):
    """A mesh whose edges become distance constraints between its point particles."""

    def __init__(self, model: Model | None = None):
        super().__init__()
        self._particles: list[weakref.ReferenceType] = []
        self.model = _copy_model(model)

    def add_particle(self, local_pos, particle: Particle) -> None:
        self._particles.append(weakref.ref(particle))

    def create_constraint_network(self) -> list[frozenset[int]]:
        """Unique point-index edges of the first shape's triangles, in first-seen order."""
        if self.model is None:
            raise ValueError("a soft body without a model has no edges")
        shape = self.model.shape(0)
        edges: list[frozenset[int]] = []
        seen: set[frozenset[int]] = set()
        indices = shape.indices
        for start in range(0, len(indices) - 2, 3):
            a, b, c = (point_index_of_vertex(shape.points_to_verts, v)
                       for v in indices[start:start + 3])
            for edge in (frozenset((a, b)), frozenset((b, c)), frozenset((c, a))):
                if edge not in seen:
                    seen.add(edge)
                    edges.append(edge)
        return edges

    def turn_off_self_collision(self) -> None:
        _disable_self_collision(self._particles)

    def update_model_buffers(self) -> None:
        """Move the mesh vertices to their particles and recompute flat normals."""
        _write_positions(self.model, self._particles)

    def transform_matrix(self) -> np.ndarray:
        """Deforms the mesh in place, so the model matrix is the identity."""
        self.update_model_buffers()
        return np.eye(4)

    def translation(self) -> np.ndarray:
        return np.zeros(3)

    def particles(self) -> list[Particle]:
        """The body's particles that still exist, in insertion order."""
        return _live(self._particles)

    def num_particles(self) -> int:
        return len(self._particles)