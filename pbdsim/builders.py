"""Builders that turn scene objects into simulated bodies of a dynamics world."""

from __future__ import annotations

from itertools import islice
from pathlib import Path

import numpy as np

from pbdsim.bodies import RigidBody, RigidBodyGrid, SoftBody
from pbdsim.dynamic_object import SingleParticle
from pbdsim.particle import Particle
from pbdsim.scene_object import SceneObject
from pbdsim.world import DynamicsWorld

_RIGID_PARTICLE_MASS = 0.1
_NON_UNIFORM_ID = 991
_SDF_DIRECTION_SCALE = 1_000_000


def _transform_point(matrix: np.ndarray, point) -> np.ndarray:
    homogeneous = matrix @ np.append(np.asarray(point, dtype=float), 1.0)
    w = homogeneous[3]
    if w not in (0.0, 1.0):
        return homogeneous[:3] / w
    return homogeneous[:3]


def _normalized(value) -> np.ndarray:
    vector = np.asarray(value, dtype=float)
    length = float(np.linalg.norm(vector))
    return vector / length if length > 0.0 else np.zeros(3)


def _read_points_and_normals(path) -> tuple[list[np.ndarray], list[np.ndarray]]:
    verts: list[np.ndarray] = []
    normals: list[np.ndarray] = []
    tokens = iter(Path(path).read_text().split())
    for token in tokens:
        if token not in ("v", "vn"):
            continue
        values = list(islice(tokens, 3))
        if len(values) < 3:
            raise ValueError(f"incomplete '{token}' record in {path}")
        vector = np.array([float(v) for v in values])
        (verts if token == "v" else normals).append(vector)
    return verts, normals


def add_dynamic_object_as_particle(world: DynamicsWorld, scene_object: SceneObject
                                   ) -> SingleParticle:
    """Simulate the scene object as one particle of its radius."""
    particle = world.add_particle(*scene_object.position)
    particle.body_id = particle.id
    particle.radius = scene_object.radius
    body = SingleParticle(particle)
    body.id = particle.id
    world.dynamic_objects.append(body)
    scene_object.make_dynamic(body)
    return body


def add_dynamic_object_as_rigid_body(world: DynamicsWorld, scene_object: SceneObject
                                     ) -> RigidBody | None:
    """Put a particle on every mesh point and keep them in shape; None without a model."""
    if scene_object.model is None:
        return None
    body = RigidBody(scene_object.model)
    world.object_count += 1
    scene_object.model = body.model
    for shape in body.model.meshes:
        for point in shape.points:
            particle = world.add_particle(*_transform_point(scene_object.model_matrix, point))
            particle.body_id = world.object_count
            particle.radius = scene_object.radius
            particle.set_mass(_RIGID_PARTICLE_MASS)
            body.add_particle(point, particle)
    world.constraints.append(body.create_constraint())
    world.dynamic_objects.append(body)
    body.update_model_buffers()
    scene_object.make_dynamic(body)
    return body


def add_dynamic_object_as_rigid_body_grid(world: DynamicsWorld, scene_object: SceneObject,
                                          path) -> RigidBodyGrid:
    """Build a rigid particle grid from the ``v`` and ``vn`` records of a file.

    Each normal gives its particle's signed-distance gradient: its length is the
    gradient magnitude and its direction the collision direction.
    """
    verts, normals = _read_points_and_normals(path)
    if len(normals) < len(verts):
        raise ValueError("every grid point needs a normal")
    body = RigidBodyGrid()
    world.object_count += 1
    for vertex, normal in zip(verts, normals):
        particle = world.add_particle(*vertex)
        particle.body_id = world.object_count
        particle.collision_grad_len = float(np.linalg.norm(normal))
        particle.collision_vector = _normalized(normal * _SDF_DIRECTION_SCALE)
        body.add_particle(vertex, particle)
    constraint = body.create_constraint()
    for particle in body.particles():
        placed = _transform_point(scene_object.model_matrix, particle.x)
        particle.x = placed.copy()
        particle.p = placed.copy()
    world.constraints.append(constraint)
    world.dynamic_objects.append(body)
    scene_object.make_dynamic(body)
    constraint.project()
    world.object_count += 1
    return body


def add_dynamic_object_as_non_uniform_particle(world: DynamicsWorld,
                                               scene_object: SceneObject,
                                               radius: float) -> SingleParticle:
    """An immovable collider of the given radius at the scene object's position."""
    world.particle_count += 1
    position = scene_object.position
    particle = Particle(*position, mass=world.particle_mass, radius=radius)
    particle.set_mass(0.0)
    particle.p = position.copy()
    particle.x = position.copy()
    world.non_uniform_particles.append(particle)
    body = SingleParticle(particle)
    scene_object.make_dynamic(body)
    particle.id = _NON_UNIFORM_ID
    return body


def add_dynamic_object_as_soft_body(world: DynamicsWorld, scene_object: SceneObject
                                    ) -> SoftBody | None:
    """Put a particle on every mesh point, joined by springs along mesh edges."""
    if scene_object.model is None:
        return None
    body = SoftBody(scene_object.model)
    world.object_count += 1
    scene_object.model = body.model
    for shape in body.model.meshes:
        for point in shape.points:
            particle = world.add_particle(*_transform_point(scene_object.model_matrix, point))
            particle.body_id = world.object_count
            body.add_particle(point, particle)
    members = body.particles()
    for edge in body.create_constraint_network():
        if len(edge) < 2:
            continue
        a, b = sorted(edge)[:2]
        world.add_distance_equality_constraint(members[a], members[b])
    world.dynamic_objects.append(body)
    body.turn_off_self_collision()
    body.update_model_buffers()
    scene_object.make_dynamic(body)
    return body


def add_rope(world: DynamicsWorld, start, end, num_particles: int) -> list[Particle]:
    """A chain of ``num_particles + 1`` particles from ``start`` to ``end`` joined by springs."""
    if num_particles < 1:
        raise ValueError("a rope needs at least one segment")
    start = np.asarray(start, dtype=float).reshape(3)
    line = np.asarray(end, dtype=float).reshape(3) - start
    direction = _normalized(line)
    step = float(np.linalg.norm(line)) / num_particles
    world.object_count += 1
    chain: list[Particle] = []
    for i in range(num_particles + 1):
        particle = world.add_particle(*(start + i * step * direction))
        particle.body_id = world.object_count
        if chain:
            world.add_distance_equality_constraint(chain[-1], particle)
        chain.append(particle)
    return chain