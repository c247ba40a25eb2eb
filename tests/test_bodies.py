import numpy as np
import pytest

from pbdsim.bodies import RigidBody, RigidBodyGrid, SoftBody
from pbdsim.constraints import ConstraintType
from pbdsim.mesh import Model
from pbdsim.particle import Particle

QUAD_POSITIONS = [
    (0, 0, 0), (1, 0, 0), (1, 1, 0),
    (0, 0, 0), (1, 1, 0), (0, 1, 0),
]
QUAD_FACES = [(0, 1, 2), (3, 4, 5)]


def make_quad() -> Model:
    return Model.from_mesh(QUAD_POSITIONS, None, QUAD_FACES)


def populate(body, model):
    particles = []
    for i, point in enumerate(model.shape(0).points):
        particle = Particle(*point, particle_id=i)
        particles.append(particle)
        body.add_particle(point, particle)
    return particles


def test_rigid_body_copies_model():
    source = make_quad()
    body = RigidBody(source)
    body.model.shape(0).set_vertex_position(0, (7, 7, 7))
    assert np.array_equal(source.shape(0).vertices[0].position, [0, 0, 0])
    assert body.model.hidden is False


def test_rigid_body_constraint_links_particles():
    body = RigidBody(make_quad())
    particles = populate(body, body.model)
    constraint = body.create_constraint()
    assert constraint.ctype is ConstraintType.SHAPEMATCH
    assert body.num_particles() == len(particles)
    for particle in particles:
        assert particle.constraints[0]() is constraint
        assert len(particle.non_collision_particles) == len(particles) - 1
        assert particle not in particle.non_collision_particles


def test_rigid_body_update_model_buffers():
    body = RigidBody(make_quad())
    particles = populate(body, body.model)
    offset = np.array([0.0, 0.0, 2.0])
    for particle in particles:
        particle.x = particle.x + offset
    matrix = body.transform_matrix()
    assert np.array_equal(matrix, np.eye(4))
    shape = body.model.shape(0)
    for vertex, original in zip(shape.vertices, QUAD_POSITIONS):
        assert np.allclose(vertex.position, np.array(original) + offset)
    assert np.array_equal(body.translation(), np.zeros(3))


def test_particles_skips_dead_references():
    body = RigidBody()
    keep = Particle(1, 2, 3)
    body.add_particle((0, 0, 0), keep)
    body.add_particle((1, 0, 0), Particle(4, 5, 6))
    assert body.particles() == [keep]
    assert body.num_particles() == 2


def test_rigid_body_grid_transform_follows_translation():
    body = RigidBodyGrid()
    rest = [(0, 0, 0), (1, 0, 0), (0, 1, 0), (0, 0, 1)]
    particles = [Particle(*r) for r in rest]
    for r, particle in zip(rest, particles):
        body.add_particle(r, particle)
    assert np.array_equal(body.transform_matrix(), np.eye(4))
    constraint = body.create_constraint()
    assert constraint.ctype is ConstraintType.SHAPEMATCH_RIGID
    offset = np.array([1.0, -2.0, 0.5])
    for particle in particles:
        particle.p = particle.p + offset
    constraint.project()
    matrix = body.transform_matrix()
    assert np.allclose(matrix[:3, :3], np.eye(3))
    assert np.allclose(matrix[:3, 3], offset)
    for r, particle in zip(rest, particles):
        assert np.allclose(particle.p, np.array(r) + offset)


def test_soft_body_constraint_network_unique_edges():
    body = SoftBody(make_quad())
    edges = body.create_constraint_network()
    assert len(edges) == len(set(edges))
    assert frozenset((0, 2)) in edges
    assert len(edges) == 5
    assert all(len(edge) == 2 for edge in edges)


def test_soft_body_without_model_has_no_network():
    with pytest.raises(ValueError):
        SoftBody().create_constraint_network()


def test_soft_body_self_collision_and_buffers():
    body = SoftBody(make_quad())
    particles = populate(body, body.model)
    body.turn_off_self_collision()
    for particle in particles:
        assert len(particle.non_collision_particles) == len(particles) - 1
    particles[3].x = np.array([0.0, 3.0, 0.0])
    assert np.array_equal(body.transform_matrix(), np.eye(4))
    assert np.allclose(body.model.shape(0).vertices[5].position, [0, 3, 0])
    assert body.num_particles() == 4


def test_update_model_buffers_requires_live_particles():
    body = SoftBody(make_quad())
    for point in body.model.shape(0).points:
        body.add_particle(point, Particle(*point))
    with pytest.raises(RuntimeError):
        body.update_model_buffers()