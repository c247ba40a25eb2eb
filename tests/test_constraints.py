import itertools

import numpy as np
import pytest

from pbdsim.constraints import (
    ConstraintType,
    DistanceEqualityConstraint,
    FrictionConstraint,
    HalfSpaceConstraint,
    HalfSpaceFrictionConstraint,
    HalfSpacePreConditionConstraint,
    ParticleParticleConstraint,
    ParticleParticlePreConditionConstraint,
    PinConstraint,
    PinTogetherConstraint,
    ShapeMatchingConstraint,
    SolverSettings,
)
from pbdsim.particle import Particle
from pbdsim.transform import Quaternion

UP = (0.0, 1.0, 0.0)


def test_half_space_projects_onto_plane():
    particle = Particle(0.0, 1.0, 0.0)
    particle.p = np.array([0.5, -1.0, 0.0])
    constraint = HalfSpaceConstraint(particle, (0.0, 0.0, 0.0), UP)
    assert constraint.constraint_function() < 0
    constraint.project()
    assert constraint.constraint_function() == pytest.approx(0.0)
    assert particle.p[0] == 0.5
    assert constraint.ctype is ConstraintType.HALFSPACE


def test_half_space_leaves_particle_above_plane():
    particle = Particle(0.0, 2.0, 0.0)
    constraint = HalfSpaceConstraint(particle, (0.0, 0.0, 0.0), UP)
    constraint.project()
    assert np.array_equal(particle.p, [0.0, 2.0, 0.0])


def test_half_space_function_at_contact_point_is_zero():
    particle = Particle()
    constraint = HalfSpaceConstraint(particle, (1.0, 2.0, 3.0), UP)
    assert constraint.constraint_function((1.0, 2.0, 3.0)) == 0.0


def test_half_space_precondition_moves_position_and_prediction():
    particle = Particle(0.0, -0.5, 0.0)
    particle.p = np.array([1.0, -0.5, 0.0])
    constraint = HalfSpacePreConditionConstraint(particle, (0.0, 0.0, 0.0), UP)
    constraint.project()
    assert constraint.constraint_function() == pytest.approx(0.0)
    assert particle.p[1] == pytest.approx(particle.x[1])
    assert particle.p[0] == 1.0


def test_pin_constraint_holds_position():
    particle = Particle(1.0, 1.0, 1.0)
    pin = PinConstraint(particle, (3.0, 4.0, 5.0))
    pin.project()
    assert np.array_equal(particle.p, [3.0, 4.0, 5.0])
    pin.set_position((0.0, 1.0, 0.0))
    pin.project()
    assert np.array_equal(particle.p, [0.0, 1.0, 0.0])
    assert pin.constraint_function() == 0.0
    assert pin.particles[0]() is particle


def test_particle_particle_resolves_overlap():
    p1 = Particle(0.0, 0.0, 0.0, radius=0.5)
    p2 = Particle(0.5, 0.0, 0.0, radius=0.5)
    constraint = ParticleParticleConstraint(p1, p2)
    assert constraint.constraint_function() < 0
    constraint.project()
    assert np.linalg.norm(p2.p - p1.p) == pytest.approx(1.0)
    assert constraint.dirty is False
    assert p1.p[0] == pytest.approx(-p2.p[0] + 0.5)


def test_particle_particle_clean_constraint_does_nothing():
    p1 = Particle(0.0, 0.0, 0.0)
    p2 = Particle(0.5, 0.0, 0.0)
    constraint = ParticleParticleConstraint(p1, p2)
    constraint.set_dirty(False)
    constraint.project()
    assert np.array_equal(p2.p, [0.5, 0.0, 0.0])


def test_particle_particle_immovable_partner_stays():
    p1 = Particle(0.0, 0.0, 0.0, mass=0.0)
    p2 = Particle(0.5, 0.0, 0.0)
    ParticleParticleConstraint(p1, p2).project()
    assert np.array_equal(p1.p, [0.0, 0.0, 0.0])
    assert np.linalg.norm(p2.p) == pytest.approx(1.0)


def test_sdf_vector_below_threshold_is_unchanged():
    constraint = ParticleParticleConstraint(Particle(), Particle(1.0, 0.0, 0.0))
    assert np.array_equal(constraint.sdf_collision_vector((1.0, 2.0, 3.0)), [1.0, 2.0, 3.0])


def test_sdf_vector_uses_steeper_particle():
    p1 = Particle()
    p2 = Particle(1.0, 0.0, 0.0)
    p1.collision_vector = np.array([0.0, 1.0, 0.0])
    p1.collision_grad_len = 2.0
    p2.collision_vector = np.array([1.0, 0.0, 0.0])
    p2.collision_grad_len = 1.0
    constraint = ParticleParticleConstraint(p1, p2)
    assert np.allclose(constraint.sdf_collision_vector(np.zeros(3)), -p1.collision_vector * 2.0)
    p2.collision_grad_len = 3.0
    assert np.allclose(constraint.sdf_collision_vector(np.zeros(3)), p2.collision_vector * 3.0)


def test_particle_particle_precondition_is_detection_only():
    p1 = Particle(0.0, 0.0, 0.0)
    p2 = Particle(0.5, 0.0, 0.0)
    constraint = ParticleParticlePreConditionConstraint(p1, p2)
    assert constraint.d == pytest.approx(constraint.constraint_function())
    constraint.project()
    assert np.array_equal(p1.p, [0.0, 0.0, 0.0])
    assert np.array_equal(p2.x, [0.5, 0.0, 0.0])


def test_distance_constraint_restores_rest_length():
    p1 = Particle(0.0, 0.0, 0.0)
    p2 = Particle(3.0, 0.0, 0.0)
    spring = DistanceEqualityConstraint(p1, p2, rest_length=1.0)
    spring.project()
    assert np.linalg.norm(p2.p - p1.p) == pytest.approx(1.0)
    assert (p1.p + p2.p)[0] / 2 == pytest.approx(1.5)
    assert spring.ctype is ConstraintType.DISTANCE


def test_distance_constraint_zero_stretch_does_not_move():
    p1 = Particle(0.0, 0.0, 0.0)
    p2 = Particle(3.0, 0.0, 0.0)
    spring = DistanceEqualityConstraint(p1, p2, 1.0, SolverSettings(distance_stretch=0.0))
    spring.project()
    assert np.array_equal(p2.p, [3.0, 0.0, 0.0])
    assert spring.constraint_function() == pytest.approx(2.0)


def _tetra():
    return [np.array(v, dtype=float) for v in
            [(0, 0, 0), (1, 0, 0), (0, 1, 0), (0, 0, 1)]]


def test_shape_matching_recovers_rigid_motion():
    rest = _tetra()
    rotation = Quaternion.from_axis_angle((0.0, 0.0, 1.0), 90.0).to_matrix()
    offset = np.array([2.0, 3.0, 4.0])
    particles = []
    for point in rest:
        moved = rotation @ point + offset
        particles.append(Particle(*moved))
    constraint = ShapeMatchingConstraint(particles, rest, rigid=True)
    constraint.project()
    for particle, point in zip(particles, rest):
        assert np.allclose(particle.p, rotation @ point + offset)
        assert np.allclose(constraint.transform @ np.append(point, 1.0), np.append(particle.p, 1.0))
    assert np.allclose(constraint.rotation, rotation)


def test_shape_matching_result_is_rigid():
    rest = _tetra()
    particles = [Particle(*p) for p in rest]
    particles[1].p = np.array([1.4, 0.3, -0.2])
    particles[3].p = np.array([0.1, -0.2, 1.3])
    ShapeMatchingConstraint(particles, rest).project()
    for i, j in itertools.combinations(range(4), 2):
        assert np.linalg.norm(particles[i].p - particles[j].p) == pytest.approx(
            np.linalg.norm(rest[i] - rest[j]))


def test_shape_matching_without_particles_raises():
    with pytest.raises(ValueError):
        ShapeMatchingConstraint([], [])


def test_friction_equalises_tangential_motion():
    p1 = Particle(0.0, 0.0, 0.0)
    p2 = Particle(1.0, 0.0, 0.0)
    p1.p = np.array([0.0, 0.1, 0.0])
    FrictionConstraint(p1, p2).project()
    assert np.allclose(p1.p - p1.x, p2.p - p2.x)


def test_friction_with_equal_motion_changes_nothing():
    p1 = Particle(0.0, 0.0, 0.0)
    p2 = Particle(1.0, 0.0, 0.0)
    p1.p = np.array([0.0, 0.2, 0.0])
    p2.p = np.array([1.0, 0.2, 0.0])
    FrictionConstraint(p1, p2).project()
    assert np.allclose(p1.p, [0.0, 0.2, 0.0])
    assert np.allclose(p2.p, [1.0, 0.2, 0.0])


def test_half_space_friction_removes_small_sliding():
    particle = Particle(0.0, 1.0, 0.0)
    particle.p = np.array([0.2, 0.9, 0.0])
    constraint = HalfSpaceFrictionConstraint(particle, (0.0, 0.0, 0.0), UP)
    constraint.project()
    assert particle.p[0] == pytest.approx(particle.x[0])
    assert particle.p[1] == pytest.approx(0.9)
    assert constraint.dirty is False


def test_pin_together_moves_all_to_mean():
    particles = [Particle(0.0, 0.0, 0.0), Particle(2.0, 0.0, 0.0), Particle(1.0, 3.0, 0.0)]
    constraint = PinTogetherConstraint(particles)
    constraint.project()
    assert all(np.allclose(p.p, particles[0].p) for p in particles)
    assert np.allclose(particles[0].p, [1.0, 1.0, 0.0])
    assert constraint.constraint_function() == 1.0
    assert constraint.ctype is ConstraintType.PINTOGETHER


def test_set_dirty():
    constraint = PinConstraint(Particle(), (0.0, 0.0, 0.0))
    assert constraint.dirty is True
    constraint.set_dirty(False)
    assert constraint.dirty is False