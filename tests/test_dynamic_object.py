import numpy as np
import pytest

from pbdsim.dynamic_object import DynamicObject, SingleParticle
from pbdsim.particle import Particle


def test_base_object_has_no_motion_or_particles():
    obj = DynamicObject()
    assert np.array_equal(obj.transform_matrix(), np.eye(4))
    assert np.array_equal(obj.translation(), np.zeros(3))
    assert obj.particles() == []
    assert obj.num_particles() == 0


def test_single_particle_transform_follows_particle():
    particle = Particle(1.0, 2.0, 3.0, radius=0.25)
    obj = SingleParticle(particle)
    assert np.allclose(obj.transform_matrix()[:3, 3], [1.0, 2.0, 3.0])
    particle.x = np.array([-1.0, 0.0, 5.0])
    origin = obj.transform_matrix() @ np.array([0.0, 0.0, 0.0, 1.0])
    assert np.allclose(origin[:3], particle.x)


def test_single_particle_scale_is_diameter_at_creation():
    particle = Particle(radius=0.25)
    obj = SingleParticle(particle)
    particle.radius = 3.0
    assert np.allclose(np.diag(obj.transform_matrix())[:3], [0.5, 0.5, 0.5])


def test_single_particle_translation_is_position_copy():
    particle = Particle(4.0, 5.0, 6.0)
    obj = SingleParticle(particle)
    translation = obj.translation()
    assert np.array_equal(translation, particle.x)
    translation[0] = 0.0
    assert particle.x[0] == pytest.approx(4.0)


def test_single_particle_lists_no_body_particles():
    obj = SingleParticle(Particle())
    assert obj.particles() == []
    assert obj.num_particles() == 0
    assert obj.particle.radius == obj.radius