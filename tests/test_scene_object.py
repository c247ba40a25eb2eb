import numpy as np

from pbdsim.dynamic_object import SingleParticle
from pbdsim.particle import Particle
from pbdsim.scene_object import SceneObject
from pbdsim.transform import Quaternion
from pbdsim.world import DynamicsWorld


def test_constructor_position_sets_matrix():
    so = SceneObject(position=(1.0, 2.0, 3.0))
    np.testing.assert_allclose(so.model_matrix[:3, 3], [1.0, 2.0, 3.0])
    np.testing.assert_allclose(so.position, [1.0, 2.0, 3.0])


def test_constructor_rotation_applied():
    rotation = Quaternion.from_axis_angle((0.0, 1.0, 0.0), 90.0)
    so = SceneObject(position=(0.0, 0.0, 0.0), rotation=rotation)
    np.testing.assert_allclose(so.model_matrix[:3, :3], rotation.to_matrix(), atol=1e-12)


def test_default_matrix_is_identity():
    so = SceneObject()
    np.testing.assert_array_equal(so.model_matrix, np.eye(4))


def test_set_translation_applies_on_update():
    so = SceneObject()
    so.set_translation((4.0, 5.0, 6.0))
    assert so.dirty is True
    np.testing.assert_array_equal(so.model_matrix, np.eye(4))
    so.update()
    assert so.dirty is False
    np.testing.assert_allclose(so.model_matrix[:3, 3], [4.0, 5.0, 6.0])


def test_set_rotation_waits_for_another_change():
    so = SceneObject()
    so.update()
    so.set_rotation(Quaternion.from_axis_angle((0.0, 0.0, 1.0), 45.0))
    so.update()
    np.testing.assert_array_equal(so.model_matrix, np.eye(4))
    so.set_translation((0.0, 0.0, 0.0))
    so.update()
    assert not np.allclose(so.model_matrix, np.eye(4))


def test_set_scale_keeps_translation():
    so = SceneObject(position=(1.0, 2.0, 3.0))
    so.set_scale((2.0, 3.0, 4.0))
    np.testing.assert_allclose(np.diag(so.model_matrix)[:3], [2.0, 3.0, 4.0])
    np.testing.assert_allclose(so.model_matrix[:3, 3], [1.0, 2.0, 3.0])
    np.testing.assert_allclose(so.transform.scaling, [2.0, 3.0, 4.0])


def test_set_radius_scales_to_diameter():
    so = SceneObject()
    so.set_radius(1.5)
    assert so.radius == 1.5
    np.testing.assert_allclose(so.transform.scaling, [3.0, 3.0, 3.0])
    np.testing.assert_allclose(np.diag(so.model_matrix)[:3], [3.0, 3.0, 3.0])


def test_dynamic_object_drives_matrix():
    particle = Particle(1.0, 2.0, 3.0, radius=0.25)
    body = SingleParticle(particle)
    so = SceneObject()
    so.make_dynamic(body)
    assert so.dynamic is True
    so.update()
    np.testing.assert_allclose(so.model_matrix, body.transform_matrix())
    np.testing.assert_allclose(so.position, particle.x)


def test_listener_called_only_when_active():
    calls = []
    so = SceneObject()
    so.listener = calls.append
    so.set_translation((1.0, 0.0, 0.0))
    so.update()
    assert calls == []
    so.active = True
    assert so.dirty is True
    so.update()
    assert calls == [so]


def test_num_constraints_without_dynamic_object():
    assert SceneObject().num_constraints() == 0


def test_num_constraints_counts_particle_springs():
    world = DynamicsWorld()
    a = world.add_particle(0.0, 0.0, 0.0)
    b = world.add_particle(1.0, 0.0, 0.0)
    world.add_distance_equality_constraint(a, b)
    so = SceneObject()
    so.make_dynamic(SingleParticle(a))
    assert so.num_constraints() == 1