"""Objects placed in a scene, optionally driven by a dynamic object."""

from __future__ import annotations

from collections.abc import Callable

import numpy as np

from pbdsim.dynamic_object import DynamicObject, SingleParticle
from pbdsim.transform import Quaternion, Transform


class SceneObject:
    """A placed model or shape with a transform and a cached model matrix.

    When made dynamic, the model matrix follows the dynamic object on every
    :meth:`update`. While active, every refresh of the matrix calls ``listener``
    with the object.
    """

    def __init__(self, scene=None, model=None, shape=None, position=None,
                 rotation: Quaternion | None = None, material_id: int = 0,
                 radius: float = 0.5):
        self.scene = scene
        self.model = model
        self.shape = shape
        self.material_id = material_id
        self.transform = Transform()
        self.model_matrix = np.eye(4)
        self.radius = radius
        self.id = 0
        self.dirty = False
        self.dynamic = False
        self.pinned = False
        self.hidden = False
        self.dynamic_object: DynamicObject | None = None
        self.pin_constraint = None
        self.listener: Callable[[SceneObject], None] | None = None
        self._active = False
        if position is not None:
            self.transform.set_translation(position)
            if rotation is not None:
                self.transform.rotate(rotation)
            self.model_matrix = self.transform.to_matrix()

    @property
    def position(self) -> np.ndarray:
        return self.transform.translation

    @property
    def active(self) -> bool:
        return self._active

    @active.setter
    def active(self, value: bool) -> None:
        self._active = value
        self.dirty = True

    def set_translation(self, translation) -> None:
        self.transform.set_translation(translation)
        self.dirty = True

    def set_rotation(self, rotation: Quaternion) -> None:
        """Set the rotation; the model matrix refreshes with the next other change."""
        self.transform.set_rotation(rotation)

    def set_scale(self, scale) -> None:
        """Multiply the scale, applying it to the cached model matrix at once."""
        scale = np.asarray(scale, dtype=float).reshape(3)
        self.transform.scale(scale)
        self.dirty = True
        self.model_matrix = self.model_matrix @ np.diag([*scale, 1.0])

    def set_radius(self, radius: float) -> None:
        self.set_scale((2.0 * radius, 2.0 * radius, 2.0 * radius))
        self.radius = radius

    def _notify(self) -> None:
        if self.listener is not None:
            self.listener(self)

    def update(self) -> None:
        """Refresh the model matrix from the dynamic object or a changed transform."""
        if self.dynamic and self.dynamic_object is not None:
            self.model_matrix = self.dynamic_object.transform_matrix()
            self.set_translation(self.dynamic_object.translation())
            if self._active:
                self._notify()
        elif self.dirty:
            self.dirty = False
            self.model_matrix = self.transform.to_matrix()
            if self._active:
                self._notify()

    def make_dynamic(self, dynamic_object: DynamicObject) -> None:
        self.dynamic_object = dynamic_object
        self.dynamic = True

    def num_constraints(self) -> int:
        """Constraints attached to the particle this object follows, if any."""
        if isinstance(self.dynamic_object, SingleParticle):
            return len(self.dynamic_object.particle.constraints)
        return 0