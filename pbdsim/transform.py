"""Quaternions and translate/rotate/scale transforms producing 4x4 matrices."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

_FUZZY_ZERO = 1e-5


def _vec3(value) -> np.ndarray:
    return np.asarray(value, dtype=float).reshape(3)


def _normalized(value) -> np.ndarray:
    vector = _vec3(value)
    length = float(np.linalg.norm(vector))
    return vector / length if length > 0.0 else np.zeros(3)


@dataclass(frozen=True)
class Quaternion:
    """A rotation quaternion with scalar part ``w`` and vector part ``(x, y, z)``."""

    w: float = 1.0
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @staticmethod
    def identity() -> Quaternion:
        return Quaternion(1.0, 0.0, 0.0, 0.0)

    @staticmethod
    def from_axis_angle(axis, degrees: float) -> Quaternion:
        """Rotation of ``degrees`` around ``axis``."""
        unit = _normalized(axis)
        half = math.radians(degrees) / 2.0
        s = math.sin(half)
        return Quaternion(math.cos(half), *(unit * s)).normalized()

    @staticmethod
    def from_euler_angles(pitch: float, yaw: float, roll: float) -> Quaternion:
        """Rotation from Euler angles in degrees, applied roll (z), pitch (x), yaw (y)."""
        pitch = math.radians(pitch) * 0.5
        yaw = math.radians(yaw) * 0.5
        roll = math.radians(roll) * 0.5
        c1, s1 = math.cos(yaw), math.sin(yaw)
        c2, s2 = math.cos(roll), math.sin(roll)
        c3, s3 = math.cos(pitch), math.sin(pitch)
        c1c2 = c1 * c2
        s1s2 = s1 * s2
        return Quaternion(
            c1c2 * c3 + s1s2 * s3,
            c1c2 * s3 + s1s2 * c3,
            s1 * c2 * c3 - c1 * s2 * s3,
            c1 * s2 * c3 - s1 * c2 * s3,
        )

    @staticmethod
    def rotation_to(source, target) -> Quaternion:
        """Shortest-arc rotation that turns ``source`` onto ``target``."""
        v0 = _normalized(source)
        v1 = _normalized(target)
        d = float(np.dot(v0, v1)) + 1.0
        if abs(d) <= _FUZZY_ZERO:
            axis = np.cross(np.array([1.0, 0.0, 0.0]), v0)
            if abs(float(np.dot(axis, axis))) <= _FUZZY_ZERO:
                axis = np.cross(np.array([0.0, 1.0, 0.0]), v0)
            axis = _normalized(axis)
            return Quaternion(0.0, *axis)
        d = math.sqrt(2.0 * d)
        axis = np.cross(v0, v1) / d
        return Quaternion(d * 0.5, *axis).normalized()

    @property
    def vector(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z])

    def conjugate(self) -> Quaternion:
        return Quaternion(self.w, -self.x, -self.y, -self.z)

    def normalized(self) -> Quaternion:
        length = math.sqrt(self.w**2 + self.x**2 + self.y**2 + self.z**2)
        if length <= 0.0:
            return Quaternion(0.0, 0.0, 0.0, 0.0)
        return Quaternion(self.w / length, self.x / length, self.y / length, self.z / length)

    def rotated_vector(self, vector) -> np.ndarray:
        """Rotate a 3-vector by this quaternion."""
        pure = Quaternion(0.0, *_vec3(vector))
        return (self * pure * self.conjugate()).vector

    def to_matrix(self) -> np.ndarray:
        """The 3x3 rotation matrix of this quaternion."""
        w, x, y, z = self.w, self.x, self.y, self.z
        return np.array(
            [
                [1.0 - 2.0 * (y * y + z * z), 2.0 * (x * y - z * w), 2.0 * (x * z + y * w)],
                [2.0 * (x * y + z * w), 1.0 - 2.0 * (x * x + z * z), 2.0 * (y * z - x * w)],
                [2.0 * (x * z - y * w), 2.0 * (y * z + x * w), 1.0 - 2.0 * (x * x + y * y)],
            ]
        )

    def __mul__(self, other):
        if not isinstance(other, Quaternion):
            return NotImplemented
        w1, x1, y1, z1 = self.w, self.x, self.y, self.z
        w2, x2, y2, z2 = other.w, other.x, other.y, other.z
        return Quaternion(
            w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
            w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
            w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
            w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
        )


class Transform:
    """Translation, rotation and scale with a lazily rebuilt world matrix."""

    def __init__(self, translation=(0.0, 0.0, 0.0), rotation: Quaternion | None = None,
                 scaling=(1.0, 1.0, 1.0)):
        self._translation = _vec3(translation).copy()
        self._rotation = rotation if rotation is not None else Quaternion.identity()
        self._scale = _vec3(scaling).copy()
        self._world = np.eye(4)
        self._dirty = True
        self.update_counter = 0

    @property
    def translation(self) -> np.ndarray:
        return self._translation.copy()

    @property
    def rotation(self) -> Quaternion:
        return self._rotation

    @property
    def scaling(self) -> np.ndarray:
        return self._scale.copy()

    def translate(self, dt) -> None:
        self._dirty = True
        self._translation = self._translation + _vec3(dt)

    def scale(self, ds) -> None:
        """Multiply the scale component-wise."""
        self._dirty = True
        self._scale = self._scale * _vec3(ds)

    def rotate(self, dr: Quaternion) -> None:
        """Apply ``dr`` after the current rotation."""
        self._dirty = True
        self._rotation = dr * self._rotation

    def grow(self, ds) -> None:
        """Add to the scale component-wise."""
        self._dirty = True
        self._scale = self._scale + _vec3(ds)

    def set_translation(self, t) -> None:
        self._dirty = True
        self._translation = _vec3(t).copy()

    def set_scale(self, s) -> None:
        self._dirty = True
        self._scale = _vec3(s).copy()

    def set_rotation(self, r: Quaternion) -> None:
        self._dirty = True
        self._rotation = r

    def set_rotation_euler(self, euler_angles) -> None:
        """Set the rotation from (pitch, yaw, roll) degrees; the cached matrix is kept."""
        pitch, yaw, roll = _vec3(euler_angles)
        self._rotation = Quaternion.from_euler_angles(pitch, yaw, roll)

    def to_matrix(self) -> np.ndarray:
        """World matrix ``T * R * S``, rebuilt only when something changed."""
        if self._dirty:
            self._dirty = False
            world = np.eye(4)
            world[:3, :3] = self._rotation.to_matrix() * self._scale
            world[:3, 3] = self._translation
            self._world = world
            self.update_counter += 1
        return self._world.copy()

    def to_inverse_matrix(self) -> np.ndarray:
        """Matrix ``S * R^-1 * T^-1``; shares the cached matrix with :meth:`to_matrix`."""
        if self._dirty:
            self._dirty = False
            linear = self._scale[:, None] * self._rotation.conjugate().to_matrix()
            world = np.eye(4)
            world[:3, :3] = linear
            world[:3, 3] = linear @ -self._translation
            self._world = world
        return self._world.copy()

    def __str__(self) -> str:
        t, s, r = self._translation, self._scale, self._rotation
        return (
            "Transform\n{\n"
            f"Position: <{t[0]}, {t[1]}, {t[2]}>\n"
            f"Scale: <{s[0]}, {s[1]}, {s[2]}>\n"
            f"Rotation: <{r.x}, {r.y}, {r.z} | {r.w}>\n}}"
        )