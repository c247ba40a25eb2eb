"""Geometric queries for rays, planes, lines and spheres."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

_MAX_PLANE_REFINEMENTS = 64


def _vec3(value) -> np.ndarray:
    return np.asarray(value, dtype=float).reshape(3)


def _normalized(value) -> np.ndarray:
    vector = _vec3(value)
    length = float(np.linalg.norm(vector))
    return vector / length if length > 0.0 else np.zeros(3)


@dataclass
class Ray:
    origin: np.ndarray = field(default_factory=lambda: np.zeros(3))
    direction: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, 1.0]))

    def __post_init__(self):
        self.origin = _vec3(self.origin)
        self.direction = _vec3(self.direction)


@dataclass
class Plane:
    normal: np.ndarray = field(default_factory=lambda: np.array([0.0, 1.0, 0.0]))
    offset: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        self.normal = _vec3(self.normal)
        self.offset = _vec3(self.offset)


def distance_from_point_to_plane(p, n, o) -> float:
    """Signed distance of ``p`` from the plane through ``o`` with normal ``n``."""
    return float(np.dot(_vec3(p) - _vec3(o), _vec3(n)))


def intersect_segment_plane(r1, r2, n, o) -> np.ndarray:
    """Where the line from ``r1`` towards ``r2`` meets the plane; non-finite if parallel."""
    r1, n = _vec3(r1), _vec3(n)
    ray = _normalized(_vec3(r2) - r1)
    with np.errstate(divide="ignore", invalid="ignore"):
        t = np.float64(np.dot(_vec3(o) - r1, n)) / np.float64(np.dot(ray, n))
        return r1 + t * ray


def solve_quadratic(a: float, b: float, c: float) -> tuple[float, float] | None:
    """Real roots of ``a x^2 + b x + c`` in ascending order, or None."""
    discr = b * b - 4.0 * a * c
    if discr < 0:
        return None
    if discr == 0:
        x0 = x1 = -0.5 * b / a
    else:
        root = math.sqrt(discr)
        q = -0.5 * (b + root) if b > 0 else -0.5 * (b - root)
        x0 = q / a
        x1 = c / q
    return (x0, x1) if x0 <= x1 else (x1, x0)


def _ray_sphere_hit(origin, direction, center, radius) -> float | None:
    d = _vec3(direction)
    offset = _vec3(origin) - _vec3(center)
    roots = solve_quadratic(float(np.dot(d, d)), 2.0 * float(np.dot(d, offset)),
                            float(np.dot(offset, offset)) - radius**2)
    if roots is None:
        return None
    t0, t1 = roots
    if t0 < 0:
        t0 = t1
        if t0 < 0:
            return None
    return t0


def check_ray_sphere(origin, direction, center, radius: float) -> bool:
    """Whether the ray hits the sphere ahead of its origin."""
    return _ray_sphere_hit(origin, direction, center, radius) is not None


def distance_ray_to_sphere(origin, direction, center, radius: float) -> float:
    """Ray parameter of the first hit ahead of the origin, or 0.0 on a miss."""
    t = _ray_sphere_hit(origin, direction, center, radius)
    return 0.0 if t is None else float(t)


def intersect_ray_sphere(origin, direction, center, radius: float
                         ) -> tuple[float, np.ndarray] | None:
    """First hit ``(t, point)`` of a unit-direction ray with a sphere, or None.

    A ray starting inside the sphere hits at ``t == 0``.
    """
    origin, direction = _vec3(origin), _vec3(direction)
    m = origin - _vec3(center)
    b = float(np.dot(m, direction))
    c = float(np.dot(m, m)) - radius * radius
    if c > 0.0 and b > 0.0:
        return None
    discr = b * b - c
    if discr < 0.0:
        return None
    t = max(-b - math.sqrt(discr), 0.0)
    return t, origin + t * direction


def intersect_ray_plane(n, plane_origin, ray: Ray) -> np.ndarray:
    """Point where the ray's line meets the plane, refined until it settles."""
    n, plane_origin = _vec3(n), _vec3(plane_origin)
    origin, direction = ray.origin, ray.direction
    with np.errstate(divide="ignore", invalid="ignore"):
        for _ in range(_MAX_PLANE_REFINEMENTS):
            denom = np.float64(np.dot(n, direction))
            t = np.float64(np.dot(plane_origin - origin, n)) / denom
            unit = _normalized(direction)
            result = origin + unit * t
            if not t > 0.001:
                break
            origin, direction = result, unit
    return result


def intersect_line_plane(n, plane_origin, a, b) -> np.ndarray:
    """Point of segment ``a``-``b`` on the plane, or ``a`` if it does not cross."""
    n, a = _vec3(n), _vec3(a)
    ab = _vec3(b) - a
    d = distance_from_point_to_plane(np.zeros(3), n, plane_origin)
    with np.errstate(divide="ignore", invalid="ignore"):
        t = (np.float64(d) - np.dot(n, a)) / np.float64(np.dot(n, ab))
    if 0.0 <= t <= 1.0:
        return a + t * ab
    return a.copy()


def closest_point_ray_to_ray(r1: Ray, r2: Ray) -> np.ndarray:
    """Point on the line of ``r2`` closest to the line of ``r1``."""
    a = _normalized(r1.direction)
    b = _normalized(r2.direction)
    c = r2.origin - r1.origin
    p = np.float64(np.dot(a, b))
    q = np.float64(np.dot(a, c))
    r = np.float64(np.dot(b, c))
    s = np.float64(np.dot(a, a))
    t = np.float64(np.dot(b, b))
    with np.errstate(divide="ignore", invalid="ignore"):
        d = (-p * r + q * t) / (s * t - p * p)
        e = (p * q) / (s * t - p * p) - (r / (t - (p * p) / s))
    point1 = r1.origin + a * d
    point2 = r2.origin + b * e
    return point1 + (point2 - point1)


def check_sphere_sphere(s1, s2, r1: float, r2: float) -> float | None:
    """Penetration depth of two overlapping spheres, or None if they do not overlap."""
    dist = float(np.linalg.norm(_vec3(s2) - _vec3(s1)))
    min_dist = r1 + r2
    if dist < min_dist:
        return min_dist - dist
    return None