"""Triangle meshes: vertices, shared positions and normal recomputation."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

import numpy as np


def _vec3(value) -> np.ndarray:
    return np.array(value, dtype=float).reshape(3)


def _normalized(value) -> np.ndarray:
    vector = np.asarray(value, dtype=float)
    length = float(np.linalg.norm(vector))
    return vector / length if length > 0.0 else np.zeros(3)


@dataclass
class Vertex:
    """One render vertex: position, normal and barycentric corner marker."""

    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    normal: np.ndarray = field(default_factory=lambda: np.zeros(3))
    barycentric: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        self.position = _vec3(self.position)
        self.normal = _vec3(self.normal)
        self.barycentric = _vec3(self.barycentric)


def point_index_of_vertex(points_to_verts: dict[int, list[int]], vertex_index: int) -> int:
    """The point whose vertex list holds ``vertex_index``."""
    for point_index, vertex_indices in points_to_verts.items():
        if vertex_index in vertex_indices:
            return point_index
    raise KeyError(f"vertex {vertex_index} belongs to no point")


class Shape:
    """An indexed triangle mesh with vertices grouped by shared position.

    ``points`` holds each distinct position once; ``points_to_verts`` maps a
    point index to the indices of the vertices at that position.
    """

    def __init__(self, vertices, indices, points=None, points_to_verts=None):
        self.vertices: list[Vertex] = [replace(v) for v in vertices]
        self.indices: list[int] = [int(i) for i in indices]
        self.points: list[np.ndarray] = [_vec3(p) for p in (points or [])]
        self.points_to_verts: dict[int, list[int]] = {
            int(k): list(v) for k, v in (points_to_verts or {}).items()
        }

    def _triangles(self):
        for start in range(0, len(self.indices) - 2, 3):
            yield self.indices[start:start + 3]

    def _face_normal(self, a: int, b: int, c: int) -> np.ndarray:
        pa = self.vertices[a].position
        ab = self.vertices[b].position - pa
        ac = self.vertices[c].position - pa
        return _normalized(np.cross(ab, ac))

    def recompute_normals(self) -> None:
        """Give every vertex the flat normal of the last triangle that uses it."""
        for a, b, c in self._triangles():
            normal = self._face_normal(a, b, c)
            for index in (a, b, c):
                self.vertices[index].normal = normal.copy()

    def recompute_smoothed_normals(self) -> None:
        """Give every vertex the normalised sum of face normals around its point."""
        sums: dict[int, np.ndarray] = {}
        for a, b, c in self._triangles():
            normal = self._face_normal(a, b, c)
            for index in (a, b, c):
                point = point_index_of_vertex(self.points_to_verts, index)
                sums[point] = sums.get(point, np.zeros(3)) + normal
        for index in self.indices:
            point = point_index_of_vertex(self.points_to_verts, index)
            self.vertices[index].normal = _normalized(sums.get(point, np.zeros(3)))

    def vertex_at(self, index: int) -> Vertex:
        """A copy of the vertex at ``index``."""
        return replace(self.vertices[index])

    def set_vertex_position(self, index: int, position) -> None:
        self.vertices[index].position = _vec3(position)

    def copy(self) -> Shape:
        """An independent copy of the mesh data."""
        return Shape(self.vertices, self.indices, self.points, self.points_to_verts)


class Model:
    """A collection of shapes drawn together."""

    def __init__(self, meshes=None):
        self.meshes: list[Shape] = list(meshes or [])
        self.hidden = False

    @property
    def num_shapes(self) -> int:
        return len(self.meshes)

    @staticmethod
    def from_mesh(positions, normals, faces) -> Model:
        """A model holding one shape built from raw mesh data."""
        model = Model()
        model.add_mesh(positions, normals, faces)
        return model

    def add_mesh(self, positions, normals, faces) -> Shape:
        """Build a shape from positions, per-vertex normals and index faces and add it."""
        positions = [_vec3(p) for p in positions]
        normals = [np.zeros(3) for _ in positions] if normals is None else [_vec3(n) for n in normals]
        if len(normals) != len(positions):
            raise ValueError("every vertex needs a normal")
        vertices: list[Vertex] = []
        points: list[np.ndarray] = []
        point_lookup: dict[tuple, int] = {}
        points_to_verts: dict[int, list[int]] = {}
        for vertex_index, (position, normal) in enumerate(zip(positions, normals)):
            vertices.append(Vertex(position, normal))
            key = tuple(position)
            point_index = point_lookup.get(key)
            if point_index is None:
                point_index = len(points)
                point_lookup[key] = point_index
                points.append(position)
            points_to_verts.setdefault(point_index, []).append(vertex_index)
        indices: list[int] = []
        for face in faces:
            for corner, vertex_index in enumerate(face):
                vertex_index = int(vertex_index)
                if not 0 <= vertex_index < len(vertices):
                    raise IndexError(f"face refers to missing vertex {vertex_index}")
                indices.append(vertex_index)
                barycentric = np.zeros(3)
                barycentric[corner % 3] = 1.0
                vertices[vertex_index].barycentric = barycentric
        shape = Shape(vertices, indices, points, points_to_verts)
        self.meshes.append(shape)
        return shape

    def clone(self, other: Model) -> None:
        """Append independent copies of every shape of ``other``."""
        self.meshes.extend(mesh.copy() for mesh in other.meshes)

    def shape(self, index: int) -> Shape:
        return self.meshes[index]