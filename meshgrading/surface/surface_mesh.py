# SPDX-FileCopyrightText: Copyright (c) 2023 - 2026 NVIDIA CORPORATION & AFFILIATES.
# SPDX-FileCopyrightText: All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Indexed-triangle surface with incremental adjacency and tombstoned elements.

:class:`SurfaceMesh` is the mutable counterpart of :class:`~meshgrading.mesh.Mesh`.
Faces are stored as oriented vertex triples; removed faces and vertices are
tombstoned in place so that vertex ids stay stable while the remeshing passes
run. :meth:`SurfaceMesh.garbage_collection` compacts the storage afterwards.

Adjacency is maintained incrementally:

- vertex -> incident faces
- undirected edge -> incident faces

Every topology primitive validates its preconditions before touching any
storage, so a rejected operation leaves the surface unchanged.
"""

import threading
from contextlib import contextmanager
from typing import Iterator, Sequence

import torch
from tensordict import TensorDict

from meshgrading.errors import InvalidMeshError
from meshgrading.mesh import Mesh
from meshgrading.utilities._cache import without_cache


def edge_key(a: int, b: int) -> tuple[int, int]:
    """Canonical (sorted) key of the undirected edge ``(a, b)``."""
    return (a, b) if a < b else (b, a)


class SurfaceMesh:
    """A mutable, orientable triangle surface.

    Parameters
    ----------
    points : torch.Tensor
        Vertex coordinates, shape (n_points, 3), floating point.
    faces : torch.Tensor
        Triangle connectivity, shape (n_faces, 3), integer.
    vertex_data : TensorDict or dict[str, torch.Tensor], optional
        Per-vertex fields with leading dimension n_points. Floating-point
        fields are interpolated when an edge is split.

    Raises
    ------
    InvalidMeshError
        If the arrays have the wrong shape, a face references a vertex that
        does not exist, or a face repeats a vertex.

    Examples
    --------
    >>> import torch
    >>> points = torch.tensor(
    ...     [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 1.0, 0.0], [0.0, 1.0, 0.0]]
    ... )
    >>> surface = SurfaceMesh(points, torch.tensor([[0, 1, 2], [0, 2, 3]]))
    >>> surface.n_vertices, surface.n_edges, surface.n_faces
    (4, 5, 2)
    >>> surface.flip_edge(0, 2)
    True
    >>> surface.has_edge(1, 3)
    True
    """

    def __init__(
        self,
        points: torch.Tensor,
        faces: torch.Tensor,
        vertex_data: TensorDict | dict[str, torch.Tensor] | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._build(torch.as_tensor(points), torch.as_tensor(faces), vertex_data)

    @classmethod
    def from_mesh(cls, mesh: Mesh) -> "SurfaceMesh":
        """Create a surface from a mesh snapshot, carrying its point data over."""
        return cls(mesh.points, mesh.cells, vertex_data=without_cache(mesh.point_data))

    def _build(
        self,
        points: torch.Tensor,
        faces: torch.Tensor,
        vertex_data: TensorDict | dict[str, torch.Tensor] | None,
    ) -> None:
        if points.ndim != 2 or points.shape[-1] != 3:
            raise InvalidMeshError(
                f"`points` must have shape (n_points, 3), but got {points.shape=}."
            )
        if not torch.is_floating_point(points):
            raise InvalidMeshError(
                f"`points` must be floating point, but got {points.dtype=}."
            )
        if faces.numel() > 0 and (faces.ndim != 2 or faces.shape[-1] != 3):
            raise InvalidMeshError(
                f"`faces` must be triangles with shape (n_faces, 3), but got {faces.shape=}."
            )
        if torch.is_floating_point(faces):
            raise InvalidMeshError(
                f"`faces` must have an int-like dtype, but got {faces.dtype=}."
            )

        n_points = points.shape[0]
        self._points = points.clone()
        self._n_slots = n_points
        self._n_alive_vertices = n_points
        self._vertex_alive = [True] * n_points
        self._vertex_faces: list[set[int]] = [set() for _ in range(n_points)]
        self._faces: list[tuple[int, int, int] | None] = []
        self._edge_faces: dict[tuple[int, int], list[int]] = {}
        self._n_alive_faces = 0

        if isinstance(vertex_data, TensorDict):
            vertex_data = without_cache(vertex_data)
            vertex_data.batch_size = torch.Size([n_points])
        else:
            vertex_data = TensorDict(
                {} if vertex_data is None else dict(vertex_data),
                batch_size=torch.Size([n_points]),
                device=points.device,
            )
        # Split and collapse write into these tensors in place
        self._vertex_data = vertex_data.clone()

        for a, b, c in faces.reshape(-1, 3).tolist():
            if not all(0 <= v < n_points for v in (a, b, c)):
                raise InvalidMeshError(
                    f"Face {(a, b, c)} references a vertex outside [0, {n_points})."
                )
            if a == b or b == c or a == c:
                raise InvalidMeshError(f"Face {(a, b, c)} repeats a vertex.")
            self._add_face(a, b, c)

    ### Counts and iteration

    @property
    def n_vertices(self) -> int:
        return self._n_alive_vertices

    @property
    def n_faces(self) -> int:
        return self._n_alive_faces

    @property
    def n_edges(self) -> int:
        return len(self._edge_faces)

    @property
    def dtype(self) -> torch.dtype:
        return self._points.dtype

    @property
    def device(self) -> torch.device:
        return self._points.device

    def vertices(self) -> Iterator[int]:
        """Iterate over the ids of live vertices, in increasing order."""
        return (v for v, alive in enumerate(self._vertex_alive) if alive)

    def faces(self) -> Iterator[int]:
        """Iterate over the ids of live faces, in increasing order."""
        return (f for f, tri in enumerate(self._faces) if tri is not None)

    def edges(self) -> list[tuple[int, int]]:
        """Return all edges as sorted ``(a, b)`` keys, in lexicographic order.

        The list is a snapshot: mutating the surface while iterating over it is
        allowed, but edges removed in the meantime must be checked with
        :meth:`has_edge`.
        """
        return sorted(self._edge_faces)

    def face_vertices(self, f: int) -> tuple[int, int, int]:
        tri = self._faces[f]
        if tri is None:
            raise KeyError(f"Face {f} has been removed.")
        return tri

    ### Positions and vertex data

    @property
    def points(self) -> torch.Tensor:
        """Positions of all vertex slots, shape (n_slots, 3).

        Includes the slots of removed vertices, so that row ``v`` is always the
        position of vertex id ``v``.
        """
        return self._points[: self._n_slots]

    @property
    def vertex_data(self) -> TensorDict:
        """Per-vertex fields, batch size (n_slots,).

        Tensors are views into the surface's storage, so in-place edits are
        kept. Use :meth:`add_vertex_attribute` to create new fields.
        """
        return self._vertex_data[: self._n_slots]

    def add_vertex_attribute(
        self,
        name: str,
        values: torch.Tensor | None = None,
        fill: float = 0.0,
    ) -> None:
        """Create or overwrite a per-vertex field.

        Parameters
        ----------
        name : str
            Field name.
        values : torch.Tensor, optional
            Values for every vertex slot, leading dimension n_slots. If
            omitted, the field is filled with ``fill``.
        fill : float, optional
            Fill value used when ``values`` is None.
        """
        capacity = self._points.shape[0]
        if values is None:
            storage = torch.full(
                (capacity,), fill, dtype=self.dtype, device=self.device
            )
        else:
            values = torch.as_tensor(values, device=self.device)
            if values.shape[0] != self._n_slots:
                raise ValueError(
                    f"`values` must have leading dimension {self._n_slots}, "
                    f"but got {values.shape=}."
                )
            storage = torch.zeros(
                (capacity, *values.shape[1:]), dtype=values.dtype, device=self.device
            )
            storage[: self._n_slots] = values
        self._vertex_data[name] = storage

    def remove_vertex_attribute(self, name: str) -> None:
        if name in self._vertex_data.keys():
            del self._vertex_data[name]

    def position(self, v: int) -> torch.Tensor:
        return self._points[v]

    def set_position(self, v: int, position: torch.Tensor | Sequence[float]) -> None:
        self._points[v] = torch.as_tensor(position, dtype=self.dtype, device=self.device)

    def set_positions(self, vertex_ids: torch.Tensor, positions: torch.Tensor) -> None:
        """Vectorized :meth:`set_position` for many vertices at once."""
        self._points[vertex_ids] = positions.to(dtype=self.dtype, device=self.device)

    def edge_length(self, a: int, b: int) -> float:
        return float(torch.linalg.vector_norm(self._points[a] - self._points[b]))

    def edge_lengths(self, edges: Sequence[tuple[int, int]]) -> torch.Tensor:
        """Lengths of many edges at once, shape (len(edges),)."""
        if len(edges) == 0:
            return torch.zeros(0, dtype=self.dtype, device=self.device)
        index = torch.as_tensor(edges, dtype=torch.long, device=self.device)
        return torch.linalg.vector_norm(
            self._points[index[:, 1]] - self._points[index[:, 0]], dim=-1
        )

    ### Local topology queries

    def has_edge(self, a: int, b: int) -> bool:
        return edge_key(a, b) in self._edge_faces

    def edge_faces(self, a: int, b: int) -> list[int]:
        return list(self._edge_faces.get(edge_key(a, b), ()))

    def vertex_faces(self, v: int) -> set[int]:
        return set(self._vertex_faces[v])

    def neighbors(self, v: int) -> set[int]:
        """Vertices sharing an edge with ``v``."""
        ring = set()
        for f in self._vertex_faces[v]:
            ring.update(self._faces[f])
        ring.discard(v)
        return ring

    def valence(self, v: int) -> int:
        return len(self.neighbors(v))

    def opposite_vertices(self, a: int, b: int) -> list[int]:
        """The vertex opposite to edge ``(a, b)`` in each incident face."""
        opposite = []
        for f in self._edge_faces.get(edge_key(a, b), ()):
            opposite.extend(v for v in self._faces[f] if v != a and v != b)
        return opposite

    def is_boundary_edge(self, a: int, b: int) -> bool:
        return len(self._edge_faces.get(edge_key(a, b), ())) == 1

    def is_boundary_vertex(self, v: int) -> bool:
        """True if ``v`` lies on a boundary edge, or has no faces at all."""
        if not self._vertex_faces[v]:
            return True
        return any(self.is_boundary_edge(v, n) for n in self.neighbors(v))

    ### Topology primitives

    def split_edge(
        self,
        a: int,
        b: int,
        position: torch.Tensor | None = None,
    ) -> int | None:
        """Split edge ``(a, b)`` by inserting a new vertex.

        Each face incident to the edge is replaced by two faces with the same
        orientation. Floating-point vertex fields of the new vertex are the
        mean of the two endpoints; other fields are copied from ``a``.

        Parameters
        ----------
        a, b : int
            Endpoints of the edge.
        position : torch.Tensor, optional
            Position of the new vertex. Defaults to the edge midpoint.

        Returns
        -------
        int or None
            Id of the new vertex, or None if ``(a, b)`` is not an edge.
        """
        incident = self._edge_faces.get(edge_key(a, b))
        if not incident:
            return None

        if position is None:
            position = 0.5 * (self._points[a] + self._points[b])
        m = self._add_vertex(position)

        for name, values in self._vertex_data.items():
            if torch.is_floating_point(values):
                values[m] = 0.5 * (values[a] + values[b])
            else:
                values[m] = values[a]

        for f in list(incident):
            u, v, w = self._rotate_to_edge(f, a, b)
            self._remove_face(f)
            self._add_face(u, m, w)
            self._add_face(m, v, w)
        return m

    def is_collapse_ok(self, remove: int, keep: int) -> bool:
        """Check whether merging ``remove`` into ``keep`` keeps the surface manifold.

        The checks are purely topological:

        - ``(remove, keep)`` is an edge with one or two incident faces;
        - link condition: the common neighbours of the endpoints are exactly
          the vertices opposite to the edge;
        - an interior edge between two boundary vertices is not collapsed
          (it would pinch the surface);
        - no opposite vertex drops below valence 3 (interior) or loses its
          last face (boundary).
        """
        if remove == keep:
            return False
        if not (self._vertex_alive[remove] and self._vertex_alive[keep]):
            return False
        incident = self._edge_faces.get(edge_key(remove, keep))
        if not incident or len(incident) > 2:
            return False

        opposite = self.opposite_vertices(remove, keep)
        if self.neighbors(remove) & self.neighbors(keep) != set(opposite):
            return False

        if (
            len(incident) == 2
            and self.is_boundary_vertex(remove)
            and self.is_boundary_vertex(keep)
        ):
            return False

        for c in opposite:
            if self.is_boundary_vertex(c):
                if len(self._vertex_faces[c]) < 2:
                    return False
            elif self.valence(c) <= 3:
                return False
        return True

    def collapse_edge(self, remove: int, keep: int) -> bool:
        """Merge vertex ``remove`` into ``keep``; ``keep`` does not move.

        Returns
        -------
        bool
            False (and no change) if :meth:`is_collapse_ok` rejects it.
        """
        if not self.is_collapse_ok(remove, keep):
            return False

        for f in list(self._vertex_faces[remove]):
            tri = self._faces[f]
            self._remove_face(f)
            if keep not in tri:
                self._add_face(*(keep if v == remove else v for v in tri))
        self._remove_vertex(remove)
        return True

    def is_flip_ok(self, a: int, b: int) -> bool:
        """Check whether edge ``(a, b)`` can be flipped to the opposite diagonal."""
        incident = self._edge_faces.get(edge_key(a, b))
        if not incident or len(incident) != 2:
            return False
        c, d = self.opposite_vertices(a, b)
        if c == d or self.has_edge(c, d):
            return False
        for v in (a, b):
            min_valence = 2 if self.is_boundary_vertex(v) else 3
            if self.valence(v) - 1 < min_valence:
                return False
        return True

    def flip_edge(self, a: int, b: int) -> bool:
        """Replace edge ``(a, b)`` by the edge joining its two opposite vertices.

        Returns
        -------
        bool
            False (and no change) if :meth:`is_flip_ok` rejects it.
        """
        if not self.is_flip_ok(a, b):
            return False
        f1, f2 = self._edge_faces[edge_key(a, b)]
        u, v, c = self._rotate_to_edge(f1, a, b)
        d = next(x for x in self._faces[f2] if x != a and x != b)

        self._remove_face(f1)
        self._remove_face(f2)
        self._add_face(c, u, d)
        self._add_face(d, v, c)
        return True

    ### Snapshots and storage

    def to_mesh(self) -> tuple[Mesh, torch.Tensor]:
        """Compact the live vertices and faces into a :class:`Mesh`.

        Returns
        -------
        mesh : Mesh
            Snapshot with vertex fields as point data.
        vertex_ids : torch.Tensor
            Surface vertex id of every mesh point, shape (n_points,).
        """
        vertex_ids = torch.tensor(
            list(self.vertices()), dtype=torch.long, device=self.device
        )
        new_index = torch.full(
            (self._n_slots,), -1, dtype=torch.long, device=self.device
        )
        new_index[vertex_ids] = torch.arange(len(vertex_ids), device=self.device)

        live_faces = [tri for tri in self._faces if tri is not None]
        if live_faces:
            cells = new_index[
                torch.tensor(live_faces, dtype=torch.long, device=self.device)
            ]
        else:
            cells = torch.empty((0, 3), dtype=torch.long, device=self.device)

        mesh = Mesh(
            points=self._points[vertex_ids],
            cells=cells,
            point_data=self._vertex_data[vertex_ids],
        )
        return mesh, vertex_ids

    def garbage_collection(self) -> torch.Tensor:
        """Drop removed vertices and faces and renumber the survivors.

        Returns
        -------
        torch.Tensor
            Map from old vertex id to new id, shape (old n_slots,); -1 for
            removed vertices.
        """
        mesh, vertex_ids = self.to_mesh()
        old_to_new = torch.full(
            (self._n_slots,), -1, dtype=torch.long, device=self.device
        )
        old_to_new[vertex_ids] = torch.arange(len(vertex_ids), device=self.device)
        self._build(mesh.points, mesh.cells, mesh.point_data)
        return old_to_new

    def copy(self) -> "SurfaceMesh":
        """Return an independent compacted copy of this surface."""
        return SurfaceMesh.from_mesh(self.to_mesh()[0])

    @contextmanager
    def exclusive_access(self):
        """Hold exclusive ownership of the surface for the duration of a block.

        Raises
        ------
        RuntimeError
            If another block (in this or any other thread) already holds it.
        """
        if not self._lock.acquire(blocking=False):
            raise RuntimeError(
                "SurfaceMesh is already held by another remeshing call; "
                "concurrent mutation is not allowed."
            )
        try:
            yield self
        finally:
            self._lock.release()

    def __repr__(self) -> str:
        return (
            f"SurfaceMesh(n_vertices={self.n_vertices}, n_edges={self.n_edges}, "
            f"n_faces={self.n_faces}, dtype={self.dtype})"
        )

    ### Internal storage helpers

    def _rotate_to_edge(self, f: int, a: int, b: int) -> tuple[int, int, int]:
        """Rotate face ``f`` to ``(u, v, w)`` where ``u -> v`` is its copy of edge ``(a, b)``."""
        tri = self._faces[f]
        for i in range(3):
            u, v = tri[i], tri[(i + 1) % 3]
            if (u == a and v == b) or (u == b and v == a):
                return u, v, tri[(i + 2) % 3]
        raise KeyError(f"Face {f} does not contain edge {(a, b)}.")

    def _add_vertex(self, position: torch.Tensor) -> int:
        if self._n_slots == self._points.shape[0]:
            self._grow()
        v = self._n_slots
        self._n_slots += 1
        self._points[v] = position
        for name, values in self._vertex_data.items():
            values[v] = 0
        self._vertex_alive.append(True)
        self._vertex_faces.append(set())
        self._n_alive_vertices += 1
        return v

    def _remove_vertex(self, v: int) -> None:
        self._vertex_alive[v] = False
        self._n_alive_vertices -= 1

    def _add_face(self, a: int, b: int, c: int) -> int:
        f = len(self._faces)
        self._faces.append((a, b, c))
        for v in (a, b, c):
            self._vertex_faces[v].add(f)
        for u, v in ((a, b), (b, c), (c, a)):
            self._edge_faces.setdefault(edge_key(u, v), []).append(f)
        self._n_alive_faces += 1
        return f

    def _remove_face(self, f: int) -> None:
        a, b, c = self._faces[f]
        self._faces[f] = None
        for v in (a, b, c):
            self._vertex_faces[v].discard(f)
        for u, v in ((a, b), (b, c), (c, a)):
            key = edge_key(u, v)
            incident = self._edge_faces[key]
            incident.remove(f)
            if not incident:
                del self._edge_faces[key]
        self._n_alive_faces -= 1

    def _grow(self) -> None:
        """Double the vertex storage capacity."""
        capacity = self._points.shape[0]
        extra = max(capacity, 16)
        self._points = torch.cat(
            [self._points, self._points.new_zeros((extra, 3))], dim=0
        )
        self._vertex_data = TensorDict(
            {
                name: torch.cat(
                    [values, values.new_zeros((extra, *values.shape[1:]))], dim=0
                )
                for name, values in self._vertex_data.items()
            },
            batch_size=torch.Size([capacity + extra]),
            device=self.device,
        )
