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

"""Immutable triangle-surface snapshot used for vectorized geometry queries."""

from typing import TYPE_CHECKING, Any, Literal, Sequence

import torch
import torch.nn.functional as F
from tensordict import TensorDict, tensorclass

from meshgrading.utilities._cache import get_cached, set_cached, without_cache


@tensorclass(tensor_only=True)
class Mesh:
    r"""A PyTorch-based triangle surface embedded in 3D space.

    A ``Mesh`` is a snapshot of a triangulated 2-manifold: a point array, a
    triangle connectivity array, and field data attached to points and cells.
    It is the input to every vectorized geometry query in meshgrading
    (areas, normals, curvature, target edge lengths). Topology-changing work
    happens on :class:`~meshgrading.surface.SurfaceMesh`, which converts to and
    from this representation.

    Parameters
    ----------
    points : torch.Tensor
        Vertex coordinates, shape (n_points, 3), floating point.
    cells : torch.Tensor
        Triangle connectivity, shape (n_cells, 3), integer. The vertex order
        of each row defines the orientation of the triangle (right-hand rule).
    point_data : TensorDict or dict[str, torch.Tensor], optional
        Per-vertex fields, leading dimension n_points.
    cell_data : TensorDict or dict[str, torch.Tensor], optional
        Per-triangle fields, leading dimension n_cells.

    Raises
    ------
    ValueError
        If ``points`` or ``cells`` have the wrong shape, or live on different
        devices.
    TypeError
        If ``cells`` has a floating-point dtype.

    Examples
    --------
    >>> import torch
    >>> points = torch.tensor(
    ...     [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 1.0, 0.0], [0.0, 1.0, 0.0]]
    ... )
    >>> cells = torch.tensor([[0, 1, 2], [0, 2, 3]])
    >>> mesh = Mesh(points=points, cells=cells)
    >>> mesh.n_points, mesh.n_cells
    (4, 2)
    >>> mesh.cell_normals[0]
    tensor([0., 0., 1.])

    Notes
    -----
    Expensive derived quantities (centroids, areas, normals) are cached
    under the ``"_cache"`` key of ``point_data`` / ``cell_data``. The cache
    belongs to one instance; a new ``Mesh`` starts without one.
    """

    points: torch.Tensor  # shape: (n_points, 3)
    cells: torch.Tensor  # shape: (n_cells, 3)
    point_data: TensorDict
    cell_data: TensorDict

    def __init__(
        self,
        points: torch.Tensor,
        cells: torch.Tensor,
        point_data: TensorDict | dict[str, torch.Tensor] | None = None,
        cell_data: TensorDict | dict[str, torch.Tensor] | None = None,
    ) -> None:
        ### Assign tensorclass fields
        self.points = points
        self.cells = cells
        self.point_data = self._as_field_data(point_data, self.n_points, points.device)
        self.cell_data = self._as_field_data(cell_data, self.n_cells, cells.device)
        self.__post_init__()

    def __post_init__(self) -> None:
        # Also runs on its own when tensorclass generates the constructor
        self.point_data = self._as_field_data(
            self.point_data, self.n_points, self.points.device
        )
        self.cell_data = self._as_field_data(
            self.cell_data, self.n_cells, self.cells.device
        )

        ### Validate shapes and dtypes
        if self.points.ndim != 2 or self.points.shape[-1] != 3:
            raise ValueError(
                f"`points` must have shape (n_points, 3), but got {self.points.shape=}."
            )
        if self.cells.ndim != 2 or self.cells.shape[-1] != 3:
            raise ValueError(
                f"`cells` must be triangles with shape (n_cells, 3), but got {self.cells.shape=}."
            )
        if torch.is_floating_point(self.cells):
            raise TypeError(
                f"`cells` must have an int-like dtype, but got {self.cells.dtype=}."
            )
        if self.points.device != self.cells.device:
            raise ValueError(
                f"`points` and `cells` must be on the same device, "
                f"but got {self.points.device=} and {self.cells.device=}."
            )

    @staticmethod
    def _as_field_data(
        data: TensorDict | dict[str, torch.Tensor] | None,
        n_items: int,
        device: torch.device,
    ) -> TensorDict:
        """Field data as a TensorDict with leading dimension ``n_items``."""
        if isinstance(data, TensorDict):
            data.batch_size = torch.Size([n_items])
            return data
        return TensorDict(
            {} if data is None else dict(data),
            batch_size=torch.Size([n_items]),
            device=device,
        )

    if TYPE_CHECKING:
        # Type stubs for the methods dynamically added by @tensorclass.
        def to(self, *args: Any, **kwargs: Any) -> "Mesh":
            """Move the mesh and its data to another device and/or dtype."""
            ...

        def clone(self) -> "Mesh":
            """Return a clone of this Mesh."""
            ...

    @property
    def n_points(self) -> int:
        return self.points.shape[0]

    @property
    def n_cells(self) -> int:
        return self.cells.shape[0]

    @property
    def n_spatial_dims(self) -> int:
        return self.points.shape[-1]

    @property
    def n_manifold_dims(self) -> int:
        return self.cells.shape[-1] - 1

    @property
    def cell_centroids(self) -> torch.Tensor:
        """Arithmetic mean of each triangle's vertices, shape (n_cells, 3).

        Cached in ``cell_data["_cache", "centroids"]``.
        """
        cached = get_cached(self.cell_data, "centroids")
        if cached is None:
            cached = self.points[self.cells].mean(dim=1)
            set_cached(self.cell_data, "centroids", cached)
        return cached

    @property
    def cell_areas(self) -> torch.Tensor:
        """Compute triangle areas as half the norm of the edge cross product.

        Returns
        -------
        torch.Tensor
            Tensor of shape (n_cells,) with the area of each triangle.
        """
        cached = get_cached(self.cell_data, "areas")
        if cached is None:
            cached = 0.5 * torch.linalg.vector_norm(self._cell_cross_products(), dim=-1)
            set_cached(self.cell_data, "areas", cached)
        return cached

    @property
    def cell_normals(self) -> torch.Tensor:
        """Compute unit normal vectors of all triangles.

        The normal of triangle ``(v0, v1, v2)`` is ``(v1 - v0) x (v2 - v0)``
        normalized, so it follows the right-hand rule over the vertex order.

        Returns
        -------
        torch.Tensor
            Tensor of shape (n_cells, 3). Degenerate triangles get a zero
            vector.
        """
        cached = get_cached(self.cell_data, "normals")
        if cached is None:
            cached = F.normalize(self._cell_cross_products(), dim=-1)
            set_cached(self.cell_data, "normals", cached)
        return cached

    @property
    def point_normals(self) -> torch.Tensor:
        """Angle-area-weighted unit normals at the vertices, shape (n_points, 3).

        Isolated vertices get a zero vector. Cached in
        ``point_data["_cache", "normals"]``.

        See Also
        --------
        compute_point_normals : Point normals with an explicit weighting choice.
        """
        cached = get_cached(self.point_data, "normals")
        if cached is None:
            cached = self.compute_point_normals(weighting="angle_area")
            set_cached(self.point_data, "normals", cached)
        return cached

    def compute_point_normals(
        self,
        weighting: Literal["area", "unweighted", "angle", "angle_area"] = "angle_area",
    ) -> torch.Tensor:
        """Compute vertex normals by averaging the normals of incident triangles.

        Parameters
        ----------
        weighting : {"area", "unweighted", "angle", "angle_area"}
            How each triangle's normal is weighted at each of its corners:

            - ``"area"``: by triangle area.
            - ``"unweighted"``: every incident triangle counts once.
            - ``"angle"``: by the interior angle at the vertex.
            - ``"angle_area"``: by angle times area (default).

        Returns
        -------
        torch.Tensor
            Unit normals, shape (n_points, 3). Zero for isolated vertices.

        Raises
        ------
        ValueError
            If ``weighting`` is not recognized.
        """
        if weighting not in ("area", "unweighted", "angle", "angle_area"):
            raise ValueError(
                f"Invalid {weighting=}. "
                f"Must be one of 'area', 'unweighted', 'angle', 'angle_area'."
            )

        cell_normals = self.cell_normals  # (n_cells, 3)

        ### Per-corner weights, shape (n_cells, 3)
        if weighting == "unweighted":
            weights = torch.ones_like(self.cells, dtype=self.points.dtype)
        elif weighting == "area":
            weights = self.cell_areas.unsqueeze(-1).expand(-1, 3)
        else:
            from meshgrading.geometry._angles import compute_corner_angles

            weights = compute_corner_angles(self)
            if weighting == "angle_area":
                weights = weights * self.cell_areas.unsqueeze(-1)

        ### Scatter weighted cell normals onto their corners
        accumulated = torch.zeros_like(self.points)
        for local_idx in range(3):
            accumulated.index_add_(
                0,
                self.cells[:, local_idx],
                cell_normals * weights[:, local_idx : local_idx + 1],
            )

        return F.normalize(accumulated, dim=-1)

    def point_distances(self, target: torch.Tensor | Sequence[float]) -> torch.Tensor:
        """Euclidean distance from every vertex to ``target``, shape (n_points,)."""
        target = torch.as_tensor(
            target, dtype=self.points.dtype, device=self.points.device
        )
        return torch.linalg.vector_norm(self.points - target, dim=-1)

    def edges(self) -> torch.Tensor:
        """Unique undirected edges, shape (n_edges, 2), sorted within each row."""
        from meshgrading.utilities._topology import extract_unique_edges

        return extract_unique_edges(self)[0]

    def is_watertight(self) -> bool:
        """Return True if every edge is shared by exactly two triangles."""
        from meshgrading.utilities._topology import count_edge_cells

        if self.n_cells == 0:
            return False
        _, counts = count_edge_cells(self)
        return bool(torch.all(counts == 2))

    def strip_caches(self) -> "Mesh":
        """Return a copy of this mesh without any ``"_cache"`` entries."""
        return Mesh(
            points=self.points,
            cells=self.cells,
            point_data=without_cache(self.point_data),
            cell_data=without_cache(self.cell_data),
        )

    def _cell_cross_products(self) -> torch.Tensor:
        """Unnormalized ``(v1 - v0) x (v2 - v0)`` per triangle, shape (n_cells, 3)."""
        cell_vertices = self.points[self.cells]  # (n_cells, 3, 3)
        return torch.linalg.cross(
            cell_vertices[:, 1] - cell_vertices[:, 0],
            cell_vertices[:, 2] - cell_vertices[:, 0],
            dim=-1,
        )
