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

"""Closest-point projection onto a fixed reference surface."""

from typing import TYPE_CHECKING

import torch

from meshgrading.spatial import BVH
from meshgrading.utilities._tolerances import safe_eps

if TYPE_CHECKING:
    from meshgrading.mesh import Mesh


def _closest_point_on_segment(
    query: torch.Tensor, start: torch.Tensor, end: torch.Tensor
) -> torch.Tensor:
    direction = end - start
    length_sq = (direction * direction).sum(-1, keepdim=True)
    t = ((query - start) * direction).sum(-1, keepdim=True) / length_sq.clamp(
        min=safe_eps(query.dtype)
    )
    return start + t.clamp(0.0, 1.0) * direction


def closest_point_on_triangles(
    query: torch.Tensor,
    a: torch.Tensor,
    b: torch.Tensor,
    c: torch.Tensor,
) -> torch.Tensor:
    """Closest point to ``query`` on each triangle ``(a, b, c)``.

    The query is projected onto the triangle's plane; if the projection lies
    outside the triangle (or the triangle is degenerate), the closest point on
    the three edges is used instead.

    Parameters
    ----------
    query, a, b, c : torch.Tensor
        Broadcastable tensors of shape (..., 3).

    Returns
    -------
    torch.Tensor
        Closest points, shape (..., 3).
    """
    eps = safe_eps(query.dtype)
    e0 = b - a
    e1 = c - a
    normal = torch.linalg.cross(e0, e1)
    normal_sq = (normal * normal).sum(-1, keepdim=True)

    ### In-plane projection and its barycentric coordinates
    offset = ((query - a) * normal).sum(-1, keepdim=True) / normal_sq.clamp(min=eps)
    projected = query - offset * normal

    rel = projected - a
    d00 = (e0 * e0).sum(-1)
    d01 = (e0 * e1).sum(-1)
    d11 = (e1 * e1).sum(-1)
    d20 = (rel * e0).sum(-1)
    d21 = (rel * e1).sum(-1)
    denom = d00 * d11 - d01 * d01
    v = (d11 * d20 - d01 * d21) / denom.clamp(min=eps)
    w = (d00 * d21 - d01 * d20) / denom.clamp(min=eps)
    inside = (v >= 0) & (w >= 0) & (v + w <= 1) & (denom > eps)

    ### Closest point on the boundary of the triangle
    on_edges = torch.stack(
        [
            _closest_point_on_segment(query, a, b),
            _closest_point_on_segment(query, b, c),
            _closest_point_on_segment(query, c, a),
        ],
        dim=-2,
    )  # (..., 3 edges, 3)
    edge_dist = torch.linalg.vector_norm(on_edges - query.unsqueeze(-2), dim=-1)
    best_edge = edge_dist.argmin(dim=-1, keepdim=True)
    on_boundary = torch.gather(
        on_edges, -2, best_edge.unsqueeze(-1).expand(*best_edge.shape, 3)
    ).squeeze(-2)

    return torch.where(inside.unsqueeze(-1), projected, on_boundary)


class ReferenceSurface:
    """A frozen copy of a triangle surface to project points back onto.

    Projection is exact. The ``n_candidates`` triangles with the nearest
    centroids give an upper bound on each query's distance to the surface;
    a :class:`~meshgrading.spatial.BVH` then collects every triangle whose
    bounding box lies within that bound, and the closest point over all of
    them is returned.

    Parameters
    ----------
    points : torch.Tensor
        Vertex positions, shape (n_points, 3).
    cells : torch.Tensor
        Triangles, shape (n_cells, 3).
    n_candidates : int
        Number of nearest-centroid triangles used for the distance bound.
    chunk_size : int
        Number of queries processed at once.

    Examples
    --------
    >>> from meshgrading.primitives.planar import unit_square
    >>> reference = ReferenceSurface.from_mesh(unit_square.load())
    >>> reference.project(torch.tensor([[0.5, 0.25, 1.0]]))
    tensor([[0.5000, 0.2500, 0.0000]])
    """

    def __init__(
        self,
        points: torch.Tensor,
        cells: torch.Tensor,
        n_candidates: int = 8,
        chunk_size: int = 4096,
    ) -> None:
        self.points = points.detach().clone()
        self.cells = cells.detach().clone()
        self.centroids = self.points[self.cells].mean(dim=1)
        self.bvh = BVH.from_triangles(self.points, self.cells)
        self.n_candidates = n_candidates
        self.chunk_size = chunk_size

    @classmethod
    def from_mesh(cls, mesh: "Mesh", **kwargs) -> "ReferenceSurface":
        return cls(mesh.points, mesh.cells, **kwargs)

    @property
    def n_cells(self) -> int:
        return self.cells.shape[0]

    def _closest_on_cells(
        self, query: torch.Tensor, cells: torch.Tensor
    ) -> tuple[torch.Tensor, torch.Tensor]:
        tri = self.points[self.cells[cells]]
        closest = closest_point_on_triangles(
            query, tri[..., 0, :], tri[..., 1, :], tri[..., 2, :]
        )
        return closest, torch.linalg.vector_norm(closest - query, dim=-1)

    def _project_chunk(self, chunk: torch.Tensor) -> torch.Tensor:
        n_chunk = len(chunk)
        rows = torch.arange(n_chunk, device=chunk.device)

        ### Distance bound from the nearest centroids
        k = min(self.n_candidates, self.n_cells)
        nearest = torch.cdist(chunk, self.centroids).topk(
            k, dim=-1, largest=False
        ).indices  # (n_chunk, k)
        closest, dist = self._closest_on_cells(chunk.unsqueeze(1), nearest)
        best = dist.argmin(dim=-1)
        result = closest[rows, best]
        bound = dist[rows, best]

        ### Every triangle that can beat the bound
        radius = bound * (1.0 + 1e-6) + safe_eps(chunk.dtype)
        query_ids, cell_ids = self.bvh.cells_within(chunk, radius)
        if len(query_ids) == 0:
            return result
        pair_closest, pair_dist = self._closest_on_cells(chunk[query_ids], cell_ids)

        # Per query, the lowest pair index among its nearest pairs
        best_dist = bound.scatter_reduce(0, query_ids, pair_dist, reduce="amin")
        pair_ids = torch.arange(len(query_ids), device=chunk.device)
        is_best = (pair_dist <= best_dist[query_ids]) & (pair_dist < bound[query_ids])
        winner = torch.full((n_chunk,), len(query_ids), device=chunk.device)
        winner.scatter_reduce_(
            0, query_ids[is_best], pair_ids[is_best], reduce="amin"
        )
        improved = winner < len(query_ids)
        result[improved] = pair_closest[winner[improved]]
        return result

    def project(self, query_points: torch.Tensor) -> torch.Tensor:
        """Project points onto the reference surface.

        Parameters
        ----------
        query_points : torch.Tensor
            Points to project, shape (n_queries, 3).

        Returns
        -------
        torch.Tensor
            Closest points on the surface, shape (n_queries, 3).
            ``query_points`` unchanged if the surface has no triangles.
        """
        if self.n_cells == 0 or len(query_points) == 0:
            return query_points.clone()

        query_points = query_points.to(self.points.dtype)
        chunks = query_points.split(self.chunk_size)
        return torch.cat([self._project_chunk(chunk) for chunk in chunks], dim=0)
