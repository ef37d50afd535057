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

"""Linear bounding volume hierarchy (LBVH) over the triangles of a surface.

The tree is stored as flat tensors. Triangles are sorted along a Z-order
(morton) curve of their centroids and the sorted range is split at its
midpoint until a node holds at most ``leaf_size`` triangles, so construction
takes O(log N) Python-level iterations. Queries traverse all query points
level by level in a vectorized way.

Used by :class:`~meshgrading.remeshing.ReferenceSurface` to gather every
triangle that can hold the closest point to a query, including large
triangles next to much finer ones.
"""

from typing import TYPE_CHECKING

import torch
from tensordict import tensorclass

if TYPE_CHECKING:
    from meshgrading.mesh import Mesh


def _morton_codes(centroids: torch.Tensor) -> torch.Tensor:
    """Interleave the bits of quantized 3D coordinates into int64 Z-order keys.

    Parameters
    ----------
    centroids : torch.Tensor
        Points, shape (n, 3), floating point.

    Returns
    -------
    torch.Tensor
        Non-negative morton codes, shape (n,), int64.
    """
    n, n_dims = centroids.shape
    n_bits = 63 // n_dims
    max_val = (1 << n_bits) - 1

    lo = centroids.min(dim=0).values
    extent = (centroids.max(dim=0).values - lo).clamp(min=1e-30)
    grid = ((centroids - lo) / extent * max_val).long().clamp(0, max_val)

    code = torch.zeros(n, dtype=torch.int64, device=centroids.device)
    dim_offsets = torch.arange(n_dims, dtype=torch.int64, device=centroids.device)
    for bit in range(n_bits):
        code += (((grid >> bit) & 1) << (bit * n_dims + dim_offsets)).sum(dim=1)
    return code


def _ragged_arange(starts: torch.Tensor, counts: torch.Tensor) -> torch.Tensor:
    """Concatenation of ``arange(start, start + count)`` for every pair."""
    total = int(counts.sum())
    offsets = torch.arange(total, dtype=torch.long, device=starts.device)
    offsets = offsets - torch.repeat_interleave(counts.cumsum(0) - counts, counts)
    return torch.repeat_interleave(starts, counts) + offsets


def _point_box_distances(
    points: torch.Tensor, box_min: torch.Tensor, box_max: torch.Tensor
) -> torch.Tensor:
    """Euclidean distance from each point to its box (0 inside), shape (n,)."""
    nearest = torch.minimum(torch.maximum(points, box_min), box_max)
    return torch.linalg.vector_norm(points - nearest, dim=-1)


@tensorclass
class BVH:
    """Binary bounding volume hierarchy over triangles.

    Attributes
    ----------
    node_min, node_max : torch.Tensor
        Axis-aligned box of each node, shape (n_nodes, 3).
    left, right : torch.Tensor
        Child node ids, shape (n_nodes,). -1 for leaves.
    leaf_start, leaf_count : torch.Tensor
        Range of each leaf in ``order``, shape (n_nodes,). ``leaf_count`` is
        0 for internal nodes.
    order : torch.Tensor
        Triangle ids sorted by morton code, shape (n_cells,).

    Examples
    --------
    >>> from meshgrading.primitives.planar import unit_square
    >>> bvh = BVH.from_mesh(unit_square.load(subdivisions=2), leaf_size=4)
    >>> query, cells = bvh.cells_within(
    ...     torch.tensor([[0.1, 0.1, 0.5]]), torch.tensor([0.55])
    ... )
    >>> bool((query == 0).all())
    True
    """

    node_min: torch.Tensor
    node_max: torch.Tensor
    left: torch.Tensor
    right: torch.Tensor
    leaf_start: torch.Tensor
    leaf_count: torch.Tensor
    order: torch.Tensor

    @property
    def n_nodes(self) -> int:
        return self.node_min.shape[0]

    @classmethod
    def from_mesh(cls, mesh: "Mesh", leaf_size: int = 8) -> "BVH":
        return cls.from_triangles(mesh.points, mesh.cells, leaf_size=leaf_size)

    @classmethod
    def from_triangles(
        cls, points: torch.Tensor, cells: torch.Tensor, leaf_size: int = 8
    ) -> "BVH":
        """Build the hierarchy for the triangles ``points[cells]``.

        Parameters
        ----------
        points : torch.Tensor
            Vertex positions, shape (n_points, 3).
        cells : torch.Tensor
            Triangles, shape (n_cells, 3).
        leaf_size : int
            Maximum number of triangles per leaf.

        Raises
        ------
        ValueError
            If ``leaf_size < 1``.
        """
        if leaf_size < 1:
            raise ValueError(f"`leaf_size` must be at least 1, but got {leaf_size=}.")

        device, dtype = points.device, points.dtype
        n_cells = cells.shape[0]
        if n_cells == 0:
            empty = torch.empty(0, dtype=torch.long, device=device)
            return cls(
                node_min=torch.empty((0, 3), dtype=dtype, device=device),
                node_max=torch.empty((0, 3), dtype=dtype, device=device),
                left=empty,
                right=empty,
                leaf_start=empty,
                leaf_count=empty,
                order=empty,
                batch_size=torch.Size([]),
            )

        corners = points[cells]  # (n_cells, 3, 3)
        order = _morton_codes(corners.mean(dim=1)).argsort(stable=True)
        cell_min = corners.min(dim=1).values[order]
        cell_max = corners.max(dim=1).values[order]

        # Midpoint splits leave at least ceil(leaf_size / 2) triangles per leaf
        min_per_leaf = max(1, (leaf_size + 1) // 2)
        max_nodes = max(1, 2 * -(-n_cells // min_per_leaf) - 1)
        node_min = torch.full((max_nodes, 3), float("inf"), dtype=dtype, device=device)
        node_max = torch.full((max_nodes, 3), float("-inf"), dtype=dtype, device=device)
        left = torch.full((max_nodes,), -1, dtype=torch.long, device=device)
        right = torch.full((max_nodes,), -1, dtype=torch.long, device=device)
        leaf_start = torch.full((max_nodes,), -1, dtype=torch.long, device=device)
        leaf_count = torch.zeros(max_nodes, dtype=torch.long, device=device)

        ### Top-down: one iteration per tree level
        starts = torch.zeros(1, dtype=torch.long, device=device)
        ends = torch.full((1,), n_cells, dtype=torch.long, device=device)
        node_ids = torch.zeros(1, dtype=torch.long, device=device)
        n_nodes = 1
        levels: list[torch.Tensor] = []

        while len(starts) > 0:
            sizes = ends - starts
            is_leaf = sizes <= leaf_size

            if is_leaf.any():
                leaf_ids = node_ids[is_leaf]
                leaf_start[leaf_ids] = starts[is_leaf]
                leaf_count[leaf_ids] = sizes[is_leaf]

                # Segmented min/max over the triangles of each new leaf
                segment = torch.repeat_interleave(
                    torch.arange(len(leaf_ids), device=device), sizes[is_leaf]
                )
                positions = _ragged_arange(starts[is_leaf], sizes[is_leaf])
                index = segment.unsqueeze(1).expand(-1, 3)
                seg_min = node_min.new_full((len(leaf_ids), 3), float("inf"))
                seg_max = node_max.new_full((len(leaf_ids), 3), float("-inf"))
                seg_min.scatter_reduce_(0, index, cell_min[positions], reduce="amin")
                seg_max.scatter_reduce_(0, index, cell_max[positions], reduce="amax")
                node_min[leaf_ids] = seg_min
                node_max[leaf_ids] = seg_max

            inner = ~is_leaf
            if not inner.any():
                break
            inner_ids = node_ids[inner]
            mid = starts[inner] + sizes[inner] // 2
            left_ids = n_nodes + 2 * torch.arange(len(inner_ids), device=device)
            right_ids = left_ids + 1
            n_nodes += 2 * len(inner_ids)
            left[inner_ids] = left_ids
            right[inner_ids] = right_ids
            levels.append(inner_ids)

            starts = torch.cat([starts[inner], mid])
            ends = torch.cat([mid, ends[inner]])
            node_ids = torch.cat([left_ids, right_ids])

        ### Bottom-up: internal boxes are the union of their children
        for inner_ids in reversed(levels):
            node_min[inner_ids] = torch.minimum(
                node_min[left[inner_ids]], node_min[right[inner_ids]]
            )
            node_max[inner_ids] = torch.maximum(
                node_max[left[inner_ids]], node_max[right[inner_ids]]
            )

        return cls(
            node_min=node_min[:n_nodes],
            node_max=node_max[:n_nodes],
            left=left[:n_nodes],
            right=right[:n_nodes],
            leaf_start=leaf_start[:n_nodes],
            leaf_count=leaf_count[:n_nodes],
            order=order,
            batch_size=torch.Size([]),
        )

    def cells_within(
        self, query_points: torch.Tensor, radius: torch.Tensor
    ) -> tuple[torch.Tensor, torch.Tensor]:
        """All triangles whose bounding box lies within ``radius`` of a query.

        Every triangle with a point closer than ``radius[i]`` to
        ``query_points[i]`` is returned; some farther ones may be too.

        Parameters
        ----------
        query_points : torch.Tensor
            Query points, shape (n_queries, 3).
        radius : torch.Tensor
            Search radius per query, shape (n_queries,).

        Returns
        -------
        tuple[torch.Tensor, torch.Tensor]
            ``(query_ids, cell_ids)`` candidate pairs, each of shape (n_pairs,).
        """
        device = query_points.device
        n_queries = query_points.shape[0]
        if self.n_nodes == 0 or n_queries == 0:
            empty = torch.empty(0, dtype=torch.long, device=device)
            return empty, empty

        queries = torch.arange(n_queries, dtype=torch.long, device=device)
        nodes = torch.zeros(n_queries, dtype=torch.long, device=device)
        found_queries: list[torch.Tensor] = []
        found_cells: list[torch.Tensor] = []

        while len(queries) > 0:
            distance = _point_box_distances(
                query_points[queries], self.node_min[nodes], self.node_max[nodes]
            )
            hit = distance <= radius[queries]
            queries, nodes = queries[hit], nodes[hit]

            counts = self.leaf_count[nodes]
            is_leaf = counts > 0
            if is_leaf.any():
                found_queries.append(
                    torch.repeat_interleave(queries[is_leaf], counts[is_leaf])
                )
                positions = _ragged_arange(
                    self.leaf_start[nodes[is_leaf]], counts[is_leaf]
                )
                found_cells.append(self.order[positions])

            queries, nodes = queries[~is_leaf], nodes[~is_leaf]
            queries = torch.cat([queries, queries])
            nodes = torch.cat([self.left[nodes], self.right[nodes]])

        if not found_queries:
            empty = torch.empty(0, dtype=torch.long, device=device)
            return empty, empty
        return torch.cat(found_queries), torch.cat(found_cells)
