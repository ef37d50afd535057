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

"""Edge topology utilities for triangle meshes."""

from typing import TYPE_CHECKING

import torch

if TYPE_CHECKING:
    from meshgrading.mesh import Mesh

# Local vertex pairs of a triangle, in combinations order
_LOCAL_EDGES = ((0, 1), (0, 2), (1, 2))


def extract_candidate_edges(cells: torch.Tensor) -> tuple[torch.Tensor, torch.Tensor]:
    """Extract the three edges of every triangle, with duplicates.

    Parameters
    ----------
    cells : torch.Tensor
        Triangle connectivity, shape (n_cells, 3).

    Returns
    -------
    candidate_edges : torch.Tensor
        Edge vertex indices, shape (n_cells * 3, 2), sorted within each row so
        that ``candidate_edges[:, 0] < candidate_edges[:, 1]``. Rows
        ``3 * i : 3 * i + 3`` belong to cell ``i``.
    parent_cell_indices : torch.Tensor
        Cell index of each candidate edge, shape (n_cells * 3,).
    """
    n_cells = cells.shape[0]
    edges = torch.stack(
        [cells[:, list(pair)] for pair in _LOCAL_EDGES], dim=1
    )  # (n_cells, 3, 2)
    candidate_edges = torch.sort(edges.reshape(-1, 2), dim=-1).values
    parent_cell_indices = torch.arange(
        n_cells, device=cells.device
    ).repeat_interleave(len(_LOCAL_EDGES))
    return candidate_edges, parent_cell_indices


def extract_unique_edges(mesh: "Mesh") -> tuple[torch.Tensor, torch.Tensor]:
    """Extract all unique edges from a triangle mesh.

    Parameters
    ----------
    mesh : Mesh
        Input triangle mesh.

    Returns
    -------
    unique_edges : torch.Tensor
        Unique edge vertex indices, shape (n_edges, 2), canonically sorted so
        that ``unique_edges[:, 0] < unique_edges[:, 1]``.
    inverse_indices : torch.Tensor
        Mapping from candidate edges to unique edge indices, shape
        (n_cells * 3,). Reshape to (n_cells, 3) for per-cell lookups.

    Examples
    --------
    >>> import torch
    >>> from meshgrading.mesh import Mesh
    >>> mesh = Mesh(
    ...     points=torch.rand(4, 3), cells=torch.tensor([[0, 1, 2], [1, 3, 2]])
    ... )
    >>> edges, inverse = extract_unique_edges(mesh)
    >>> edges.shape
    torch.Size([5, 2])
    """
    if mesh.n_cells == 0:
        return (
            torch.empty((0, 2), dtype=torch.long, device=mesh.cells.device),
            torch.empty((0,), dtype=torch.long, device=mesh.cells.device),
        )
    candidate_edges, _ = extract_candidate_edges(mesh.cells)
    return torch.unique(candidate_edges, dim=0, return_inverse=True)


def count_edge_cells(mesh: "Mesh") -> tuple[torch.Tensor, torch.Tensor]:
    """Count the cells incident to every unique edge.

    Returns
    -------
    unique_edges : torch.Tensor
        Shape (n_edges, 2).
    counts : torch.Tensor
        Number of incident cells per edge, shape (n_edges,). 1 on the
        boundary, 2 in the interior, more on non-manifold edges.
    """
    unique_edges, inverse_indices = extract_unique_edges(mesh)
    counts = torch.zeros(len(unique_edges), dtype=torch.long, device=mesh.cells.device)
    counts.scatter_add_(0, inverse_indices, torch.ones_like(inverse_indices))
    return unique_edges, counts


def neighbor_mean(values: torch.Tensor, edges: torch.Tensor) -> torch.Tensor:
    """Average ``values`` over the edge neighbours of every vertex.

    Parameters
    ----------
    values : torch.Tensor
        Per-vertex values, shape (n_points, ...).
    edges : torch.Tensor
        Unique undirected edges, shape (n_edges, 2).

    Returns
    -------
    torch.Tensor
        Neighbour mean, same shape as ``values``. Vertices without neighbours
        keep their own value.
    """
    sums = torch.zeros_like(values)
    sums.index_add_(0, edges[:, 0], values[edges[:, 1]])
    sums.index_add_(0, edges[:, 1], values[edges[:, 0]])

    degree = torch.zeros(len(values), dtype=values.dtype, device=values.device)
    ones = torch.ones(len(edges), dtype=values.dtype, device=values.device)
    degree.index_add_(0, edges[:, 0], ones)
    degree.index_add_(0, edges[:, 1], ones)
    degree = degree.view(-1, *([1] * (values.ndim - 1)))

    return torch.where(degree > 0, sums / degree.clamp(min=1), values)
