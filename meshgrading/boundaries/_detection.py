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

"""Boundary detection for triangle meshes.

An edge is on the boundary if it appears in exactly one triangle; a vertex is
on the boundary if it belongs to a boundary edge.
"""

from typing import TYPE_CHECKING

import torch

from meshgrading.utilities._topology import count_edge_cells

if TYPE_CHECKING:
    from meshgrading.mesh import Mesh


def get_boundary_edges(mesh: "Mesh") -> torch.Tensor:
    """Return the edges that belong to exactly one triangle.

    Parameters
    ----------
    mesh : Mesh
        Input triangle mesh.

    Returns
    -------
    torch.Tensor
        Boundary edges, shape (n_boundary_edges, 2), sorted within each row.
        Empty for closed (watertight) meshes.

    Examples
    --------
    >>> from meshgrading.primitives.surfaces import cylinder_open
    >>> mesh = cylinder_open.load(n_circ=16, n_height=4)
    >>> get_boundary_edges(mesh).shape
    torch.Size([32, 2])
    """
    unique_edges, counts = count_edge_cells(mesh)
    return unique_edges[counts == 1]


def get_boundary_vertices(mesh: "Mesh") -> torch.Tensor:
    """Identify vertices that lie on the mesh boundary.

    Parameters
    ----------
    mesh : Mesh
        Input triangle mesh.

    Returns
    -------
    torch.Tensor
        Boolean tensor of shape (n_points,), True on boundary vertices.
        All False for closed meshes.
    """
    is_boundary_vertex = torch.zeros(
        mesh.n_points, dtype=torch.bool, device=mesh.cells.device
    )
    if mesh.n_cells == 0:
        return is_boundary_vertex

    boundary_edges = get_boundary_edges(mesh)
    if len(boundary_edges) > 0:
        is_boundary_vertex[boundary_edges.reshape(-1)] = True
    return is_boundary_vertex
