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

"""Numerically stable triangle angle computations."""

from typing import TYPE_CHECKING

import torch

if TYPE_CHECKING:
    from meshgrading.mesh import Mesh


def stable_angle_between_vectors(v1: torch.Tensor, v2: torch.Tensor) -> torch.Tensor:
    """Compute the angle between vectors with the atan2 formula.

    ``atan2(|v1 x v2|, v1 . v2)`` stays accurate for nearly parallel and
    anti-parallel vectors, where ``acos`` of the normalized dot product loses
    precision.

    Parameters
    ----------
    v1 : torch.Tensor
        First vector(s), shape (..., n_dims).
    v2 : torch.Tensor
        Second vector(s), shape (..., n_dims).

    Returns
    -------
    torch.Tensor
        Angle(s) in radians in [0, pi], shape (...).
    """
    dot_product = (v1 * v2).sum(dim=-1)

    # |v1 x v2|^2 = |v1|^2 |v2|^2 - (v1 . v2)^2, valid in any dimension
    v1_norm = torch.linalg.vector_norm(v1, dim=-1)
    v2_norm = torch.linalg.vector_norm(v2, dim=-1)
    cross_magnitude = torch.sqrt(
        torch.clamp(v1_norm**2 * v2_norm**2 - dot_product**2, min=0)
    )

    return torch.atan2(cross_magnitude, dot_product)


def compute_triangle_angles(
    p0: torch.Tensor,
    p1: torch.Tensor,
    p2: torch.Tensor,
) -> torch.Tensor:
    """Compute the angle at ``p0`` in triangle ``(p0, p1, p2)``.

    Examples
    --------
    >>> p0 = torch.tensor([0.0, 0.0, 0.0])
    >>> p1 = torch.tensor([1.0, 0.0, 0.0])
    >>> p2 = torch.tensor([0.0, 1.0, 0.0])
    >>> assert torch.allclose(compute_triangle_angles(p0, p1, p2), torch.tensor(torch.pi / 2))
    """
    return stable_angle_between_vectors(p1 - p0, p2 - p0)


def compute_corner_angles(mesh: "Mesh") -> torch.Tensor:
    """Compute the interior angle at each corner of each triangle.

    Parameters
    ----------
    mesh : Mesh
        Input triangle mesh.

    Returns
    -------
    torch.Tensor
        Angles in radians, shape (n_cells, 3); column ``j`` is the angle at
        local vertex ``j``.
    """
    cell_vertices = mesh.points[mesh.cells]  # (n_cells, 3, 3)
    return torch.stack(
        [
            compute_triangle_angles(
                cell_vertices[:, j],
                cell_vertices[:, (j + 1) % 3],
                cell_vertices[:, (j + 2) % 3],
            )
            for j in range(3)
        ],
        dim=-1,
    )


def compute_vertex_angle_sums(mesh: "Mesh") -> torch.Tensor:
    """Sum of incident corner angles at every vertex, shape (n_points,).

    Isolated vertices get 0.
    """
    angle_sums = torch.zeros(
        mesh.n_points, dtype=mesh.points.dtype, device=mesh.points.device
    )
    angle_sums.scatter_add_(
        0, mesh.cells.reshape(-1), compute_corner_angles(mesh).reshape(-1)
    )
    return angle_sums
