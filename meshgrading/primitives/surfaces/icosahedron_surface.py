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

"""Regular icosahedron surface in 3D space.

Dimensional: 2D manifold in 3D space (closed, no boundary).
"""

import math

import torch

from meshgrading.mesh import Mesh

_PHI = (1.0 + math.sqrt(5.0)) / 2.0

_VERTICES = [
    [-1.0, _PHI, 0.0],
    [1.0, _PHI, 0.0],
    [-1.0, -_PHI, 0.0],
    [1.0, -_PHI, 0.0],
    [0.0, -1.0, _PHI],
    [0.0, 1.0, _PHI],
    [0.0, -1.0, -_PHI],
    [0.0, 1.0, -_PHI],
    [_PHI, 0.0, -1.0],
    [_PHI, 0.0, 1.0],
    [-_PHI, 0.0, -1.0],
    [-_PHI, 0.0, 1.0],
]

# Counter-clockwise seen from outside
_FACES = [
    [0, 11, 5], [0, 5, 1], [0, 1, 7], [0, 7, 10], [0, 10, 11],
    [1, 5, 9], [5, 11, 4], [11, 10, 2], [10, 7, 6], [7, 1, 8],
    [3, 9, 4], [3, 4, 2], [3, 2, 6], [3, 6, 8], [3, 8, 9],
    [4, 9, 5], [2, 4, 11], [6, 2, 10], [8, 6, 7], [9, 8, 1],
]  # fmt: skip


def edge_length(radius: float = 1.0) -> float:
    """Edge length of a regular icosahedron with circumradius ``radius``."""
    return radius * 4.0 / math.sqrt(10.0 + 2.0 * math.sqrt(5.0))


def load(
    radius: float = 1.0,
    dtype: torch.dtype = torch.float32,
    device: torch.device | str = "cpu",
) -> Mesh:
    """Create a regular icosahedron inscribed in a sphere of radius ``radius``.

    Parameters
    ----------
    radius : float
        Circumradius (distance from the centre to every vertex).
    dtype : torch.dtype
        Floating-point dtype of the points.
    device : torch.device or str
        Compute device ('cpu' or 'cuda').

    Returns
    -------
    Mesh
        12 vertices, 20 outward-oriented triangles, all edges of length
        :func:`edge_length`.
    """
    if radius <= 0:
        raise ValueError(f"radius must be positive, got {radius=}")

    points = torch.tensor(_VERTICES, dtype=dtype, device=device)
    points = points / torch.linalg.vector_norm(points, dim=-1, keepdim=True) * radius
    cells = torch.tensor(_FACES, dtype=torch.int64, device=device)
    return Mesh(points=points, cells=cells)
