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

"""Unit square triangulated in the z = 0 plane of 3D space.

Dimensional: 2D manifold in 3D space (has boundary).
"""

import torch

from meshgrading.mesh import Mesh


def load(
    subdivisions: int = 0,
    dtype: torch.dtype = torch.float32,
    device: torch.device | str = "cpu",
) -> Mesh:
    """Create a triangulated unit square ``[0, 1] x [0, 1] x {0}``.

    Parameters
    ----------
    subdivisions : int
        Number of subdivision levels (0 = 2 triangles). Each level quadruples
        the number of triangles: 0 -> 2, 1 -> 8, 2 -> 32, etc.
    dtype : torch.dtype
        Floating-point dtype of the points.
    device : str
        Compute device ('cpu' or 'cuda').

    Returns
    -------
    Mesh
        Mesh with normals along +z and 4 * 2**subdivisions boundary edges.
    """
    if subdivisions < 0:
        raise ValueError(f"subdivisions must be non-negative, got {subdivisions=}")

    n = 2**subdivisions + 1

    x = torch.linspace(0.0, 1.0, n, dtype=dtype, device=device)
    xx, yy = torch.meshgrid(x, x, indexing="ij")
    points = torch.stack([xx.flatten(), yy.flatten(), torch.zeros_like(xx.flatten())], dim=1)

    ### Two counter-clockwise triangles per grid quad; point (i, j) has index i * n + j
    i, j = torch.meshgrid(
        torch.arange(n - 1, device=device),
        torch.arange(n - 1, device=device),
        indexing="ij",
    )
    idx = (i * n + j).flatten()
    cells = torch.cat(
        [
            torch.stack([idx, idx + n, idx + 1], dim=1),
            torch.stack([idx + n, idx + n + 1, idx + 1], dim=1),
        ],
        dim=0,
    )
    return Mesh(points=points, cells=cells)
