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

"""Surface of an axis-aligned cube in 3D space.

Dimensional: 2D manifold in 3D space (closed, with 12 sharp 90-degree edges).
"""

import torch

from meshgrading.mesh import Mesh

# (origin, u, v) per face, with u x v pointing outward
_FACES = [
    ((0.5, -0.5, -0.5), (0, 1, 0), (0, 0, 1)),  # +x
    ((-0.5, -0.5, -0.5), (0, 0, 1), (0, 1, 0)),  # -x
    ((-0.5, 0.5, -0.5), (0, 0, 1), (1, 0, 0)),  # +y
    ((-0.5, -0.5, -0.5), (1, 0, 0), (0, 0, 1)),  # -y
    ((-0.5, -0.5, 0.5), (1, 0, 0), (0, 1, 0)),  # +z
    ((-0.5, -0.5, -0.5), (0, 1, 0), (1, 0, 0)),  # -z
]


def load(
    size: float = 1.0,
    subdivisions: int = 1,
    dtype: torch.dtype = torch.float32,
    device: torch.device | str = "cpu",
) -> Mesh:
    """Create the triangulated surface of a cube centred at the origin.

    Parameters
    ----------
    size : float
        Edge length of the cube.
    subdivisions : int
        Grid refinement per cube face: each face is a ``2**subdivisions``
        by ``2**subdivisions`` grid of quads split into two triangles.
    dtype : torch.dtype
        Floating-point dtype of the points.
    device : torch.device or str
        Compute device ('cpu' or 'cuda').

    Returns
    -------
    Mesh
        Closed, outward-oriented mesh; vertices on cube edges are shared
        between the adjacent faces.
    """
    if size <= 0:
        raise ValueError(f"size must be positive, got {size=}")
    if subdivisions < 0:
        raise ValueError(f"subdivisions must be non-negative, got {subdivisions=}")

    n = 2**subdivisions + 1
    s = torch.linspace(0.0, 1.0, n, dtype=dtype, device=device)
    si, sj = torch.meshgrid(s, s, indexing="ij")

    i, j = torch.meshgrid(
        torch.arange(n - 1, device=device),
        torch.arange(n - 1, device=device),
        indexing="ij",
    )
    idx = (i * n + j).flatten()
    grid_cells = torch.cat(
        [
            torch.stack([idx, idx + n, idx + 1], dim=1),
            torch.stack([idx + n, idx + n + 1, idx + 1], dim=1),
        ],
        dim=0,
    )

    all_points, all_cells = [], []
    for face_idx, (origin, u, v) in enumerate(_FACES):
        origin_t = torch.tensor(origin, dtype=dtype, device=device)
        u_t = torch.tensor(u, dtype=dtype, device=device)
        v_t = torch.tensor(v, dtype=dtype, device=device)
        face_points = (
            origin_t + si.reshape(-1, 1) * u_t + sj.reshape(-1, 1) * v_t
        )  # (n * n, 3)
        all_points.append(face_points)
        all_cells.append(grid_cells + face_idx * n * n)

    points = torch.cat(all_points, dim=0)
    cells = torch.cat(all_cells, dim=0)

    ### Merge the coincident vertices along cube edges and corners
    keys = torch.round(points * 2 * (n - 1)).long()
    unique_keys, inverse = torch.unique(keys, dim=0, return_inverse=True)
    merged = torch.zeros((len(unique_keys), 3), dtype=dtype, device=device)
    merged[inverse] = points

    return Mesh(points=merged * size, cells=inverse[cells])
