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

"""Open cylinder surface (no caps) in 3D space.

Dimensional: 2D manifold in 3D space (has boundary).
"""

import torch

from meshgrading.mesh import Mesh


def load(
    radius: float = 1.0,
    height: float = 2.0,
    n_circ: int = 32,
    n_height: int = 10,
    dtype: torch.dtype = torch.float32,
    device: torch.device | str = "cpu",
) -> Mesh:
    """Create an open cylinder around the z axis, centred at the origin.

    Parameters
    ----------
    radius : float
        Radius of the cylinder.
    height : float
        Height of the cylinder.
    n_circ : int
        Number of points around the circumference.
    n_height : int
        Number of rings of points along the height.
    dtype : torch.dtype
        Floating-point dtype of the points.
    device : str
        Compute device ('cpu' or 'cuda').

    Returns
    -------
    Mesh
        Outward-oriented mesh with two boundary loops of ``n_circ`` edges.
    """
    if n_circ < 3:
        raise ValueError(f"n_circ must be at least 3, got {n_circ=}")
    if n_height < 2:
        raise ValueError(f"n_height must be at least 2, got {n_height=}")

    theta = torch.linspace(0, 2 * torch.pi, n_circ + 1, dtype=dtype, device=device)[:-1]
    z_vals = torch.linspace(-height / 2, height / 2, n_height, dtype=dtype, device=device)

    Z, THETA = torch.meshgrid(z_vals, theta, indexing="ij")
    points = torch.stack(
        [radius * torch.cos(THETA), radius * torch.sin(THETA), Z], dim=-1
    ).reshape(-1, 3)

    ### Periodic in theta, open in z
    ii, jj = torch.meshgrid(
        torch.arange(n_height - 1, device=device),
        torch.arange(n_circ, device=device),
        indexing="ij",
    )
    ii, jj = ii.reshape(-1), jj.reshape(-1)

    p00 = ii * n_circ + jj
    p01 = ii * n_circ + (jj + 1) % n_circ
    p10 = (ii + 1) * n_circ + jj
    p11 = (ii + 1) * n_circ + (jj + 1) % n_circ

    cells = torch.cat(
        [torch.stack([p00, p01, p10], dim=1), torch.stack([p01, p11, p10], dim=1)],
        dim=0,
    )
    return Mesh(points=points, cells=cells)
