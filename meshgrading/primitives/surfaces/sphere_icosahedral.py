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

"""Icosahedral sphere surface in 3D space.

A sphere created by subdividing an icosahedron and projecting vertices
onto the sphere surface. This produces a more uniform triangulation than
UV-parameterized spheres.

Dimensional: 2D manifold in 3D space (closed, no boundary).
"""

import torch

from meshgrading.mesh import Mesh
from meshgrading.primitives._subdivision import subdivide_linear
from meshgrading.primitives.surfaces import icosahedron_surface


def load(
    radius: float = 1.0,
    subdivisions: int = 2,
    dtype: torch.dtype = torch.float32,
    device: torch.device | str = "cpu",
) -> Mesh:
    """Create a sphere by subdividing an icosahedron and projecting to the sphere.

    Parameters
    ----------
    radius : float
        Radius of the sphere.
    subdivisions : int
        Number of subdivision levels. Each level quadruples the triangle
        count: 0 -> 20, 1 -> 80, 2 -> 320, 3 -> 1280.
    dtype : torch.dtype
        Floating-point dtype of the points.
    device : torch.device or str
        Compute device ('cpu' or 'cuda').

    Returns
    -------
    Mesh
        Closed, outward-oriented sphere mesh.

    Examples
    --------
    >>> from meshgrading.primitives.surfaces import sphere_icosahedral
    >>> mesh = sphere_icosahedral.load(radius=1.0, subdivisions=2)
    >>> mesh.n_cells  # 20 * 4^2 = 320 triangles
    320
    """
    if radius <= 0:
        raise ValueError(f"radius must be positive, got {radius=}")
    if subdivisions < 0:
        raise ValueError(f"subdivisions must be non-negative, got {subdivisions=}")

    mesh = subdivide_linear(
        icosahedron_surface.load(radius=1.0, dtype=dtype, device=device),
        levels=subdivisions,
    )

    ### Midpoints lie inside the sphere; push every point back onto it
    norms = torch.linalg.vector_norm(mesh.points, dim=-1, keepdim=True)
    return Mesh(points=mesh.points / norms * radius, cells=mesh.cells)
