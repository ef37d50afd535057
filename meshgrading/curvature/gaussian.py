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

"""Gaussian curvature by the angle defect method.

For a vertex with incident corner angles theta_k and mixed Voronoi area A:

    K = (2 pi - sum_k theta_k) / A

Reference: Meyer et al. (2003), discrete Gauss-Bonnet theorem.
"""

from typing import TYPE_CHECKING

import torch

from meshgrading.geometry._angles import compute_vertex_angle_sums
from meshgrading.geometry.dual_meshes import compute_dual_areas
from meshgrading.utilities._tolerances import safe_eps

if TYPE_CHECKING:
    from meshgrading.mesh import Mesh


def gaussian_curvature_vertices(mesh: "Mesh") -> torch.Tensor:
    """Compute intrinsic Gaussian curvature at mesh vertices.

    Signed curvature:

    - Positive: elliptic point (sphere-like)
    - Zero: flat or parabolic point (plane, cylinder)
    - Negative: hyperbolic point (saddle)

    Parameters
    ----------
    mesh : Mesh
        Input triangle mesh.

    Returns
    -------
    torch.Tensor
        Gaussian curvature per vertex, shape (n_points,). NaN for isolated
        vertices. Boundary vertices see an incomplete angle fan, so their
        value is only meaningful in combination with a boundary-aware caller.

    Examples
    --------
    >>> from meshgrading.primitives.surfaces import sphere_icosahedral
    >>> sphere = sphere_icosahedral.load(radius=2.0, subdivisions=3)
    >>> K = gaussian_curvature_vertices(sphere)
    >>> # K.mean() is close to 0.25 = 1 / 2.0**2
    """
    angle_defect = 2 * torch.pi - compute_vertex_angle_sums(mesh)
    dual_areas = compute_dual_areas(mesh)

    gaussian_curvature = angle_defect / dual_areas.clamp(min=safe_eps(dual_areas.dtype))

    return torch.where(
        dual_areas > 0,
        gaussian_curvature,
        torch.full_like(gaussian_curvature, float("nan")),
    )
