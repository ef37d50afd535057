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

"""Mean curvature from the cotangent Laplace-Beltrami operator."""

from typing import TYPE_CHECKING

import torch

from meshgrading.curvature._laplacian import compute_laplacian_at_points
from meshgrading.geometry.dual_meshes import compute_dual_areas
from meshgrading.utilities._tolerances import safe_eps

if TYPE_CHECKING:
    from meshgrading.mesh import Mesh


def mean_curvature_vertices(
    mesh: "Mesh",
    include_boundary: bool = False,
) -> torch.Tensor:
    """Compute extrinsic mean curvature at mesh vertices.

    Uses ``H = |L p| / (2 A)`` where ``L p`` is the cotangent Laplacian of the
    coordinates and ``A`` the mixed Voronoi area. The sign is taken from the
    point normal: positive where the surface bulges along its normal (sphere
    exterior with outward normals), negative where it is concave.

    Parameters
    ----------
    mesh : Mesh
        Input triangle mesh.
    include_boundary : bool, optional
        If False (default), boundary vertices are set to NaN, since their
        Laplacian sees an incomplete one-ring. If True they are computed from
        the available neighbours.

    Returns
    -------
    torch.Tensor
        Signed mean curvature per vertex, shape (n_points,). NaN for
        isolated vertices, and for boundary vertices unless
        ``include_boundary``.

    Examples
    --------
    >>> from meshgrading.primitives.surfaces import sphere_icosahedral
    >>> sphere = sphere_icosahedral.load(radius=2.0, subdivisions=3)
    >>> H = mean_curvature_vertices(sphere)
    >>> # H.mean() is close to 0.5 = 1 / 2.0
    """
    laplacian_coords = compute_laplacian_at_points(mesh)  # (n_points, 3)
    laplacian_magnitude = torch.linalg.vector_norm(laplacian_coords, dim=-1)

    dual_areas = compute_dual_areas(mesh)
    mean_curvature = laplacian_magnitude / (
        2.0 * dual_areas.clamp(min=safe_eps(dual_areas.dtype))
    )

    ### Sign: the Laplacian points inward on a convex surface
    direction = torch.nn.functional.normalize(laplacian_coords, dim=-1)
    sign = -torch.sign((direction * mesh.point_normals).sum(dim=-1))
    sign = torch.where(
        (laplacian_magnitude > safe_eps(laplacian_magnitude.dtype)) & (sign != 0),
        sign,
        torch.ones_like(sign),
    )
    mean_curvature = mean_curvature * sign

    mean_curvature = torch.where(
        dual_areas > 0,
        mean_curvature,
        torch.full_like(mean_curvature, float("nan")),
    )

    if not include_boundary:
        from meshgrading.boundaries import get_boundary_vertices

        mean_curvature = torch.where(
            get_boundary_vertices(mesh),
            torch.full_like(mean_curvature, float("nan")),
            mean_curvature,
        )

    return mean_curvature
