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

"""Principal curvatures from the mean and Gaussian curvature."""

from typing import TYPE_CHECKING

import torch

from meshgrading.curvature.gaussian import gaussian_curvature_vertices
from meshgrading.curvature.mean import mean_curvature_vertices

if TYPE_CHECKING:
    from meshgrading.mesh import Mesh


def principal_curvatures(mesh: "Mesh") -> tuple[torch.Tensor, torch.Tensor]:
    """Compute the principal curvatures ``k1 >= k2`` at every vertex.

    ``k1, k2 = H +/- sqrt(max(H^2 - K, 0))``. The discriminant is clamped at
    zero: discrete estimates of ``H`` and ``K`` are not exactly consistent and
    near-umbilic points (spheres) would otherwise produce NaN.

    Parameters
    ----------
    mesh : Mesh
        Input triangle mesh.

    Returns
    -------
    tuple[torch.Tensor, torch.Tensor]
        ``(k1, k2)``, each of shape (n_points,). NaN wherever the mean
        curvature is undefined (boundary and isolated vertices).
    """
    H = mean_curvature_vertices(mesh)
    K = gaussian_curvature_vertices(mesh)
    root = torch.sqrt(torch.clamp(H**2 - K, min=0))
    return H + root, H - root


def max_abs_curvature_vertices(mesh: "Mesh") -> torch.Tensor:
    """Largest principal curvature magnitude, ``|H| + sqrt(max(H^2 - K, 0))``.

    This is the curvature that limits the edge length for a given
    approximation error.

    Returns
    -------
    torch.Tensor
        Non-negative curvature per vertex, shape (n_points,); NaN where
        undefined.

    Examples
    --------
    >>> from meshgrading.primitives.planar import unit_square
    >>> k = max_abs_curvature_vertices(unit_square.load(subdivisions=4))
    >>> # interior vertices of a plane have zero curvature, boundary ones NaN
    """
    k1, k2 = principal_curvatures(mesh)
    return torch.maximum(k1.abs(), k2.abs())
