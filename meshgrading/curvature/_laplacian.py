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

"""Cotangent Laplace-Beltrami operator applied to vertex coordinates."""

from typing import TYPE_CHECKING

import torch

from meshgrading.geometry.dual_meshes import compute_cotan_weights

if TYPE_CHECKING:
    from meshgrading.mesh import Mesh


def compute_laplacian_at_points(mesh: "Mesh") -> torch.Tensor:
    """Apply the (unnormalized) cotangent Laplacian to the vertex positions.

    Computes ``L_i = sum_j w_ij (p_j - p_i)`` with the cotangent edge weights
    ``w_ij``. Dividing by the dual area gives the mean curvature normal
    ``2 H n`` (Meyer et al. 2003).

    Parameters
    ----------
    mesh : Mesh
        Input triangle mesh.

    Returns
    -------
    torch.Tensor
        Laplacian of the coordinates, shape (n_points, 3).
    """
    weights, edges = compute_cotan_weights(mesh)
    laplacian = torch.zeros_like(mesh.points)
    if len(edges) == 0:
        return laplacian

    i, j = edges[:, 0], edges[:, 1]
    edge_vectors = mesh.points[j] - mesh.points[i]  # (n_edges, 3)
    contribution = weights.unsqueeze(-1) * edge_vectors

    ### Symmetric accumulation: the edge pulls i toward j and j toward i
    laplacian.index_add_(0, i, contribution)
    laplacian.index_add_(0, j, -contribution)
    return laplacian
