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

"""Mixed Voronoi (dual) areas and cotangent weights for triangle meshes.

Dual areas follow Meyer et al. (2003): the circumcentric Voronoi region for
non-obtuse triangles, and the mixed area subdivision for obtuse ones. Both are
what the discrete curvature operators in :mod:`meshgrading.curvature` divide
by.

References:
    Meyer, M., Desbrun, M., Schröder, P., & Barr, A. H. (2003).
    "Discrete Differential-Geometry Operators for Triangulated 2-Manifolds". VisMath.
"""

from typing import TYPE_CHECKING

import torch

from meshgrading.geometry._angles import compute_corner_angles
from meshgrading.utilities._cache import get_cached, set_cached
from meshgrading.utilities._tolerances import safe_eps

if TYPE_CHECKING:
    from meshgrading.mesh import Mesh


def _compute_meyer_mixed_voronoi_areas(
    cell_vertices: torch.Tensor,  # (n_cells, 3, 3)
    corner_angles: torch.Tensor,  # (n_cells, 3)
    cell_areas: torch.Tensor,  # (n_cells,)
) -> torch.Tensor:
    """Compute per-(cell, corner) mixed Voronoi areas.

    Parameters
    ----------
    cell_vertices : torch.Tensor
        Vertex positions of each triangle, shape (n_cells, 3, 3).
    corner_angles : torch.Tensor
        Interior angle at each corner, shape (n_cells, 3).
    cell_areas : torch.Tensor
        Triangle areas, shape (n_cells,).

    Returns
    -------
    torch.Tensor
        Area contribution of each triangle to each of its corners, shape
        (n_cells, 3). Rows sum to the triangle area.

    References
    ----------
    Meyer et al. (2003), Section 3.3 (Equation 7) and Section 3.4 (Figure 4).
    """
    eps = safe_eps(corner_angles.dtype)
    cot = torch.cos(corner_angles) / torch.sin(corner_angles).clamp(min=eps)

    is_obtuse = torch.any(corner_angles > torch.pi / 2, dim=1)  # (n_cells,)
    areas = torch.zeros_like(corner_angles)

    ### Both formulas for every cell, selected branchlessly per cell
    for j in range(3):
        nxt = (j + 1) % 3
        prv = (j + 2) % 3

        edge_to_next_sq = (
            (cell_vertices[:, nxt] - cell_vertices[:, j]) ** 2
        ).sum(dim=-1)
        edge_to_prev_sq = (
            (cell_vertices[:, prv] - cell_vertices[:, j]) ** 2
        ).sum(dim=-1)

        # Eq. 7: each edge weighted by the cotangent of the angle facing it
        voronoi = (edge_to_next_sq * cot[:, prv] + edge_to_prev_sq * cot[:, nxt]) / 8.0

        # Fig. 4: half the area at the obtuse corner, a quarter elsewhere
        mixed = torch.where(
            corner_angles[:, j] > torch.pi / 2, cell_areas / 2.0, cell_areas / 4.0
        )

        areas[:, j] = torch.where(is_obtuse, mixed, voronoi)

    return areas


def compute_dual_areas(mesh: "Mesh") -> torch.Tensor:
    """Compute the mixed Voronoi area around every vertex.

    Parameters
    ----------
    mesh : Mesh
        Input triangle mesh.

    Returns
    -------
    torch.Tensor
        Dual area per vertex, shape (n_points,). Zero for isolated vertices.
        The sum over all vertices equals the total surface area.

    Examples
    --------
    >>> from meshgrading.primitives.surfaces import sphere_icosahedral
    >>> mesh = sphere_icosahedral.load(subdivisions=2)
    >>> dual = compute_dual_areas(mesh)
    >>> assert torch.allclose(dual.sum(), mesh.cell_areas.sum())
    """
    cached = get_cached(mesh.point_data, "dual_areas")
    if cached is not None:
        return cached

    dual_areas = torch.zeros(
        mesh.n_points, dtype=mesh.points.dtype, device=mesh.points.device
    )
    if mesh.n_cells > 0:
        per_corner = _compute_meyer_mixed_voronoi_areas(
            mesh.points[mesh.cells], compute_corner_angles(mesh), mesh.cell_areas
        )
        dual_areas.scatter_add_(0, mesh.cells.reshape(-1), per_corner.reshape(-1))

    set_cached(mesh.point_data, "dual_areas", dual_areas)
    return dual_areas


def compute_cotan_weights(mesh: "Mesh") -> tuple[torch.Tensor, torch.Tensor]:
    r"""Compute the cotangent weight of every edge.

    For an interior edge with opposite angles :math:`\alpha` and
    :math:`\beta`, :math:`w = \tfrac{1}{2}(\cot\alpha + \cot\beta)`. Boundary
    edges only get the single term of their one triangle.

    Parameters
    ----------
    mesh : Mesh
        Input triangle mesh.

    Returns
    -------
    tuple[torch.Tensor, torch.Tensor]
        ``(weights, edges)`` with weights of shape (n_edges,) and the sorted
        unique edges of shape (n_edges, 2).
    """
    from meshgrading.utilities._topology import extract_unique_edges

    unique_edges, inverse_indices = extract_unique_edges(mesh)
    weights = torch.zeros(
        len(unique_edges), dtype=mesh.points.dtype, device=mesh.points.device
    )
    if mesh.n_cells == 0:
        return weights, unique_edges

    angles = compute_corner_angles(mesh)  # (n_cells, 3)
    eps = safe_eps(angles.dtype)
    half_cot = 0.5 * torch.cos(angles) / torch.sin(angles).clamp(min=eps)

    # Candidate edges come in local order (0, 1), (0, 2), (1, 2), which face
    # corners 2, 1 and 0 respectively
    per_candidate = half_cot[:, [2, 1, 0]].reshape(-1)
    weights.scatter_add_(0, inverse_indices, per_candidate)

    return weights, unique_edges
