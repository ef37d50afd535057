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

"""Tangential relaxation of vertex positions."""

import logging
import math
from typing import TYPE_CHECKING

import torch
import torch.nn.functional as F

from meshgrading.boundaries import get_boundary_vertices
from meshgrading.mesh import Mesh
from meshgrading.utilities._tolerances import degenerate_area_ratio
from meshgrading.utilities._topology import neighbor_mean

if TYPE_CHECKING:
    from meshgrading.boundaries import FeatureSet
    from meshgrading.remeshing._projection import ReferenceSurface
    from meshgrading.surface import RemeshableMesh

logger = logging.getLogger(__name__)


def _find_bad_cells(
    points: torch.Tensor,
    cells: torch.Tensor,
    old_normals: torch.Tensor,
    old_valid: torch.Tensor,
    cos_limit: float,
    area_ratio: float,
) -> torch.Tensor:
    """Cells that are degenerate, or turned too far from their old normal."""
    tri = points[cells]  # (n_cells, 3, 3)
    cross = torch.linalg.cross(tri[:, 1] - tri[:, 0], tri[:, 2] - tri[:, 0])
    area = 0.5 * torch.linalg.vector_norm(cross, dim=-1)
    longest_sq = (tri - tri.roll(1, dims=1)).pow(2).sum(-1).amax(dim=-1)
    degenerate = area < area_ratio * longest_sq

    cosine = (F.normalize(cross, dim=-1) * old_normals).sum(-1)
    rotated = old_valid & ((cosine <= 0) | (cosine < cos_limit))
    return degenerate | rotated


def relax_vertices(
    surface: "RemeshableMesh",
    features: "FeatureSet",
    reference: "ReferenceSurface | None" = None,
    steps: int = 5,
    max_normal_deviation: float = 60.0,
) -> float:
    """Move vertices towards their one-ring centroid, within the tangent plane.

    - Boundary vertices and feature corners do not move.
    - Vertices on a single feature line slide along it, towards the midpoint
      of their two feature neighbours.
    - All other vertices move tangentially, then are projected onto
      ``reference`` if one is given.

    Afterwards, every vertex of a face that became degenerate or turned more
    than ``max_normal_deviation`` degrees is moved back, until no such face
    remains.

    Parameters
    ----------
    surface : RemeshableMesh
        Surface whose positions are updated in place.
    features : FeatureSet
        Feature classification.
    reference : ReferenceSurface, optional
        Surface to project free vertices back onto.
    steps : int
        Number of smoothing steps before projection.
    max_normal_deviation : float
        Largest allowed face normal rotation, in degrees.

    Returns
    -------
    float
        Mean vertex displacement.
    """
    mesh, vertex_ids = surface.to_mesh()
    if mesh.n_points == 0 or mesh.n_cells == 0 or steps == 0:
        return 0.0

    ids = vertex_ids.tolist()
    local = {v: i for i, v in enumerate(ids)}
    device = mesh.points.device

    ### Classify vertices
    fixed = get_boundary_vertices(mesh)
    sliding = torch.zeros_like(fixed)
    slide_neighbors = []
    for i, v in enumerate(ids):
        if not features.is_feature_vertex(v):
            continue
        line = [
            local[n] for n in sorted(surface.neighbors(v)) if features.is_feature_edge(v, n)
        ]
        if features.is_corner(v) or len(line) != 2:
            fixed[i] = True
        elif not fixed[i]:
            sliding[i] = True
            slide_neighbors.append(line)
    free = ~(fixed | sliding)
    slide_idx = torch.where(sliding)[0]
    slide_neighbors = torch.tensor(
        slide_neighbors, dtype=torch.long, device=device
    ).reshape(-1, 2)

    ### Tangential smoothing
    original = mesh.points
    points = original.clone()
    edges = mesh.edges()
    for _ in range(steps):
        delta = neighbor_mean(points, edges) - points
        normals = Mesh(points=points, cells=mesh.cells).point_normals
        delta = delta - (delta * normals).sum(-1, keepdim=True) * normals

        if len(slide_idx) > 0:
            a = points[slide_neighbors[:, 0]]
            b = points[slide_neighbors[:, 1]]
            direction = F.normalize(b - a, dim=-1)
            towards_mid = 0.5 * (a + b) - points[slide_idx]
            delta[slide_idx] = (towards_mid * direction).sum(-1, keepdim=True) * direction

        delta[fixed] = 0.0
        points = points + delta

    if reference is not None and bool(free.any()):
        points[free] = reference.project(points[free])

    ### Revert moves that damage faces
    cos_limit = math.cos(math.radians(max_normal_deviation))
    area_ratio = degenerate_area_ratio(points.dtype)
    cells = mesh.cells
    old_normals = mesh.cell_normals
    old_valid = mesh.cell_areas > 0

    moved = (points != original).any(dim=-1)
    n_reverted = 0
    while True:
        bad = _find_bad_cells(points, cells, old_normals, old_valid, cos_limit, area_ratio)
        bad &= moved[cells].any(dim=-1)
        if not bool(bad.any()):
            break
        revert = torch.zeros_like(moved)
        revert[cells[bad].reshape(-1)] = True
        revert &= moved
        points[revert] = original[revert]
        moved &= ~revert
        n_reverted += int(revert.sum())

    if n_reverted:
        logger.debug(f"Reverted {n_reverted} relaxation moves that damaged faces")

    surface.set_positions(vertex_ids[moved], points[moved])
    return float(torch.linalg.vector_norm(points - original, dim=-1).mean())
