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

"""Feature classification consulted by the local remeshing operators.

Feature edges are open boundary edges and, optionally, interior edges whose
dihedral angle exceeds a threshold. The classification is computed once
before remeshing starts and then updated incrementally: splitting a feature
edge yields two feature edges, and no other operator is allowed to touch
feature edges. Re-deriving the set from the evolving geometry would let it
drift as the surface is smoothed.
"""

import logging
import math
from typing import TYPE_CHECKING, Iterable

import torch

from meshgrading.surface.surface_mesh import edge_key
from meshgrading.utilities._topology import extract_candidate_edges

if TYPE_CHECKING:
    from meshgrading.mesh import Mesh
    from meshgrading.surface import RemeshableMesh

logger = logging.getLogger(__name__)


def detect_sharp_edges(mesh: "Mesh", feature_angle: float) -> torch.Tensor:
    """Detect interior edges whose dihedral angle exceeds a threshold.

    The angle measured is the one between the normals of the two triangles
    sharing the edge, so 0 degrees is flat and 90 degrees is a cube edge.

    Parameters
    ----------
    mesh : Mesh
        Input triangle mesh.
    feature_angle : float
        Threshold in degrees.

    Returns
    -------
    torch.Tensor
        Sharp edges, shape (n_sharp_edges, 2), sorted within each row.
        Boundary and non-manifold edges are never reported.

    Examples
    --------
    >>> from meshgrading.primitives.surfaces import cube_surface
    >>> mesh = cube_surface.load(subdivisions=0)
    >>> detect_sharp_edges(mesh, feature_angle=45.0).shape
    torch.Size([12, 2])
    """
    device = mesh.cells.device
    if mesh.n_cells == 0:
        return torch.empty((0, 2), dtype=torch.long, device=device)

    candidate_edges, parent_cell_indices = extract_candidate_edges(mesh.cells)
    unique_edges, inverse = torch.unique(candidate_edges, dim=0, return_inverse=True)

    counts = torch.zeros(len(unique_edges), dtype=torch.long, device=device)
    counts.scatter_add_(0, inverse, torch.ones_like(inverse))

    interior = torch.where(counts == 2)[0]
    if len(interior) == 0:
        return torch.empty((0, 2), dtype=unique_edges.dtype, device=device)

    ### Group candidates by unique edge; each interior group has two parents
    order = torch.argsort(inverse, stable=True)
    sorted_inverse = inverse[order]
    sorted_parents = parent_cell_indices[order]
    group_starts = torch.searchsorted(sorted_inverse, interior)

    cell_a = sorted_parents[group_starts]
    cell_b = sorted_parents[group_starts + 1]

    normals = mesh.cell_normals
    cos_dihedral = (normals[cell_a] * normals[cell_b]).sum(dim=-1)
    is_sharp = cos_dihedral < math.cos(math.radians(feature_angle))

    return unique_edges[interior[is_sharp]]


class FeatureSet:
    """Feature edges and feature vertices of a surface, by vertex id.

    Parameters
    ----------
    edges : Iterable[tuple[int, int]]
        Feature edges. Their endpoints become feature vertices.
    vertices : Iterable[int], optional
        Additional isolated feature vertices (locked points).

    Examples
    --------
    >>> features = FeatureSet([(0, 1), (1, 2)])
    >>> features.is_feature_edge(1, 0), features.feature_degree(1)
    (True, 2)
    >>> features.split_edge(0, 1, 7)
    >>> features.is_feature_edge(0, 1), features.is_feature_edge(7, 1)
    (False, True)
    """

    def __init__(
        self,
        edges: Iterable[tuple[int, int]] = (),
        vertices: Iterable[int] = (),
    ) -> None:
        self._edges: set[tuple[int, int]] = set()
        self._degree: dict[int, int] = {}
        self._vertices: set[int] = set(vertices)
        for a, b in edges:
            self._add_edge(a, b)

    def __len__(self) -> int:
        return len(self._edges)

    @property
    def edges(self) -> frozenset[tuple[int, int]]:
        return frozenset(self._edges)

    @property
    def vertices(self) -> frozenset[int]:
        return frozenset(self._vertices)

    def is_feature_edge(self, a: int, b: int) -> bool:
        return edge_key(a, b) in self._edges

    def is_feature_vertex(self, v: int) -> bool:
        return v in self._vertices

    def feature_degree(self, v: int) -> int:
        """Number of feature edges incident to ``v``."""
        return self._degree.get(v, 0)

    def is_corner(self, v: int) -> bool:
        """True for feature vertices that are not interior to a single feature line."""
        return v in self._vertices and self._degree.get(v, 0) != 2

    def split_edge(self, a: int, b: int, midpoint: int) -> None:
        """Record that edge ``(a, b)`` was split at vertex ``midpoint``.

        Does nothing if ``(a, b)`` is not a feature edge.
        """
        key = edge_key(a, b)
        if key not in self._edges:
            return
        self._edges.remove(key)
        self._degree[a] -= 1
        self._degree[b] -= 1
        self._add_edge(a, midpoint)
        self._add_edge(midpoint, b)

    def _add_edge(self, a: int, b: int) -> None:
        key = edge_key(a, b)
        if key in self._edges:
            return
        self._edges.add(key)
        for v in key:
            self._vertices.add(v)
            self._degree[v] = self._degree.get(v, 0) + 1


def classify_features(
    surface: "RemeshableMesh",
    feature_angle: float | None = None,
) -> FeatureSet:
    """Classify the boundary and sharp edges of a surface.

    Parameters
    ----------
    surface : RemeshableMesh
        Surface to classify.
    feature_angle : float or None, optional
        Dihedral threshold in degrees for sharp edges. ``None`` (default)
        classifies boundary edges only.

    Returns
    -------
    FeatureSet
        Feature edges and vertices, in the surface's vertex ids.
    """
    edges = [edge for edge in surface.edges() if surface.is_boundary_edge(*edge)]
    n_boundary = len(edges)

    if feature_angle is not None:
        mesh, vertex_ids = surface.to_mesh()
        ids = vertex_ids.tolist()
        edges.extend(
            edge_key(ids[a], ids[b])
            for a, b in detect_sharp_edges(mesh, feature_angle).tolist()
        )

    features = FeatureSet(edges)
    logger.debug(
        f"Classified {len(features)} feature edges "
        f"({n_boundary} boundary, {len(features) - n_boundary} sharp)"
    )
    return features
