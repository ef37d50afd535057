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

"""Edge collapse pass."""

import logging
import math
from typing import TYPE_CHECKING

from meshgrading.remeshing._local_geometry import (
    distance,
    is_degenerate,
    normal_rotation_ok,
    triangle_normal,
)
from meshgrading.remeshing._split import SPLIT_RATIO
from meshgrading.utilities._tolerances import degenerate_area_ratio

if TYPE_CHECKING:
    from meshgrading.boundaries import FeatureSet
    from meshgrading.surface import RemeshableMesh

logger = logging.getLogger(__name__)

COLLAPSE_RATIO = 4.0 / 5.0


def _is_removable(surface: "RemeshableMesh", features: "FeatureSet", v: int) -> bool:
    return not (features.is_feature_vertex(v) or surface.is_boundary_vertex(v))


def _collapse_order(
    surface: "RemeshableMesh",
    features: "FeatureSet",
    a: int,
    b: int,
    curvature: list[float] | None,
) -> list[tuple[int, int]]:
    """Candidate ``(remove, keep)`` pairs for edge ``(a, b)``, preferred first."""
    candidates = [
        (remove, keep)
        for remove, keep in ((a, b), (b, a))
        if _is_removable(surface, features, remove)
    ]
    if len(candidates) == 2:
        # Keep the endpoint with higher curvature, then higher valence
        rank = {
            v: (0.0 if curvature is None else curvature[v], surface.valence(v))
            for v in (a, b)
        }
        candidates.sort(key=lambda pair: rank[pair[1]], reverse=True)
    return candidates


def _collapse_geometry_ok(
    surface: "RemeshableMesh",
    coords: list[list[float]],
    targets: list[float],
    remove: int,
    keep: int,
    cos_limit: float,
    area_ratio: float,
) -> bool:
    """Check the faces and edges a collapse of ``remove`` into ``keep`` would create."""
    p_keep = coords[keep]
    for n in surface.neighbors(remove):
        if n == keep:
            continue
        limit = SPLIT_RATIO * 0.5 * (targets[keep] + targets[n])
        if distance(p_keep, coords[n]) > limit:
            return False

    for f in surface.vertex_faces(remove):
        tri = surface.face_vertices(f)
        if keep in tri:
            continue
        old = [coords[v] for v in tri]
        new = [p_keep if v == remove else coords[v] for v in tri]
        if is_degenerate(*new, area_ratio):
            return False
        old_normal = None if is_degenerate(*old, area_ratio) else triangle_normal(*old)
        if not normal_rotation_ok(old_normal, triangle_normal(*new), cos_limit):
            return False
    return True


def collapse_short_edges(
    surface: "RemeshableMesh",
    features: "FeatureSet",
    max_normal_deviation: float = 60.0,
) -> int:
    """Collapse every edge shorter than 4/5 of its target length.

    One endpoint is merged into the other, which does not move. The removed
    vertex must be neither a boundary nor a feature vertex, so boundary
    loops and feature lines are never shortened. If both endpoints could be
    removed, the one with higher ``"curvature"`` (then higher valence) is
    kept.

    A collapse is skipped, leaving the surface untouched, if it:

    - fails :meth:`~meshgrading.surface.SurfaceMesh.is_collapse_ok`;
    - creates an edge longer than 4/3 of its target;
    - rotates a surviving face normal by more than ``max_normal_deviation``
      degrees, or flips it;
    - creates a degenerate face.

    Parameters
    ----------
    surface : RemeshableMesh
        Surface to modify in place. Must carry a ``"target_length"`` vertex
        attribute; a ``"curvature"`` attribute is used if present.
    features : FeatureSet
        Feature classification.
    max_normal_deviation : float
        Largest allowed face normal rotation, in degrees.

    Returns
    -------
    int
        Number of collapses performed.
    """
    cos_limit = math.cos(math.radians(max_normal_deviation))
    area_ratio = degenerate_area_ratio(surface.dtype)

    # Collapses never move a vertex, so one snapshot serves the whole pass
    coords = surface.points.tolist()
    vertex_data = surface.vertex_data
    targets = vertex_data["target_length"].tolist()
    curvature = (
        vertex_data["curvature"].tolist() if "curvature" in vertex_data.keys() else None
    )

    edges = surface.edges()
    lengths = surface.edge_lengths(edges).tolist()

    n_collapses = 0
    n_rejected = 0
    for (a, b), length in zip(edges, lengths):
        if length >= COLLAPSE_RATIO * 0.5 * (targets[a] + targets[b]):
            continue
        if not surface.has_edge(a, b) or features.is_feature_edge(a, b):
            continue

        for remove, keep in _collapse_order(surface, features, a, b, curvature):
            if not surface.is_collapse_ok(remove, keep):
                continue
            if not _collapse_geometry_ok(
                surface, coords, targets, remove, keep, cos_limit, area_ratio
            ):
                continue
            surface.collapse_edge(remove, keep)
            n_collapses += 1
            break
        else:
            n_rejected += 1

    if n_rejected:
        logger.debug(f"Skipped {n_rejected} infeasible collapses")
    return n_collapses
