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

"""Valence-equalizing edge flips."""

import logging
import math
from typing import TYPE_CHECKING

from meshgrading.remeshing._local_geometry import (
    is_degenerate,
    normal_rotation_ok,
    triangle_normal,
    unit,
)
from meshgrading.utilities._tolerances import degenerate_area_ratio

if TYPE_CHECKING:
    from meshgrading.boundaries import FeatureSet
    from meshgrading.surface import RemeshableMesh

logger = logging.getLogger(__name__)

INTERIOR_VALENCE = 6
BOUNDARY_VALENCE = 4


def _valence_deviation(surface: "RemeshableMesh", v: int, change: int) -> int:
    optimal = BOUNDARY_VALENCE if surface.is_boundary_vertex(v) else INTERIOR_VALENCE
    return (surface.valence(v) + change - optimal) ** 2


def _oriented_quad(
    surface: "RemeshableMesh", a: int, b: int
) -> tuple[int, int, int, int]:
    """Return ``(u, v, c, d)``: face ``(u, v, c)`` and face ``(v, u, d)`` share edge ``(a, b)``."""
    f1, f2 = surface.edge_faces(a, b)
    tri = surface.face_vertices(f1)
    for i in range(3):
        u, v = tri[i], tri[(i + 1) % 3]
        if {u, v} == {a, b}:
            c = tri[(i + 2) % 3]
            break
    d = next(x for x in surface.face_vertices(f2) if x != a and x != b)
    return u, v, c, d


def _flip_geometry_ok(
    coords: list[list[float]],
    quad: tuple[int, int, int, int],
    cos_limit: float,
    area_ratio: float,
) -> bool:
    u, v, c, d = (coords[i] for i in quad)
    old = unit(
        tuple(
            x + y
            for x, y in zip(triangle_normal(u, v, c), triangle_normal(v, u, d))
        )
    )
    for new in ((c, u, d), (d, v, c)):
        if is_degenerate(*new, area_ratio):
            return False
        if not normal_rotation_ok(old, triangle_normal(*new), cos_limit):
            return False
    return True


def equalize_valences(
    surface: "RemeshableMesh",
    features: "FeatureSet",
    max_sweeps: int = 10,
    max_normal_deviation: float = 60.0,
) -> int:
    """Flip edges to bring vertex valences closer to their optimum.

    The optimum is 6 for interior vertices and 4 for boundary vertices. An
    interior, non-feature edge is flipped only if the summed squared valence
    deviation of its four vertices strictly decreases, the new edge does not
    exist yet, and neither new face is degenerate or turned more than
    ``max_normal_deviation`` degrees away from the old pair's mean normal.

    Parameters
    ----------
    surface : RemeshableMesh
        Surface to modify in place.
    features : FeatureSet
        Feature classification; feature edges are never flipped.
    max_sweeps : int
        Sweeps are repeated until one flips nothing, at most this many times.
    max_normal_deviation : float
        Largest allowed face normal rotation, in degrees.

    Returns
    -------
    int
        Number of flips performed.
    """
    cos_limit = math.cos(math.radians(max_normal_deviation))
    area_ratio = degenerate_area_ratio(surface.dtype)
    coords = surface.points.tolist()

    n_flips = 0
    for _ in range(max_sweeps):
        n_sweep = 0
        for a, b in surface.edges():
            if not surface.has_edge(a, b) or surface.is_boundary_edge(a, b):
                continue
            if features.is_feature_edge(a, b) or not surface.is_flip_ok(a, b):
                continue

            quad = _oriented_quad(surface, a, b)
            _, _, c, d = quad
            before = sum(
                _valence_deviation(surface, x, 0) for x in (a, b, c, d)
            )
            after = (
                _valence_deviation(surface, a, -1)
                + _valence_deviation(surface, b, -1)
                + _valence_deviation(surface, c, 1)
                + _valence_deviation(surface, d, 1)
            )
            if after >= before:
                continue
            if not _flip_geometry_ok(coords, quad, cos_limit, area_ratio):
                continue

            surface.flip_edge(a, b)
            n_sweep += 1

        n_flips += n_sweep
        if n_sweep == 0:
            break

    return n_flips
