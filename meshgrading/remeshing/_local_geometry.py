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

"""Scalar triangle geometry for per-edge feasibility checks.

The local operators visit one edge at a time; working on Python floats
avoids a tensor round trip per candidate.
"""

import math
from typing import Sequence

Vec3 = Sequence[float]


def sub(a: Vec3, b: Vec3) -> tuple[float, float, float]:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def dot(a: Vec3, b: Vec3) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def cross(a: Vec3, b: Vec3) -> tuple[float, float, float]:
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def norm(a: Vec3) -> float:
    return math.sqrt(dot(a, a))


def distance(a: Vec3, b: Vec3) -> float:
    return norm(sub(a, b))


def triangle_normal(p: Vec3, q: Vec3, r: Vec3) -> tuple[float, float, float]:
    """Unnormalized normal of triangle ``(p, q, r)``; its length is twice the area."""
    return cross(sub(q, p), sub(r, p))


def unit(a: Vec3) -> tuple[float, float, float] | None:
    """``a`` scaled to unit length, or None for a zero vector."""
    length = norm(a)
    if length == 0.0:
        return None
    return (a[0] / length, a[1] / length, a[2] / length)


def is_degenerate(p: Vec3, q: Vec3, r: Vec3, area_ratio: float) -> bool:
    """True if the triangle's area is tiny compared to its longest edge squared."""
    longest_sq = max(
        dot(sub(q, p), sub(q, p)), dot(sub(r, q), sub(r, q)), dot(sub(p, r), sub(p, r))
    )
    if longest_sq == 0.0:
        return True
    area = 0.5 * norm(triangle_normal(p, q, r))
    return area < area_ratio * longest_sq


def normal_rotation_ok(
    old_normal: Vec3 | None,
    new_normal: Vec3,
    cos_limit: float,
) -> bool:
    """True if ``new_normal`` is within the allowed rotation of ``old_normal``.

    Both normals may be unnormalized. Flipped orientation is always rejected.
    A missing ``old_normal`` (previously degenerate face) only requires a
    non-zero ``new_normal``.
    """
    new_unit = unit(new_normal)
    if new_unit is None:
        return False
    if old_normal is None:
        return True
    old_unit = unit(old_normal)
    if old_unit is None:
        return True
    cosine = dot(old_unit, new_unit)
    return cosine > 0.0 and cosine >= cos_limit
