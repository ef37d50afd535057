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

"""Dtype-aware numerical tolerances.

Hardcoded absolute tolerances such as ``1e-10`` break on meshes whose
coordinates live far from unit scale (a head scan in millimetres versus one in
metres). Tolerances here are derived from the floating-point dtype alone, and
the geometric ones are relative, so they can be scaled by a local length.

==========  ==================  ============================
dtype       ``safe_eps``        ``degenerate_area_ratio``
==========  ==================  ============================
float32     ~3.3e-10            ~3.5e-06
float64     ~1.2e-77            ~1.5e-10
==========  ==================  ============================
"""

import math

import torch


def safe_eps(dtype: torch.dtype) -> float:
    """Return a floor value for preventing division by zero.

    ``torch.finfo(dtype).tiny ** 0.25`` is small enough to leave any
    physically meaningful quantity untouched, and large enough that
    ``1 / safe_eps(dtype) ** 2`` does not overflow.

    Parameters
    ----------
    dtype : torch.dtype
        Floating-point dtype, e.g. ``torch.float32``.

    Returns
    -------
    float
        A small positive floor value.
    """
    return torch.finfo(dtype).tiny ** 0.25


def degenerate_area_ratio(dtype: torch.dtype) -> float:
    """Return the relative area below which a triangle counts as degenerate.

    A triangle with longest edge ``l`` is degenerate when its area is below
    ``degenerate_area_ratio(dtype) * l**2``. An equilateral triangle has a
    ratio of about 0.43, so only true slivers and collapsed triangles trip
    this threshold.

    Parameters
    ----------
    dtype : torch.dtype
        Floating-point dtype of the vertex positions.

    Returns
    -------
    float
        Dimensionless area-to-squared-length threshold.
    """
    return 0.01 * math.sqrt(torch.finfo(dtype).eps)
