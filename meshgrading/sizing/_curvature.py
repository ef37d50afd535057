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

"""Curvature-limited edge length."""

import math

import torch

from meshgrading.utilities._tolerances import safe_eps


def curvature_to_edge_length(
    curvature: torch.Tensor,
    max_error: float,
    min_length: float,
    max_length: float,
) -> torch.Tensor:
    r"""Convert curvature to the longest edge that stays within an error bound.

    A chord of length :math:`h` on a circle of radius :math:`r = 1/\kappa`
    deviates from the arc by at most :math:`e` when

    .. math::

        h = \sqrt{6 e r - 3 e^2}

    For :math:`e \geq r` (features smaller than the error bound) the relation
    breaks down and :math:`h = \sqrt{3}\, e` is used instead.

    Parameters
    ----------
    curvature : torch.Tensor
        Curvature magnitude per vertex, shape (n_points,). May contain NaN or
        inf where the estimate is undefined.
    max_error : float
        Allowed approximation error.
    min_length, max_length : float
        Bounds the result is clamped to.

    Returns
    -------
    torch.Tensor
        Target edge length per vertex in ``[min_length, max_length]``.
        Vertices with (near-)zero or undefined curvature get ``max_length``.

    Examples
    --------
    >>> curvature_to_edge_length(torch.tensor([0.0, float("nan")]), 0.1, 0.1, 2.0)
    tensor([2., 2.])
    """
    curvature = curvature.abs()
    is_defined = torch.isfinite(curvature) & (curvature > safe_eps(curvature.dtype))

    radius = 1.0 / torch.where(is_defined, curvature, torch.ones_like(curvature))
    chord = torch.sqrt(
        torch.clamp(6.0 * max_error * radius - 3.0 * max_error**2, min=0)
    )
    length = torch.where(
        max_error < radius, chord, torch.full_like(radius, math.sqrt(3.0) * max_error)
    )

    length = torch.where(is_defined, length, torch.full_like(length, max_length))
    return length.clamp(min=min_length, max=max_length)
