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

"""Anchor points (ear channel entrances) for the spatial grading bias.

Explicit anchors and estimated anchors are resolved by separate functions;
the estimate is a heuristic fallback that can change without touching the
grading math in :mod:`meshgrading.sizing._field`.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

import torch

if TYPE_CHECKING:
    from meshgrading.config import RemeshingConfig

logger = logging.getLogger(__name__)

_SIDE_SIGN = {"left": 1.0, "right": -1.0}


@dataclass(frozen=True)
class AnchorPoints:
    """Resolved left and right anchors, and which one drives the grading."""

    left: torch.Tensor
    right: torch.Tensor
    side: str
    left_estimated: bool
    right_estimated: bool

    @property
    def high_resolution(self) -> torch.Tensor:
        return self.left if self.side == "left" else self.right

    @property
    def low_resolution(self) -> torch.Tensor:
        return self.right if self.side == "left" else self.left


def explicit_anchor(
    points: torch.Tensor,
    value: float | Sequence[float],
    lateral_axis: int = 1,
) -> torch.Tensor:
    """Turn an explicitly given anchor into a 3D point.

    Parameters
    ----------
    points : torch.Tensor
        Mesh vertex positions, shape (n_points, 3).
    value : float or sequence of 3 floats
        A 3D point, used as-is, or a coordinate along ``lateral_axis``. A
        coordinate ``c`` stands for the mesh centroid moved to ``c`` along
        that axis.
    lateral_axis : int
        Axis the scalar form refers to.

    Returns
    -------
    torch.Tensor
        Anchor position, shape (3,).
    """
    if isinstance(value, (int, float)):
        anchor = points.mean(dim=0).clone()
        anchor[lateral_axis] = value
        return anchor
    return torch.as_tensor(value, dtype=points.dtype, device=points.device)


def estimate_anchor(
    points: torch.Tensor,
    side: str,
    gamma: float,
    lateral_axis: int = 1,
) -> torch.Tensor:
    """Estimate an anchor from the mesh extent.

    The anchor is the mesh centroid offset by ``gamma`` times the bounding box
    extent along ``lateral_axis``, towards ``side`` (left is the positive
    direction).

    Parameters
    ----------
    points : torch.Tensor
        Mesh vertex positions, shape (n_points, 3).
    side : {"left", "right"}
        Side to estimate.
    gamma : float
        Scaling factor; larger values move the estimate outward.
    lateral_axis : int
        Axis separating left from right.

    Returns
    -------
    torch.Tensor
        Estimated anchor position, shape (3,).

    Examples
    --------
    >>> points = torch.tensor([[0.0, -1.0, 0.0], [0.0, 1.0, 0.0]])
    >>> estimate_anchor(points, "right", gamma=0.25)
    tensor([ 0.0000, -0.5000,  0.0000])
    """
    extent = points[:, lateral_axis].max() - points[:, lateral_axis].min()
    anchor = points.mean(dim=0).clone()
    anchor[lateral_axis] = anchor[lateral_axis] + _SIDE_SIGN[side] * gamma * extent
    return anchor


def resolve_anchors(points: torch.Tensor, config: "RemeshingConfig") -> AnchorPoints:
    """Resolve both anchors, using explicit positions where given.

    Parameters
    ----------
    points : torch.Tensor
        Mesh vertex positions, shape (n_points, 3).
    config : RemeshingConfig
        Supplies the side, explicit anchors, gamma factors and lateral axis.

    Returns
    -------
    AnchorPoints
        Both anchors, each flagged as explicit or estimated.
    """
    resolved = {}
    for side, value, gamma in (
        ("left", config.left_anchor, config.gamma_left),
        ("right", config.right_anchor, config.gamma_right),
    ):
        if value is not None:
            resolved[side] = (explicit_anchor(points, value, config.lateral_axis), False)
        else:
            resolved[side] = (
                estimate_anchor(points, side, gamma, config.lateral_axis),
                True,
            )
            logger.debug(
                f"Estimated {side} anchor at {resolved[side][0].tolist()} ({gamma=})"
            )

    return AnchorPoints(
        left=resolved["left"][0],
        right=resolved["right"][0],
        side=config.side,
        left_estimated=resolved["left"][1],
        right_estimated=resolved["right"][1],
    )
