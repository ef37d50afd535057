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

"""Grading parameters for one remeshing call."""

import math
import numbers
from dataclasses import dataclass, field
from typing import Literal, Sequence

import torch

from meshgrading.errors import ConfigurationError

Side = Literal["left", "right"]
Mode = Literal["adaptive", "uniform"]

SIDES = ("left", "right")
MODES = ("adaptive", "uniform")

# Lengths and errors below this are treated as unset / invalid
LENGTH_FLOOR = 1e-6

DEFAULT_GAMMA = 0.15
# Gamma values above this are the "not given" sentinel of the command line
GAMMA_SENTINEL = 1.9

Anchor = float | tuple[float, float, float]


def resolve_gamma(gamma: float | None) -> float:
    """Return the gamma scaling factor to use for anchor estimation.

    ``None``, non-positive values and values above 1.9 (the sentinel used when
    no factor is given) all select the default of 0.15.

    Examples
    --------
    >>> resolve_gamma(None), resolve_gamma(2.0), resolve_gamma(0.3)
    (0.15, 0.15, 0.3)
    """
    if gamma is None or not math.isfinite(gamma) or gamma <= 0 or gamma > GAMMA_SENTINEL:
        return DEFAULT_GAMMA
    return float(gamma)


def _normalize_anchor(name: str, value) -> Anchor | None:
    """Coerce an explicit anchor to a float (lateral coordinate) or a 3-tuple."""
    if value is None:
        return None
    if isinstance(value, torch.Tensor):
        value = value.tolist()
    if isinstance(value, numbers.Real):
        if not math.isfinite(value):
            raise ConfigurationError(f"`{name}` must be finite, but got {value=}.")
        return float(value)
    try:
        coords = tuple(float(c) for c in value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"`{name}` must be a lateral coordinate or a 3D point, but got {value=}."
        ) from e
    if len(coords) != 3 or not all(math.isfinite(c) for c in coords):
        raise ConfigurationError(
            f"`{name}` must be a finite 3D point, but got {value=}."
        )
    return coords


@dataclass(frozen=True)
class RemeshingConfig:
    """Immutable, validated grading parameters.

    Parameters
    ----------
    min_length : float
        Minimum target edge length. In uniform mode, the single target length.
    max_length : float
        Maximum target edge length.
    max_error : float, optional
        Maximum geometric approximation error. ``None`` or values below 1e-6
        select ``min_length``.
    iterations : int
        Number of split/collapse/flip/relax cycles.
    mode : {"adaptive", "uniform"}
        Curvature + anchor grading, or a single global target length.
    side : {"left", "right"}, optional
        The high-resolution side. Required in adaptive mode.
    left_anchor, right_anchor : float or sequence of 3 floats, optional
        Explicit anchor positions. A scalar is a coordinate along
        ``lateral_axis`` through the mesh centroid.
    gamma_left, gamma_right : float, optional
        Scaling factors for estimating missing anchors; see
        :func:`resolve_gamma`.
    lateral_axis : int
        Coordinate axis separating left (+) from right (-). Default y.
    falloff_factor : float
        Anchor influence radius as a multiple of ``max_length``.
    smoothing_passes : int
        Neighbour-averaging passes over the curvature target.
    smoothing_strength : float
        Weight of the neighbour average in each pass, in [0, 1].
    max_neighbor_ratio : float
        Largest allowed ratio between neighbouring targets (>= 1).
    feature_angle : float, optional
        Dihedral angle in degrees above which interior edges are features.
        ``None`` keeps only boundary edges as features.
    use_projection : bool
        Project relaxed vertices back onto the input surface.
    relax_steps : int
        Tangential smoothing steps per relaxation pass.
    max_normal_deviation : float
        Largest face normal rotation, in degrees, that collapse, flip and
        relaxation may cause.
    stop_when_converged : bool
        Stop before ``iterations`` once a full cycle changes no topology.

    Raises
    ------
    ConfigurationError
        If any parameter is out of range.

    Examples
    --------
    >>> config = RemeshingConfig(min_length=0.5, max_length=10.0, side="left")
    >>> config.error, config.gamma_left, config.falloff_radius
    (0.5, 0.15, 100.0)
    """

    min_length: float
    max_length: float
    max_error: float | None = None
    iterations: int = 10
    mode: Mode = "adaptive"
    side: Side | None = None
    left_anchor: Anchor | Sequence[float] | None = None
    right_anchor: Anchor | Sequence[float] | None = None
    gamma_left: float | None = None
    gamma_right: float | None = None
    lateral_axis: int = 1
    falloff_factor: float = 10.0
    smoothing_passes: int = 1
    smoothing_strength: float = 0.5
    max_neighbor_ratio: float = 1.5
    feature_angle: float | None = None
    use_projection: bool = True
    relax_steps: int = 5
    max_normal_deviation: float = 60.0
    stop_when_converged: bool = False
    error: float = field(init=False)

    def __post_init__(self) -> None:
        ### Lengths
        for name in ("min_length", "max_length"):
            value = getattr(self, name)
            if not isinstance(value, numbers.Real) or not math.isfinite(value):
                raise ConfigurationError(f"`{name}` must be a finite number, got {value=}.")
            if value < LENGTH_FLOOR:
                raise ConfigurationError(
                    f"`{name}` must be at least {LENGTH_FLOOR}, got {value=}."
                )
        if self.min_length > self.max_length:
            raise ConfigurationError(
                f"`min_length` must not exceed `max_length`, "
                f"got {self.min_length=} > {self.max_length=}."
            )

        if self.max_error is None or not self.max_error >= LENGTH_FLOOR:
            error = float(self.min_length)
        else:
            error = float(self.max_error)
        object.__setattr__(self, "error", error)

        ### Mode and side
        if self.mode not in MODES:
            raise ConfigurationError(f"`mode` must be one of {MODES}, got {self.mode=}.")
        if self.side is not None and self.side not in SIDES:
            raise ConfigurationError(f"`side` must be one of {SIDES}, got {self.side=}.")
        if self.mode == "adaptive" and self.side is None:
            raise ConfigurationError(
                "Adaptive remeshing needs the high-resolution `side` ('left' or 'right')."
            )

        ### Anchors
        object.__setattr__(
            self, "left_anchor", _normalize_anchor("left_anchor", self.left_anchor)
        )
        object.__setattr__(
            self, "right_anchor", _normalize_anchor("right_anchor", self.right_anchor)
        )
        object.__setattr__(self, "gamma_left", resolve_gamma(self.gamma_left))
        object.__setattr__(self, "gamma_right", resolve_gamma(self.gamma_right))
        if self.lateral_axis not in (0, 1, 2):
            raise ConfigurationError(
                f"`lateral_axis` must be 0, 1 or 2, got {self.lateral_axis=}."
            )

        ### Loop and smoothing controls
        if not isinstance(self.iterations, int) or self.iterations < 0:
            raise ConfigurationError(
                f"`iterations` must be a non-negative int, got {self.iterations=}."
            )
        if not self.falloff_factor > 0:
            raise ConfigurationError(
                f"`falloff_factor` must be positive, got {self.falloff_factor=}."
            )
        if self.smoothing_passes < 0:
            raise ConfigurationError(
                f"`smoothing_passes` must be non-negative, got {self.smoothing_passes=}."
            )
        if not 0.0 <= self.smoothing_strength <= 1.0:
            raise ConfigurationError(
                f"`smoothing_strength` must be in [0, 1], got {self.smoothing_strength=}."
            )
        if not self.max_neighbor_ratio >= 1.0:
            raise ConfigurationError(
                f"`max_neighbor_ratio` must be at least 1, got {self.max_neighbor_ratio=}."
            )
        if self.relax_steps < 0:
            raise ConfigurationError(
                f"`relax_steps` must be non-negative, got {self.relax_steps=}."
            )
        if not 0.0 < self.max_normal_deviation < 180.0:
            raise ConfigurationError(
                f"`max_normal_deviation` must be in (0, 180) degrees, "
                f"got {self.max_normal_deviation=}."
            )
        if self.feature_angle is not None and not 0.0 < self.feature_angle < 180.0:
            raise ConfigurationError(
                f"`feature_angle` must be in (0, 180) degrees, got {self.feature_angle=}."
            )

    @property
    def falloff_radius(self) -> float:
        """Distance beyond which the anchor no longer shrinks the target."""
        return self.falloff_factor * self.max_length

    @property
    def high_resolution_anchor(self) -> Anchor | None:
        """The explicit anchor of the high-resolution side, if given."""
        return self.left_anchor if self.side == "left" else self.right_anchor

    @property
    def high_resolution_gamma(self) -> float:
        return self.gamma_left if self.side == "left" else self.gamma_right
