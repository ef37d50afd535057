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

"""Tests for RemeshingConfig validation and defaults."""

import dataclasses
import math

import pytest
import torch

from meshgrading.config import RemeshingConfig, resolve_gamma
from meshgrading.errors import ConfigurationError, MeshGradingError


class TestDefaults:
    """Tests for derived and default parameters."""

    def test_error_defaults_to_min_length(self):
        config = RemeshingConfig(min_length=0.5, max_length=10.0, side="left")
        assert config.error == 0.5
        assert config.iterations == 10
        assert config.mode == "adaptive"

    @pytest.mark.parametrize("max_error", [None, 0.0, 1e-7, -1.0])
    def test_small_error_selects_min_length(self, max_error):
        config = RemeshingConfig(
            min_length=0.5, max_length=10.0, max_error=max_error, side="left"
        )
        assert config.error == 0.5

    def test_explicit_error(self):
        config = RemeshingConfig(
            min_length=0.5, max_length=10.0, max_error=0.2, side="right"
        )
        assert config.error == 0.2

    def test_falloff_radius(self):
        config = RemeshingConfig(
            min_length=1.0, max_length=4.0, side="left", falloff_factor=2.5
        )
        assert config.falloff_radius == 10.0

    def test_uniform_mode_needs_no_side(self):
        config = RemeshingConfig(min_length=0.1, max_length=0.1, mode="uniform")
        assert config.side is None

    def test_is_frozen(self):
        config = RemeshingConfig(min_length=0.1, max_length=1.0, side="left")
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.min_length = 0.2


class TestGamma:
    """Tests for the gamma scaling factor defaults."""

    @pytest.mark.parametrize(
        "gamma, expected",
        [(None, 0.15), (2.0, 0.15), (1.95, 0.15), (0.0, 0.15), (-0.1, 0.15),
         (math.nan, 0.15), (0.3, 0.3), (1.9, 1.9)],
    )  # fmt: skip
    def test_resolve_gamma(self, gamma, expected):
        assert resolve_gamma(gamma) == expected

    def test_config_resolves_gamma(self):
        config = RemeshingConfig(
            min_length=0.1, max_length=1.0, side="right", gamma_left=2.0, gamma_right=0.2
        )
        assert config.gamma_left == 0.15
        assert config.gamma_right == 0.2
        assert config.high_resolution_gamma == 0.2


class TestAnchors:
    """Tests for explicit anchor normalization."""

    def test_scalar_anchor(self):
        config = RemeshingConfig(
            min_length=0.1, max_length=1.0, side="left", left_anchor=7
        )
        assert config.left_anchor == 7.0
        assert config.high_resolution_anchor == 7.0
        assert config.right_anchor is None

    def test_point_anchor(self):
        config = RemeshingConfig(
            min_length=0.1,
            max_length=1.0,
            side="right",
            right_anchor=torch.tensor([1.0, -2.0, 3.0]),
        )
        assert config.right_anchor == (1.0, -2.0, 3.0)
        assert config.high_resolution_anchor == (1.0, -2.0, 3.0)

    @pytest.mark.parametrize("anchor", [(1.0, 2.0), "left", math.inf, (0.0, math.nan, 0.0)])
    def test_invalid_anchor(self, anchor):
        with pytest.raises(ConfigurationError, match="left_anchor"):
            RemeshingConfig(
                min_length=0.1, max_length=1.0, side="left", left_anchor=anchor
            )


class TestValidation:
    """Tests for rejected parameter combinations."""

    @pytest.mark.parametrize(
        "kwargs, match",
        [
            ({"min_length": 0.0}, "min_length"),
            ({"min_length": 1e-7}, "min_length"),
            ({"max_length": math.nan}, "max_length"),
            ({"min_length": 2.0, "max_length": 1.0}, "must not exceed"),
            ({"side": "up"}, "side"),
            ({"side": None}, "side"),
            ({"mode": "graded"}, "mode"),
            ({"iterations": -1}, "iterations"),
            ({"iterations": 2.5}, "iterations"),
            ({"falloff_factor": 0.0}, "falloff_factor"),
            ({"smoothing_strength": 1.5}, "smoothing_strength"),
            ({"smoothing_passes": -1}, "smoothing_passes"),
            ({"max_neighbor_ratio": 0.9}, "max_neighbor_ratio"),
            ({"lateral_axis": 3}, "lateral_axis"),
            ({"relax_steps": -2}, "relax_steps"),
            ({"max_normal_deviation": 0.0}, "max_normal_deviation"),
            ({"feature_angle": 200.0}, "feature_angle"),
        ],
    )
    def test_rejects(self, kwargs, match):
        params = {"min_length": 0.1, "max_length": 1.0, "side": "left"} | kwargs
        with pytest.raises(ConfigurationError, match=match):
            RemeshingConfig(**params)

    def test_error_hierarchy(self):
        """Configuration errors are both package errors and ValueErrors."""
        with pytest.raises(MeshGradingError):
            RemeshingConfig(min_length=-1.0, max_length=1.0, side="left")
        with pytest.raises(ValueError):
            RemeshingConfig(min_length=-1.0, max_length=1.0, side="left")
