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

"""Tests for the target edge length field.

Tests coverage for:
- Curvature-to-length conversion and its fallbacks
- Anchor estimation and explicit anchors
- Smoothing, distance blending and gradation limiting
- The complete field: uniform mode, bounds, and monotonic bias
"""

import math

import pytest
import torch

from meshgrading.config import RemeshingConfig
from meshgrading.primitives.planar import unit_square
from meshgrading.primitives.surfaces import sphere_icosahedral
from meshgrading.sizing import (
    compute_target_lengths,
    curvature_to_edge_length,
    distance_limited_length,
    estimate_anchor,
    explicit_anchor,
    limit_gradation,
    resolve_anchors,
    smooth_target_lengths,
)

###############################################################################
# Curvature-limited length
###############################################################################


class TestCurvatureToEdgeLength:
    """Tests for the chord-error edge length."""

    def test_undefined_curvature_gives_max(self):
        """Zero, NaN and infinite curvature all fall back to the maximum."""
        curvature = torch.tensor([0.0, math.nan, math.inf, -0.0])
        lengths = curvature_to_edge_length(curvature, 0.1, 0.1, 5.0)
        torch.testing.assert_close(lengths, torch.full((4,), 5.0))

    def test_chord_formula(self):
        """For e < r, h = sqrt(6 e r - 3 e^2)."""
        lengths = curvature_to_edge_length(
            torch.tensor([1.0], dtype=torch.float64), 0.1, 0.01, 10.0
        )
        assert lengths.item() == pytest.approx(math.sqrt(0.6 - 0.03))

    def test_small_radius(self):
        """For e >= r, h = sqrt(3) e."""
        lengths = curvature_to_edge_length(
            torch.tensor([20.0], dtype=torch.float64), 0.1, 0.01, 10.0
        )
        assert lengths.item() == pytest.approx(math.sqrt(3.0) * 0.1)

    def test_clamped(self):
        lengths = curvature_to_edge_length(torch.tensor([1e-3, 1e3]), 0.1, 0.5, 2.0)
        torch.testing.assert_close(lengths, torch.tensor([2.0, 0.5]))

    def test_decreases_with_curvature(self):
        curvature = torch.linspace(0.01, 5.0, 50, dtype=torch.float64)
        lengths = curvature_to_edge_length(curvature, 0.05, 1e-3, 100.0)
        assert torch.all(lengths[1:] <= lengths[:-1])

    def test_negative_curvature_uses_magnitude(self):
        lengths = curvature_to_edge_length(torch.tensor([-1.0, 1.0]), 0.1, 0.01, 10.0)
        assert lengths[0] == lengths[1]


###############################################################################
# Anchors
###############################################################################


class TestAnchors:
    """Tests for explicit and estimated anchors."""

    @pytest.fixture
    def points(self):
        return torch.tensor(
            [[0.0, -2.0, 0.0], [0.0, 2.0, 0.0], [1.0, 0.0, 1.0], [-1.0, 0.0, -1.0]]
        )

    def test_estimate_left_is_positive(self, points):
        anchor = estimate_anchor(points, "left", gamma=0.25)
        torch.testing.assert_close(anchor, torch.tensor([0.0, 1.0, 0.0]))

    def test_estimate_right_is_negative(self, points):
        anchor = estimate_anchor(points, "right", gamma=0.25)
        torch.testing.assert_close(anchor, torch.tensor([0.0, -1.0, 0.0]))

    def test_estimate_other_axis(self, points):
        anchor = estimate_anchor(points, "left", gamma=0.5, lateral_axis=0)
        torch.testing.assert_close(anchor, torch.tensor([1.0, 0.0, 0.0]))

    def test_explicit_scalar(self, points):
        """A scalar replaces the lateral coordinate of the centroid."""
        torch.testing.assert_close(
            explicit_anchor(points, 3.0), torch.tensor([0.0, 3.0, 0.0])
        )

    def test_explicit_point(self, points):
        torch.testing.assert_close(
            explicit_anchor(points, (1.0, 2.0, 3.0)), torch.tensor([1.0, 2.0, 3.0])
        )

    def test_resolve_anchors(self, points):
        config = RemeshingConfig(
            min_length=0.1, max_length=1.0, side="right", right_anchor=-1.5
        )
        anchors = resolve_anchors(points, config)
        assert anchors.left_estimated
        assert not anchors.right_estimated
        torch.testing.assert_close(anchors.high_resolution, torch.tensor([0.0, -1.5, 0.0]))
        # Default gamma 0.15 times the extent of 4
        torch.testing.assert_close(anchors.low_resolution, torch.tensor([0.0, 0.6, 0.0]))


###############################################################################
# Field operations
###############################################################################


class TestFieldOperations:
    """Tests for blending, smoothing and gradation."""

    def test_distance_limited_length(self):
        distance = torch.tensor([0.0, 1.0, 2.0, 5.0])
        lengths = distance_limited_length(
            distance, torch.full((4,), 3.0), min_length=1.0, falloff_radius=2.0
        )
        torch.testing.assert_close(lengths, torch.tensor([1.0, 2.0, 3.0, 3.0]))

    def test_smoothing_keeps_constant_field(self):
        mesh = sphere_icosahedral.load(subdivisions=1)
        targets = torch.full((mesh.n_points,), 0.7)
        smoothed = smooth_target_lengths(targets, mesh.edges(), passes=3, strength=0.5)
        torch.testing.assert_close(smoothed, targets)

    def test_smoothing_strength(self):
        edges = torch.tensor([[0, 1]])
        targets = torch.tensor([0.0, 4.0])
        torch.testing.assert_close(
            smooth_target_lengths(targets, edges, passes=1, strength=0.0), targets
        )
        torch.testing.assert_close(
            smooth_target_lengths(targets, edges, passes=1, strength=0.5),
            torch.tensor([2.0, 2.0]),
        )

    def test_gradation_bound(self):
        """After limiting, neighbouring targets differ by at most the ratio."""
        mesh = sphere_icosahedral.load(subdivisions=2, dtype=torch.float64)
        edges = mesh.edges()
        torch.manual_seed(0)
        targets = torch.rand(mesh.n_points, dtype=torch.float64) * 10 + 0.01
        limited = limit_gradation(targets, edges, max_ratio=1.5)

        assert torch.all(limited <= targets)
        a, b = limited[edges[:, 0]], limited[edges[:, 1]]
        assert torch.all(torch.maximum(a, b) <= 1.5 * torch.minimum(a, b) + 1e-12)

    def test_gradation_of_valid_field_is_identity(self):
        edges = torch.tensor([[0, 1], [1, 2]])
        targets = torch.tensor([1.0, 1.2, 1.0])
        torch.testing.assert_close(limit_gradation(targets, edges, 1.5), targets)


###############################################################################
# Complete field
###############################################################################


class TestComputeTargetLengths:
    """Tests for the per-vertex target field."""

    def test_uniform_mode(self):
        mesh = sphere_icosahedral.load(subdivisions=1)
        config = RemeshingConfig(min_length=0.3, max_length=0.3, mode="uniform")
        torch.testing.assert_close(
            compute_target_lengths(mesh, config), torch.full((mesh.n_points,), 0.3)
        )

    def test_flat_far_from_anchor_is_max(self):
        """Zero curvature away from the anchor gives the maximum length."""
        mesh = unit_square.load(subdivisions=3, dtype=torch.float64)
        config = RemeshingConfig(
            min_length=0.01,
            max_length=0.2,
            side="left",
            left_anchor=(100.0, 100.0, 100.0),
            falloff_factor=1.0,
        )
        targets = compute_target_lengths(mesh, config)
        torch.testing.assert_close(targets, torch.full_like(targets, 0.2))

    def test_bounds(self):
        mesh = sphere_icosahedral.load(subdivisions=2, dtype=torch.float64)
        config = RemeshingConfig(min_length=0.05, max_length=0.3, side="right")
        targets = compute_target_lengths(mesh, config)
        assert torch.all(targets >= 0.05)
        assert torch.all(targets <= 0.3)

    def test_monotonic_bias(self):
        """Moving the anchor closer never increases any target."""
        mesh = unit_square.load(subdivisions=3, dtype=torch.float64)
        near = RemeshingConfig(
            min_length=0.02, max_length=0.3, side="left", left_anchor=(0.5, 0.5, 0.1)
        )
        far = RemeshingConfig(
            min_length=0.02, max_length=0.3, side="left", left_anchor=(0.5, 0.5, 1.0)
        )
        targets_near = compute_target_lengths(mesh, near)
        targets_far = compute_target_lengths(mesh, far)
        assert torch.all(targets_near <= targets_far)
        assert torch.any(targets_near < targets_far)

    def test_high_resolution_side(self):
        """Targets are smaller around the high-resolution anchor."""
        mesh = sphere_icosahedral.load(subdivisions=2, dtype=torch.float64)
        config = RemeshingConfig(
            min_length=0.05,
            max_length=0.4,
            side="left",
            left_anchor=(0.0, 0.0, 1.0),
            right_anchor=(0.0, 0.0, -1.0),
        )
        targets = compute_target_lengths(mesh, config)
        z = mesh.points[:, 2]
        assert targets[z > 0.8].mean() < targets[z < -0.8].mean()
