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

"""End-to-end tests for the remeshing driver."""

import logging

import pytest
import torch

from meshgrading.boundaries import get_boundary_vertices
from meshgrading.config import RemeshingConfig
from meshgrading.errors import ConfigurationError, InvalidMeshError
from meshgrading.primitives.planar import unit_square
from meshgrading.primitives.surfaces import icosahedron_surface, sphere_icosahedral
from meshgrading.remeshing import adaptive_remeshing, remesh, uniform_remeshing
from meshgrading.surface import SurfaceMesh


def _edge_lengths(surface: SurfaceMesh) -> torch.Tensor:
    return surface.edge_lengths(surface.edges())


class _TargetRecorder(SurfaceMesh):
    """Records targets and interior edge ratios before the driver drops them."""

    def remove_vertex_attribute(self, name: str) -> None:
        if name == "target_length" and name in self.vertex_data.keys():
            targets = self.vertex_data[name]
            edges = [
                (a, b)
                for a, b in self.edges()
                if not self.is_boundary_vertex(a) and not self.is_boundary_vertex(b)
            ]
            # Interior edge length over 4/3 of its endpoints' mean target
            bound = 4.0 / 3.0 * targets[torch.tensor(edges)].mean(dim=1)
            self.length_ratios = self.edge_lengths(edges) / bound
            self.targets = targets.clone()
        super().remove_vertex_attribute(name)


class TestUniformRemeshing:
    """Tests for uniform mode."""

    @pytest.fixture
    def square(self):
        return SurfaceMesh.from_mesh(unit_square.load(dtype=torch.float64))

    def test_refines_to_target(self, square, assert_valid_surface):
        stats = uniform_remeshing(square, 0.1)

        lengths = _edge_lengths(square)
        assert 0.06 < float(lengths.mean()) < 0.14
        assert float(lengths.max()) < 0.2
        assert stats.n_faces_after == square.n_faces > 2
        assert_valid_surface(square)

    def test_unit_square_scenario(self, square):
        """Two triangles, min 0.1, max 0.5, uniform mode, 10 iterations.

        Edges stay below 4/3 of max_length. Uniform mode targets min_length
        and collapses only below 4/5 of it, so edges shorter than min_length
        remain: every edge is at least min_length / 2 and three quarters of
        them are at least 4/5 of min_length.
        """
        config = RemeshingConfig(min_length=0.1, max_length=0.5, mode="uniform")
        stats = remesh(square, config)

        lengths = _edge_lengths(square)
        assert stats.n_iterations == 10
        assert square.n_faces >= 2
        assert float(lengths.max()) <= 0.5 * 4.0 / 3.0
        assert float(lengths.min()) >= 0.5 * 0.1
        assert float((lengths >= 0.8 * 0.1).double().mean()) >= 0.75

    def test_interior_edges_within_bound(self):
        surface = _TargetRecorder.from_mesh(unit_square.load(dtype=torch.float64))
        uniform_remeshing(surface, 0.1)

        torch.testing.assert_close(
            surface.targets, torch.full_like(surface.targets, 0.1)
        )
        ratios = surface.length_ratios
        assert len(ratios) > 100
        assert float(ratios.max()) <= 1.05, f"{ratios.max()=}"

    def test_keeps_the_square(self, square):
        uniform_remeshing(square, 0.1)

        mesh, _ = square.to_mesh()
        torch.testing.assert_close(
            mesh.points[:, 2], torch.zeros(mesh.n_points, dtype=torch.float64)
        )
        assert float(mesh.cell_areas.sum()) == pytest.approx(1.0, abs=1e-9)

        boundary = mesh.points[get_boundary_vertices(mesh)]
        on_side = (
            (boundary[:, 0].abs() < 1e-12)
            | ((boundary[:, 0] - 1).abs() < 1e-12)
            | (boundary[:, 1].abs() < 1e-12)
            | ((boundary[:, 1] - 1).abs() < 1e-12)
        )
        assert torch.all(on_side)

    def test_icosahedron_is_stable(self):
        """A surface already at its target length is left as it is."""
        mesh = icosahedron_surface.load(dtype=torch.float64)
        surface = SurfaceMesh.from_mesh(mesh)

        stats = uniform_remeshing(surface, icosahedron_surface.edge_length(), iterations=3)

        assert (stats.total_splits, stats.total_collapses, stats.total_flips) == (0, 0, 0)
        assert surface.n_faces == 20
        torch.testing.assert_close(surface.points, mesh.points)

    def test_coarsens(self, sphere_surface, assert_valid_surface):
        n_faces = sphere_surface.n_faces
        stats = uniform_remeshing(sphere_surface, 0.6, iterations=5)

        assert stats.total_collapses > 0
        assert sphere_surface.n_faces < n_faces
        assert_valid_surface(sphere_surface)

    def test_cylinder_boundary(self, cylinder_surface, assert_valid_surface):
        """Open boundary loops stay where they are."""
        original, _ = cylinder_surface.to_mesh()
        original_boundary = original.points[get_boundary_vertices(original)]

        uniform_remeshing(cylinder_surface, 0.25, iterations=5)

        mesh, _ = cylinder_surface.to_mesh()
        boundary = mesh.points[get_boundary_vertices(mesh)]
        torch.testing.assert_close(
            boundary[:, 2].abs(), torch.ones(len(boundary), dtype=torch.float64)
        )
        # Every original boundary vertex survives
        distance = torch.cdist(original_boundary, boundary).amin(dim=-1)
        assert torch.all(distance < 1e-12)
        assert_valid_surface(cylinder_surface)


class TestAdaptiveRemeshing:
    """Tests for adaptive mode."""

    @pytest.mark.slow
    def test_graded_towards_anchor(self, sphere_surface, assert_valid_surface):
        stats = adaptive_remeshing(
            sphere_surface,
            min_length=0.05,
            max_length=0.3,
            iterations=3,
            side="left",
            left_anchor=(0.0, 0.0, 1.0),
            right_anchor=(0.0, 0.0, -1.0),
        )

        edges = torch.tensor(sphere_surface.edges())
        midpoints = sphere_surface.points[edges].mean(dim=1)
        lengths = _edge_lengths(sphere_surface)
        north = lengths[midpoints[:, 2] > 0.7].mean()
        south = lengths[midpoints[:, 2] < -0.7].mean()

        assert north < south
        assert stats.n_faces_after > stats.n_faces_before
        radius = torch.linalg.vector_norm(sphere_surface.points, dim=-1)
        assert torch.all((radius > 0.95) & (radius < 1.0 + 1e-9))
        assert_valid_surface(sphere_surface)

    @pytest.mark.slow
    def test_interior_edges_within_bound(self):
        surface = _TargetRecorder.from_mesh(
            sphere_icosahedral.load(subdivisions=2, dtype=torch.float64)
        )
        adaptive_remeshing(
            surface,
            min_length=0.05,
            max_length=0.3,
            iterations=3,
            side="left",
            left_anchor=(0.0, 0.0, 1.0),
            right_anchor=(0.0, 0.0, -1.0),
        )

        assert float(surface.targets.min()) < float(surface.targets.max())
        ratios = surface.length_ratios
        assert float(ratios.max()) <= 1.05, f"{ratios.max()=}"

    def test_requires_valid_lengths(self, square_surface):
        with pytest.raises(ConfigurationError):
            adaptive_remeshing(square_surface, min_length=0.0, max_length=1.0)
        assert square_surface.n_faces == 8


class TestDriver:
    """Tests for the remesh entry point."""

    def test_statistics(self, square_surface):
        config = RemeshingConfig(min_length=0.2, max_length=0.2, mode="uniform", iterations=4)
        stats = remesh(square_surface, config)

        assert stats.n_iterations == 4
        assert (stats.n_vertices_before, stats.n_edges_before, stats.n_faces_before) == (
            9,
            16,
            8,
        )
        assert stats.n_vertices_after == square_surface.n_vertices
        assert stats.n_edges_after == square_surface.n_edges
        assert stats.total_splits == sum(it.splits for it in stats.iterations)

    def test_stop_when_converged(self):
        surface = SurfaceMesh.from_mesh(icosahedron_surface.load())
        config = RemeshingConfig(
            min_length=icosahedron_surface.edge_length(),
            max_length=icosahedron_surface.edge_length(),
            mode="uniform",
            stop_when_converged=True,
        )
        assert remesh(surface, config).n_iterations == 1

    def test_zero_iterations(self, square_surface):
        config = RemeshingConfig(min_length=0.1, max_length=0.1, mode="uniform", iterations=0)
        stats = remesh(square_surface, config)
        assert stats.n_iterations == 0
        assert stats.n_faces_after == 8

    def test_compacts_and_cleans_up(self, square_surface):
        square_surface.add_vertex_attribute("pressure", fill=1.0)
        uniform_remeshing(square_surface, 0.15, iterations=2)

        keys = set(square_surface.vertex_data.keys())
        assert keys == {"pressure"}
        assert square_surface.points.shape[0] == square_surface.n_vertices
        assert torch.all(square_surface.vertex_data["pressure"] == 1.0)

    def test_logs_face_counts(self, square_surface, caplog):
        with caplog.at_level(logging.INFO, logger="meshgrading"):
            uniform_remeshing(square_surface, 0.2, iterations=1)
        assert "Faces before remeshing: 8" in caplog.text

    def test_exclusive(self, square_surface):
        with square_surface.exclusive_access():
            with pytest.raises(RuntimeError, match="already held"):
                uniform_remeshing(square_surface, 0.1)
        # Released again afterwards
        uniform_remeshing(square_surface, 0.4, iterations=1)


class TestInvalidInput:
    """Input that must be rejected before anything changes."""

    def test_empty(self):
        surface = SurfaceMesh(torch.zeros((0, 3)), torch.zeros((0, 3), dtype=torch.long))
        with pytest.raises(InvalidMeshError, match="empty"):
            uniform_remeshing(surface, 0.1)

    def test_non_manifold_edge(self):
        points = torch.tensor(
            [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.5, 1.0, 0.0], [0.5, -1.0, 0.0],
             [0.5, 0.0, 1.0]]
        )  # fmt: skip
        surface = SurfaceMesh(points, torch.tensor([[0, 1, 2], [1, 0, 3], [0, 1, 4]]))
        with pytest.raises(InvalidMeshError):
            uniform_remeshing(surface, 0.1)
        assert surface.n_faces == 3
        torch.testing.assert_close(surface.points, points)

    def test_inconsistent_orientation(self):
        points = torch.tensor(
            [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.5, 1.0, 0.0], [0.5, -1.0, 0.0]]
        )
        surface = SurfaceMesh(points, torch.tensor([[0, 1, 2], [0, 1, 3]]))
        with pytest.raises(InvalidMeshError, match="oriented"):
            uniform_remeshing(surface, 0.1)
        assert surface.n_faces == 2

    def test_degenerate_triangle_warns(self):
        points = torch.tensor(
            [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.5, 1.0, 0.0], [2.0, 0.0, 0.0]]
        )
        surface = SurfaceMesh(points, torch.tensor([[0, 1, 2], [1, 3, 2], [0, 3, 1]]))
        with pytest.warns(UserWarning, match="degenerate"):
            remesh(
                surface,
                RemeshingConfig(min_length=1.0, max_length=1.0, mode="uniform", iterations=0),
            )
