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

"""Tests for the mutable SurfaceMesh and its topology primitives."""

import pytest
import torch

from meshgrading.errors import InvalidMeshError
from meshgrading.primitives.planar import unit_square
from meshgrading.primitives.surfaces import icosahedron_surface
from meshgrading.surface import RemeshableMesh, SurfaceMesh, edge_key


@pytest.fixture
def two_triangles():
    """Unit square as two triangles; vertex 1 = (0, 1), 2 = (1, 0), diagonal (1, 2)."""
    mesh = unit_square.load()
    return SurfaceMesh(
        mesh.points,
        mesh.cells,
        vertex_data={
            "value": torch.tensor([0.0, 1.0, 2.0, 3.0]),
            "label": torch.tensor([10, 11, 12, 13]),
        },
    )


@pytest.fixture
def tetrahedron():
    points = torch.tensor(
        [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]
    )
    faces = torch.tensor([[0, 2, 1], [0, 1, 3], [0, 3, 2], [1, 2, 3]])
    return SurfaceMesh(points, faces)


###############################################################################
# Construction and queries
###############################################################################


class TestConstruction:
    """Tests for building a SurfaceMesh and rejecting malformed input."""

    def test_counts(self, square_surface):
        assert square_surface.n_vertices == 9
        assert square_surface.n_edges == 16
        assert square_surface.n_faces == 8

    def test_satisfies_protocol(self, square_surface):
        assert isinstance(square_surface, RemeshableMesh)

    def test_out_of_range_index(self):
        with pytest.raises(InvalidMeshError, match="outside"):
            SurfaceMesh(torch.zeros(3, 3), torch.tensor([[0, 1, 3]]))

    def test_repeated_vertex(self):
        with pytest.raises(InvalidMeshError, match="repeats"):
            SurfaceMesh(torch.zeros(3, 3), torch.tensor([[0, 1, 1]]))

    def test_non_triangles(self):
        with pytest.raises(InvalidMeshError):
            SurfaceMesh(torch.zeros(4, 3), torch.tensor([[0, 1, 2, 3]]))

    def test_integer_points(self):
        with pytest.raises(InvalidMeshError, match="floating point"):
            SurfaceMesh(torch.zeros(3, 3, dtype=torch.long), torch.tensor([[0, 1, 2]]))

    def test_input_is_not_aliased(self):
        """Editing the surface leaves the source tensors untouched."""
        mesh = unit_square.load()
        surface = SurfaceMesh.from_mesh(mesh)
        surface.set_position(0, [5.0, 5.0, 5.0])
        assert mesh.points[0].tolist() == [0.0, 0.0, 0.0]


class TestQueries:
    """Tests for local adjacency queries."""

    def test_edge_key(self):
        assert edge_key(5, 2) == (2, 5)
        assert edge_key(2, 5) == (2, 5)

    def test_edges_are_sorted(self, square_surface):
        edges = square_surface.edges()
        assert edges == sorted(edges)
        assert all(a < b for a, b in edges)

    def test_centre_vertex(self, square_surface):
        """The centre of the 3x3 grid is interior with valence 6."""
        assert not square_surface.is_boundary_vertex(4)
        assert square_surface.valence(4) == 6
        assert square_surface.neighbors(4) == {1, 2, 3, 5, 6, 7}

    def test_boundary_queries(self, square_surface):
        assert square_surface.is_boundary_vertex(0)
        assert square_surface.is_boundary_edge(0, 1)
        assert not square_surface.is_boundary_edge(1, 4)
        assert len(square_surface.edge_faces(1, 4)) == 2

    def test_opposite_vertices(self, two_triangles):
        assert sorted(two_triangles.opposite_vertices(1, 2)) == [0, 3]
        assert two_triangles.opposite_vertices(0, 1) == [2]
        assert two_triangles.opposite_vertices(0, 3) == []

    def test_edge_lengths(self, two_triangles):
        lengths = two_triangles.edge_lengths([(0, 1), (1, 2)])
        torch.testing.assert_close(lengths, torch.tensor([1.0, 2.0**0.5]))
        assert two_triangles.edge_length(0, 2) == pytest.approx(1.0)


###############################################################################
# Topology primitives
###############################################################################


class TestSplit:
    """Tests for edge splits."""

    def test_split_interior_edge(self, two_triangles, assert_valid_surface):
        m = two_triangles.split_edge(1, 2)
        assert m == 4
        assert two_triangles.n_vertices == 5
        assert two_triangles.n_faces == 4
        assert two_triangles.n_edges == 8
        assert not two_triangles.has_edge(1, 2)
        torch.testing.assert_close(two_triangles.position(m), torch.tensor([0.5, 0.5, 0.0]))
        assert_valid_surface(two_triangles)

    def test_split_interpolates_vertex_data(self, two_triangles):
        """Float fields are averaged; other fields are copied from the first endpoint."""
        m = two_triangles.split_edge(1, 2)
        assert two_triangles.vertex_data["value"][m].item() == pytest.approx(1.5)
        assert two_triangles.vertex_data["label"][m].item() == 11

    def test_split_boundary_edge(self, two_triangles, assert_valid_surface):
        m = two_triangles.split_edge(0, 1)
        assert two_triangles.n_faces == 3
        assert two_triangles.is_boundary_vertex(m)
        assert_valid_surface(two_triangles)

    def test_split_missing_edge(self, two_triangles):
        assert two_triangles.split_edge(0, 3) is None
        assert two_triangles.n_vertices == 4

    def test_split_grows_storage(self, two_triangles, assert_valid_surface):
        """Repeated splits beyond the initial capacity keep positions and data."""
        for _ in range(40):
            a, b = max(two_triangles.edges(), key=lambda e: two_triangles.edge_length(*e))
            two_triangles.split_edge(a, b)
        assert two_triangles.n_vertices == 44
        assert two_triangles.vertex_data["value"].shape[0] == 44
        assert two_triangles.vertex_data["value"][:4].tolist() == [0.0, 1.0, 2.0, 3.0]
        assert_valid_surface(two_triangles)


class TestCollapse:
    """Tests for edge collapses."""

    def test_collapse_centre_vertex(self, square_surface, assert_valid_surface):
        """Merging the centre into a boundary midpoint removes two faces."""
        assert square_surface.is_collapse_ok(4, 1)
        assert square_surface.collapse_edge(4, 1)
        assert square_surface.n_vertices == 8
        assert square_surface.n_faces == 6
        assert 4 not in set(square_surface.vertices())
        # The kept vertex does not move
        torch.testing.assert_close(
            square_surface.position(1), torch.tensor([0.0, 0.5, 0.0])
        )
        assert_valid_surface(square_surface)

    def test_valence_three_guard(self, tetrahedron):
        """Collapsing any tetrahedron edge would leave valence-2 vertices."""
        assert not tetrahedron.is_collapse_ok(0, 1)
        assert not tetrahedron.collapse_edge(0, 1)
        assert tetrahedron.n_faces == 4

    def test_collapse_between_boundary_vertices(self):
        """An interior edge joining two boundary vertices would pinch the surface."""
        surface = SurfaceMesh.from_mesh(unit_square.load())
        assert not surface.is_collapse_ok(1, 2)

    def test_missing_edge(self, square_surface):
        assert not square_surface.is_collapse_ok(0, 8)


class TestFlip:
    """Tests for edge flips."""

    def test_flip_diagonal(self, two_triangles, assert_valid_surface):
        assert two_triangles.flip_edge(1, 2)
        assert two_triangles.has_edge(0, 3)
        assert not two_triangles.has_edge(1, 2)
        assert_valid_surface(two_triangles)
        # Flipping back restores the original diagonal
        assert two_triangles.flip_edge(0, 3)
        assert two_triangles.has_edge(1, 2)

    def test_flip_boundary_edge(self, two_triangles):
        assert not two_triangles.is_flip_ok(0, 1)

    def test_flip_to_existing_edge(self, tetrahedron):
        assert not tetrahedron.is_flip_ok(0, 1)
        assert not tetrahedron.flip_edge(0, 1)


###############################################################################
# Snapshots and ownership
###############################################################################


class TestSnapshots:
    """Tests for compaction, attributes and exclusive access."""

    def test_garbage_collection(self, square_surface, assert_valid_surface):
        square_surface.collapse_edge(4, 1)
        old_to_new = square_surface.garbage_collection()
        assert old_to_new[4].item() == -1
        assert old_to_new[5].item() == 4
        assert list(square_surface.vertices()) == list(range(8))
        assert square_surface.points.shape == (8, 3)
        assert_valid_surface(square_surface)

    def test_to_mesh_vertex_ids(self, square_surface):
        square_surface.collapse_edge(4, 1)
        mesh, vertex_ids = square_surface.to_mesh()
        assert mesh.n_points == 8
        assert mesh.n_cells == 6
        assert 4 not in vertex_ids.tolist()

    def test_vertex_attributes(self, square_surface):
        square_surface.add_vertex_attribute("weight", fill=2.0)
        assert torch.all(square_surface.vertex_data["weight"] == 2.0)
        square_surface.add_vertex_attribute("weight", torch.arange(9.0))
        assert square_surface.vertex_data["weight"][8].item() == 8.0
        square_surface.remove_vertex_attribute("weight")
        assert "weight" not in square_surface.vertex_data.keys()

    def test_attribute_shape_mismatch(self, square_surface):
        with pytest.raises(ValueError, match="leading dimension"):
            square_surface.add_vertex_attribute("weight", torch.zeros(3))

    def test_set_positions(self, square_surface):
        square_surface.set_positions(
            torch.tensor([0, 8]), torch.tensor([[0.0, 0.0, 1.0], [1.0, 1.0, 1.0]])
        )
        assert square_surface.points[:, 2].sum().item() == pytest.approx(2.0)

    def test_copy_is_independent(self):
        surface = SurfaceMesh.from_mesh(icosahedron_surface.load())
        clone = surface.copy()
        clone.split_edge(*clone.edges()[0])
        assert surface.n_faces == 20
        assert clone.n_faces == 22

    def test_exclusive_access(self, square_surface):
        """A second concurrent holder is refused; the lock is released afterwards."""
        with square_surface.exclusive_access():
            with pytest.raises(RuntimeError, match="already held"):
                with square_surface.exclusive_access():
                    pass
        with square_surface.exclusive_access() as held:
            assert held is square_surface
