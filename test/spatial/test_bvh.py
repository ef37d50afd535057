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

"""Tests for the triangle bounding volume hierarchy."""

import pytest
import torch

from meshgrading.primitives.planar import unit_square
from meshgrading.primitives.surfaces import sphere_icosahedral
from meshgrading.remeshing import closest_point_on_triangles
from meshgrading.spatial import BVH


def _brute_force_within(mesh, queries, radius):
    """Boolean (n_queries, n_cells): triangle closer than the radius."""
    tri = mesh.points[mesh.cells]
    closest = closest_point_on_triangles(
        queries[:, None], tri[None, :, 0], tri[None, :, 1], tri[None, :, 2]
    )
    distance = torch.linalg.vector_norm(closest - queries[:, None], dim=-1)
    return distance <= radius[:, None]


class TestConstruction:
    @pytest.mark.parametrize("leaf_size", [1, 3, 8])
    def test_every_cell_in_one_leaf(self, leaf_size):
        mesh = sphere_icosahedral.load(subdivisions=2)
        bvh = BVH.from_mesh(mesh, leaf_size=leaf_size)

        leaves = bvh.leaf_count > 0
        assert int(bvh.leaf_count.sum()) == mesh.n_cells
        assert int(bvh.leaf_count.max()) <= leaf_size
        assert torch.all(bvh.left[leaves] == -1)
        assert torch.all(bvh.left[~leaves] >= 0)
        torch.testing.assert_close(bvh.order.sort().values, torch.arange(mesh.n_cells))

    def test_root_box_covers_mesh(self):
        mesh = sphere_icosahedral.load(subdivisions=1)
        bvh = BVH.from_mesh(mesh)
        torch.testing.assert_close(bvh.node_min[0], mesh.points.min(dim=0).values)
        torch.testing.assert_close(bvh.node_max[0], mesh.points.max(dim=0).values)

    def test_empty(self):
        bvh = BVH.from_triangles(
            torch.zeros((0, 3)), torch.zeros((0, 3), dtype=torch.long)
        )
        query_ids, cell_ids = bvh.cells_within(torch.zeros((2, 3)), torch.ones(2))
        assert bvh.n_nodes == 0
        assert len(query_ids) == len(cell_ids) == 0

    def test_invalid_leaf_size(self):
        with pytest.raises(ValueError, match="leaf_size"):
            BVH.from_mesh(unit_square.load(), leaf_size=0)


class TestCellsWithin:
    def test_contains_every_close_cell(self):
        mesh = sphere_icosahedral.load(subdivisions=2, dtype=torch.float64)
        bvh = BVH.from_mesh(mesh, leaf_size=4)
        torch.manual_seed(0)
        queries = 1.5 * torch.rand(40, 3, dtype=torch.float64) - 0.75
        radius = torch.full((40,), 0.3, dtype=torch.float64)

        query_ids, cell_ids = bvh.cells_within(queries, radius)

        found = torch.zeros(40, mesh.n_cells, dtype=torch.bool)
        found[query_ids, cell_ids] = True
        expected = _brute_force_within(mesh, queries, radius)
        assert torch.all(found[expected])

    def test_far_query_finds_nothing(self):
        bvh = BVH.from_mesh(unit_square.load(subdivisions=2))
        query_ids, _ = bvh.cells_within(
            torch.tensor([[0.5, 0.5, 5.0]]), torch.tensor([1.0])
        )
        assert len(query_ids) == 0
