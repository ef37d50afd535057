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

"""Pytest configuration and shared fixtures for meshgrading tests.

Fixtures defined here are automatically available to all test files without
explicit imports.
"""

import pytest
import torch

from meshgrading.primitives.planar import unit_square
from meshgrading.primitives.surfaces import cylinder_open, sphere_icosahedral
from meshgrading.surface import SurfaceMesh
from meshgrading.validation import validate_mesh

### Pytest Hooks ###


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers", "cuda: mark test as requiring CUDA (skipped if unavailable)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow-running (for optional exclusion)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip tests marked with 'cuda' if CUDA is not available."""
    if torch.cuda.is_available():
        return

    skip_cuda = pytest.mark.skip(reason="CUDA not available")
    for item in items:
        if "cuda" in item.keywords:
            item.add_marker(skip_cuda)


### Shared Fixtures ###


@pytest.fixture(
    params=[
        "cpu",
        pytest.param("cuda", marks=pytest.mark.cuda),
    ]
)
def device(request):
    """Parametrize tests over all available devices (CPU, CUDA)."""
    return request.param


@pytest.fixture
def square_surface():
    """Unit square with 8 triangles and a boundary loop of 8 edges."""
    return SurfaceMesh.from_mesh(unit_square.load(subdivisions=1))


@pytest.fixture
def sphere_surface():
    """Unit icosphere with 320 triangles, in float64."""
    return SurfaceMesh.from_mesh(
        sphere_icosahedral.load(subdivisions=2, dtype=torch.float64)
    )


@pytest.fixture
def cylinder_surface():
    """Open unit cylinder with two boundary loops."""
    return SurfaceMesh.from_mesh(
        cylinder_open.load(n_circ=16, n_height=5, dtype=torch.float64)
    )


def _assert_valid_surface(surface: SurfaceMesh) -> None:
    mesh, _ = surface.to_mesh()
    report = validate_mesh(mesh)
    assert report["valid"], f"Surface is not a valid manifold: {report}"

    # The adjacency bookkeeping must match the face list
    n_edges = len(mesh.edges())
    assert surface.n_edges == n_edges, f"{surface.n_edges=} != {n_edges=}"
    assert surface.n_faces == mesh.n_cells


@pytest.fixture
def assert_valid_surface():
    """Check that a surface is an oriented manifold without degenerate faces."""
    return _assert_valid_surface
