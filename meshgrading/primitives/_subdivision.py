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

"""Linear (midpoint) subdivision of triangle meshes."""

import torch

from meshgrading.mesh import Mesh
from meshgrading.utilities._topology import extract_unique_edges


def subdivide_linear(mesh: Mesh, levels: int = 1) -> Mesh:
    """Split every triangle into four by inserting edge midpoints.

    Triangle ``(a, b, c)`` with midpoints ``m_ab, m_bc, m_ca`` becomes
    ``(a, m_ab, m_ca)``, ``(m_ab, b, m_bc)``, ``(m_ca, m_bc, c)`` and
    ``(m_ab, m_bc, m_ca)``, which keeps the orientation of the parent.

    Parameters
    ----------
    mesh : Mesh
        Input triangle mesh. Point and cell data are not carried over.
    levels : int
        Number of subdivision rounds; each quadruples the triangle count.

    Returns
    -------
    Mesh
        The subdivided mesh.
    """
    if levels < 0:
        raise ValueError(f"levels must be non-negative, got {levels=}")

    points, cells = mesh.points, mesh.cells
    for _ in range(levels):
        current = Mesh(points=points, cells=cells)
        edges, inverse = extract_unique_edges(current)
        midpoints = 0.5 * (points[edges[:, 0]] + points[edges[:, 1]])

        # Candidate edge columns are (0, 1), (0, 2), (1, 2) per cell
        edge_ids = points.shape[0] + inverse.reshape(-1, 3)
        m_ab, m_ca, m_bc = edge_ids[:, 0], edge_ids[:, 1], edge_ids[:, 2]
        a, b, c = cells[:, 0], cells[:, 1], cells[:, 2]

        cells = torch.cat(
            [
                torch.stack([a, m_ab, m_ca], dim=1),
                torch.stack([m_ab, b, m_bc], dim=1),
                torch.stack([m_ca, m_bc, c], dim=1),
                torch.stack([m_ab, m_bc, m_ca], dim=1),
            ],
            dim=0,
        )
        points = torch.cat([points, midpoints], dim=0)

    return Mesh(points=points, cells=cells)
