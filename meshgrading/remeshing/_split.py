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

"""Edge splitting pass."""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from meshgrading.boundaries import FeatureSet
    from meshgrading.surface import RemeshableMesh

logger = logging.getLogger(__name__)

SPLIT_RATIO = 4.0 / 3.0


def split_long_edges(
    surface: "RemeshableMesh",
    features: "FeatureSet",
    max_sweeps: int = 10,
) -> int:
    """Split every edge longer than 4/3 of its target length at its midpoint.

    An edge's target is the mean of its endpoints' ``"target_length"``
    vertex attribute; the new vertex gets the mean of every floating-point
    attribute. A split feature edge leaves two feature edges and a feature
    vertex behind in ``features``.

    Sweeps are repeated over the newly created edges until no edge is too
    long, or ``max_sweeps`` is reached.

    Parameters
    ----------
    surface : RemeshableMesh
        Surface to modify in place. Must carry a ``"target_length"`` vertex
        attribute.
    features : FeatureSet
        Feature classification, updated in place.
    max_sweeps : int
        Upper bound on the number of sweeps.

    Returns
    -------
    int
        Number of splits performed.
    """
    n_splits = 0
    for _ in range(max_sweeps):
        edges = surface.edges()
        lengths = surface.edge_lengths(edges).tolist()
        targets = surface.vertex_data["target_length"].tolist()

        n_sweep = 0
        for (a, b), length in zip(edges, lengths):
            if length <= SPLIT_RATIO * 0.5 * (targets[a] + targets[b]):
                continue
            m = surface.split_edge(a, b)
            if m is None:
                continue
            features.split_edge(a, b, m)
            n_sweep += 1

        n_splits += n_sweep
        if n_sweep == 0:
            break
    else:
        logger.debug(f"Edge splitting stopped after {max_sweeps=} sweeps")

    return n_splits
