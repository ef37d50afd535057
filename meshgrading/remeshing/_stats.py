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

"""Summary statistics of a remeshing run."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class IterationStats:
    """Operator counts of one split/collapse/flip/relax cycle."""

    splits: int
    collapses: int
    flips: int
    mean_displacement: float

    @property
    def changed_topology(self) -> bool:
        return (self.splits + self.collapses + self.flips) > 0


@dataclass
class RemeshingStats:
    """Element counts before and after remeshing, and per-iteration counts.

    Examples
    --------
    >>> stats = RemeshingStats(n_vertices_before=4, n_edges_before=5, n_faces_before=2)
    >>> stats.iterations.append(IterationStats(3, 0, 1, 0.01))
    >>> stats.total_splits, stats.n_iterations
    (3, 1)
    """

    n_vertices_before: int
    n_edges_before: int
    n_faces_before: int
    n_vertices_after: int = 0
    n_edges_after: int = 0
    n_faces_after: int = 0
    iterations: list[IterationStats] = field(default_factory=list)

    @property
    def n_iterations(self) -> int:
        return len(self.iterations)

    @property
    def total_splits(self) -> int:
        return sum(it.splits for it in self.iterations)

    @property
    def total_collapses(self) -> int:
        return sum(it.collapses for it in self.iterations)

    @property
    def total_flips(self) -> int:
        return sum(it.flips for it in self.iterations)
