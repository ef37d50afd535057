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

"""Capability interface between the remeshing algorithm and a mesh backend.

The remeshing code only talks to a surface through :class:`RemeshableMesh`,
so any manifold indexed-triangle or half-edge structure that provides these
operations can be remeshed. :class:`~meshgrading.surface.SurfaceMesh` is the
implementation shipped with this package.

Topology primitives (``split_edge``, ``collapse_edge``, ``flip_edge``) either
succeed and update the topology, or report infeasibility (``None`` / ``False``)
without any side effect.
"""

from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Iterator, Protocol, Sequence, runtime_checkable

import torch
from tensordict import TensorDict

if TYPE_CHECKING:
    from meshgrading.mesh import Mesh


@runtime_checkable
class RemeshableMesh(Protocol):
    """Operations a surface must support to be remeshed in place."""

    ### Iteration and counts
    @property
    def n_vertices(self) -> int: ...

    @property
    def n_edges(self) -> int: ...

    @property
    def n_faces(self) -> int: ...

    def vertices(self) -> Iterator[int]: ...

    def edges(self) -> list[tuple[int, int]]: ...

    def faces(self) -> Iterator[int]: ...

    @property
    def dtype(self) -> torch.dtype: ...

    @property
    def device(self) -> torch.device: ...

    def face_vertices(self, f: int) -> tuple[int, int, int]: ...

    ### Positions and per-vertex data
    @property
    def points(self) -> torch.Tensor: ...

    @property
    def vertex_data(self) -> TensorDict: ...

    def add_vertex_attribute(
        self, name: str, values: torch.Tensor | None = None, fill: float = 0.0
    ) -> None: ...

    def remove_vertex_attribute(self, name: str) -> None: ...

    def position(self, v: int) -> torch.Tensor: ...

    def set_position(self, v: int, position: torch.Tensor | Sequence[float]) -> None: ...

    def set_positions(self, vertex_ids: torch.Tensor, positions: torch.Tensor) -> None: ...

    def edge_length(self, a: int, b: int) -> float: ...

    def edge_lengths(self, edges: Sequence[tuple[int, int]]) -> torch.Tensor: ...

    ### Local topology queries
    def has_edge(self, a: int, b: int) -> bool: ...

    def edge_faces(self, a: int, b: int) -> list[int]: ...

    def vertex_faces(self, v: int) -> set[int]: ...

    def neighbors(self, v: int) -> set[int]: ...

    def valence(self, v: int) -> int: ...

    def opposite_vertices(self, a: int, b: int) -> list[int]: ...

    def is_boundary_vertex(self, v: int) -> bool: ...

    def is_boundary_edge(self, a: int, b: int) -> bool: ...

    ### Topology primitives
    def split_edge(
        self, a: int, b: int, position: torch.Tensor | None = None
    ) -> int | None: ...

    def is_collapse_ok(self, remove: int, keep: int) -> bool: ...

    def collapse_edge(self, remove: int, keep: int) -> bool: ...

    def is_flip_ok(self, a: int, b: int) -> bool: ...

    def flip_edge(self, a: int, b: int) -> bool: ...

    ### Snapshots and ownership
    def to_mesh(self) -> tuple["Mesh", torch.Tensor]: ...

    def garbage_collection(self) -> torch.Tensor: ...

    def exclusive_access(self) -> AbstractContextManager: ...
