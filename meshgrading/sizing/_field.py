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

"""Per-vertex target edge length field."""

import logging
from typing import TYPE_CHECKING

import torch

from meshgrading.curvature import max_abs_curvature_vertices
from meshgrading.sizing._anchors import resolve_anchors
from meshgrading.sizing._curvature import curvature_to_edge_length
from meshgrading.utilities._topology import neighbor_mean

if TYPE_CHECKING:
    from meshgrading.config import RemeshingConfig
    from meshgrading.mesh import Mesh

logger = logging.getLogger(__name__)


def distance_limited_length(
    distance: torch.Tensor,
    curvature_target: torch.Tensor,
    min_length: float,
    falloff_radius: float,
) -> torch.Tensor:
    """Shrink targets towards ``min_length`` close to the anchor.

    ``min + (t - min) * clamp(d / R, 0, 1)``: equal to ``min_length`` at the
    anchor and to the curvature target from ``falloff_radius`` outward.

    Parameters
    ----------
    distance : torch.Tensor
        Distance of every vertex to the anchor, shape (n_points,).
    curvature_target : torch.Tensor
        Curvature-limited target per vertex, shape (n_points,).
    min_length : float
        Target at the anchor itself.
    falloff_radius : float
        Distance at which the anchor stops having an effect.

    Returns
    -------
    torch.Tensor
        Distance-limited target, shape (n_points,). Never larger than
        ``curvature_target`` where ``curvature_target >= min_length``.
    """
    weight = torch.clamp(distance / falloff_radius, min=0.0, max=1.0)
    return min_length + (curvature_target - min_length) * weight


def smooth_target_lengths(
    targets: torch.Tensor,
    edges: torch.Tensor,
    passes: int = 1,
    strength: float = 0.5,
) -> torch.Tensor:
    """Blend each target with the mean of its neighbours.

    Each pass computes ``t <- (1 - s) * t + s * mean(neighbours)``. The
    operation is monotone: raising any input never lowers any output.

    Parameters
    ----------
    targets : torch.Tensor
        Target per vertex, shape (n_points,).
    edges : torch.Tensor
        Unique edges, shape (n_edges, 2).
    passes : int
        Number of smoothing passes.
    strength : float
        Neighbour weight ``s`` in [0, 1].

    Returns
    -------
    torch.Tensor
        Smoothed targets, shape (n_points,).
    """
    for _ in range(passes):
        targets = (1.0 - strength) * targets + strength * neighbor_mean(
            targets, edges
        )
    return targets


def limit_gradation(
    targets: torch.Tensor,
    edges: torch.Tensor,
    max_ratio: float = 1.5,
) -> torch.Tensor:
    """Lower targets until neighbours differ by at most ``max_ratio``.

    Small targets propagate outward: every vertex takes
    ``min(t_i, max_ratio * t_j)`` over its neighbours ``j`` until nothing
    changes. Values only ever decrease.

    Parameters
    ----------
    targets : torch.Tensor
        Target per vertex, shape (n_points,).
    edges : torch.Tensor
        Unique edges, shape (n_edges, 2).
    max_ratio : float
        Largest allowed ratio between neighbouring targets.

    Returns
    -------
    torch.Tensor
        Graded targets, shape (n_points,).

    Examples
    --------
    >>> edges = torch.tensor([[0, 1], [1, 2]])
    >>> limit_gradation(torch.tensor([1.0, 8.0, 8.0]), edges, max_ratio=2.0)
    tensor([1., 2., 4.])
    """
    if len(edges) == 0:
        return targets

    sources = torch.cat([edges[:, 0], edges[:, 1]])
    destinations = torch.cat([edges[:, 1], edges[:, 0]])

    # Each sweep settles at least one more ring; the graph diameter bounds it
    for _ in range(len(targets)):
        limited = targets.scatter_reduce(
            0,
            destinations,
            max_ratio * targets[sources],
            reduce="amin",
            include_self=True,
        )
        if torch.equal(limited, targets):
            break
        targets = limited
    return targets


def compute_target_lengths(
    mesh: "Mesh",
    config: "RemeshingConfig",
    curvature: torch.Tensor | None = None,
) -> torch.Tensor:
    """Compute the target edge length of every vertex.

    In uniform mode this is ``min_length`` everywhere. In adaptive mode:

    1. Curvature-limited target from the largest principal curvature.
    2. Neighbour smoothing of that target.
    3. ``min`` with :func:`distance_limited_length` around the
       high-resolution anchor.
    4. Gradation limiting.
    5. Clamping to ``[min_length, max_length]``.

    Every step after the first is monotone, so moving the anchor closer to a
    vertex never increases any target.

    Parameters
    ----------
    mesh : Mesh
        Surface snapshot.
    config : RemeshingConfig
        Grading parameters.
    curvature : torch.Tensor, optional
        Precomputed largest principal curvature magnitude per vertex.

    Returns
    -------
    torch.Tensor
        Target per vertex, shape (n_points,), within
        ``[min_length, max_length]``.
    """
    if config.mode == "uniform":
        return torch.full(
            (mesh.n_points,),
            float(config.min_length),
            dtype=mesh.points.dtype,
            device=mesh.points.device,
        )

    if curvature is None:
        curvature = max_abs_curvature_vertices(mesh)

    n_undefined = int((~torch.isfinite(curvature)).sum())
    if n_undefined:
        logger.debug(
            f"{n_undefined} of {mesh.n_points} vertices have undefined curvature; "
            f"using max_length={config.max_length} there"
        )

    targets = curvature_to_edge_length(
        curvature, config.error, config.min_length, config.max_length
    )

    edges = mesh.edges()
    targets = smooth_target_lengths(
        targets, edges, config.smoothing_passes, config.smoothing_strength
    )

    anchors = resolve_anchors(mesh.points, config)
    distance = mesh.point_distances(anchors.high_resolution)
    targets = torch.minimum(
        targets,
        distance_limited_length(
            distance, targets, config.min_length, config.falloff_radius
        ),
    )

    targets = limit_gradation(targets, edges, config.max_neighbor_ratio)
    return targets.clamp(min=config.min_length, max=config.max_length)
