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

"""Iterative remeshing driver."""

import logging
from typing import TYPE_CHECKING, Any

import torch

from meshgrading.boundaries import classify_features
from meshgrading.config import RemeshingConfig
from meshgrading.curvature import max_abs_curvature_vertices
from meshgrading.remeshing._collapse import collapse_short_edges
from meshgrading.remeshing._flip import equalize_valences
from meshgrading.remeshing._projection import ReferenceSurface
from meshgrading.remeshing._relax import relax_vertices
from meshgrading.remeshing._split import split_long_edges
from meshgrading.remeshing._stats import IterationStats, RemeshingStats
from meshgrading.sizing import compute_target_lengths
from meshgrading.validation import validate_remeshing_input

if TYPE_CHECKING:
    from meshgrading.surface import RemeshableMesh

logger = logging.getLogger(__name__)

TARGET_LENGTH = "target_length"
CURVATURE = "curvature"


def _assign_targets(surface: "RemeshableMesh", config: RemeshingConfig) -> None:
    """Store target lengths (and curvature, in adaptive mode) as vertex attributes."""
    mesh, vertex_ids = surface.to_mesh()
    n_slots = surface.points.shape[0]

    curvature = None
    if config.mode == "adaptive":
        curvature = max_abs_curvature_vertices(mesh)
        values = torch.zeros(n_slots, dtype=surface.dtype, device=surface.device)
        values[vertex_ids] = torch.nan_to_num(curvature, nan=0.0, posinf=0.0)
        surface.add_vertex_attribute(CURVATURE, values)

    targets = compute_target_lengths(mesh, config, curvature=curvature)
    values = torch.full(
        (n_slots,), float(config.max_length), dtype=surface.dtype, device=surface.device
    )
    values[vertex_ids] = targets.to(surface.dtype)
    surface.add_vertex_attribute(TARGET_LENGTH, values)

    logger.debug(
        f"Target lengths in [{float(targets.min()):.4g}, {float(targets.max()):.4g}], "
        f"mean {float(targets.mean()):.4g}"
    )


def remesh(surface: "RemeshableMesh", config: RemeshingConfig) -> RemeshingStats:
    """Remesh a surface in place.

    Each of the ``config.iterations`` cycles runs, in order:

    1. :func:`~meshgrading.remeshing.split_long_edges`
    2. :func:`~meshgrading.remeshing.collapse_short_edges`
    3. :func:`~meshgrading.remeshing.equalize_valences`
    4. :func:`~meshgrading.remeshing.relax_vertices`

    Boundary and feature edges are classified once, before the first cycle.
    Target lengths are computed once from the input and carried along by
    splits. Afterwards storage is compacted, so vertex ids are renumbered.

    Parameters
    ----------
    surface : RemeshableMesh
        Surface to remesh. Held exclusively for the whole call.
    config : RemeshingConfig
        Grading parameters.

    Returns
    -------
    RemeshingStats
        Element counts before and after, and per-cycle operator counts.

    Raises
    ------
    InvalidMeshError
        If the surface is empty, not a 2-manifold, or inconsistently
        oriented. Raised before anything is modified.
    RuntimeError
        If the surface is already being remeshed.

    Examples
    --------
    >>> from meshgrading.primitives.planar import unit_square
    >>> from meshgrading.surface import SurfaceMesh
    >>> surface = SurfaceMesh.from_mesh(unit_square.load())
    >>> config = RemeshingConfig(min_length=0.1, max_length=0.5, mode="uniform")
    >>> stats = remesh(surface, config)
    >>> stats.n_faces_after > stats.n_faces_before
    True
    """
    with surface.exclusive_access():
        mesh, _ = surface.to_mesh()
        validate_remeshing_input(mesh)

        stats = RemeshingStats(
            n_vertices_before=surface.n_vertices,
            n_edges_before=surface.n_edges,
            n_faces_before=surface.n_faces,
        )
        logger.info(
            f"Remeshing {stats.n_faces_before} faces in {config.mode} mode "
            f"(min_length={config.min_length}, max_length={config.max_length}, "
            f"error={config.error}, iterations={config.iterations}, side={config.side})"
        )

        features = classify_features(surface, config.feature_angle)
        reference = ReferenceSurface.from_mesh(mesh) if config.use_projection else None
        _assign_targets(surface, config)

        try:
            for iteration in range(config.iterations):
                splits = split_long_edges(surface, features)
                collapses = collapse_short_edges(
                    surface, features, config.max_normal_deviation
                )
                flips = equalize_valences(
                    surface, features, max_normal_deviation=config.max_normal_deviation
                )
                displacement = relax_vertices(
                    surface,
                    features,
                    reference,
                    steps=config.relax_steps,
                    max_normal_deviation=config.max_normal_deviation,
                )

                iteration_stats = IterationStats(splits, collapses, flips, displacement)
                stats.iterations.append(iteration_stats)
                logger.debug(
                    f"Iteration {iteration + 1}/{config.iterations}: {splits} splits, "
                    f"{collapses} collapses, {flips} flips, "
                    f"mean displacement {displacement:.4g}, {surface.n_faces} faces"
                )

                if config.stop_when_converged and not iteration_stats.changed_topology:
                    logger.debug(f"Converged after {iteration + 1} iterations")
                    break
        finally:
            surface.remove_vertex_attribute(TARGET_LENGTH)
            surface.remove_vertex_attribute(CURVATURE)

        surface.garbage_collection()
        stats.n_vertices_after = surface.n_vertices
        stats.n_edges_after = surface.n_edges
        stats.n_faces_after = surface.n_faces
        logger.info(
            f"Faces before remeshing: {stats.n_faces_before}, "
            f"after: {stats.n_faces_after}"
        )
    return stats


def adaptive_remeshing(
    surface: "RemeshableMesh",
    min_length: float,
    max_length: float,
    max_error: float | None = None,
    iterations: int = 10,
    use_projection: bool = True,
    side: str = "left",
    left_anchor: Any = None,
    right_anchor: Any = None,
    gamma_left: float | None = None,
    gamma_right: float | None = None,
    **kwargs: Any,
) -> RemeshingStats:
    """Curvature- and anchor-graded remeshing.

    Builds a :class:`~meshgrading.config.RemeshingConfig` in adaptive mode
    and calls :func:`remesh`. Extra keyword arguments are passed to the
    config.

    Raises
    ------
    ConfigurationError
        If the parameters are invalid.
    """
    config = RemeshingConfig(
        min_length=min_length,
        max_length=max_length,
        max_error=max_error,
        iterations=iterations,
        mode="adaptive",
        side=side,
        left_anchor=left_anchor,
        right_anchor=right_anchor,
        gamma_left=gamma_left,
        gamma_right=gamma_right,
        use_projection=use_projection,
        **kwargs,
    )
    return remesh(surface, config)


def uniform_remeshing(
    surface: "RemeshableMesh",
    target_length: float,
    iterations: int = 10,
    use_projection: bool = True,
    **kwargs: Any,
) -> RemeshingStats:
    """Remesh towards a single global edge length.

    Examples
    --------
    >>> from meshgrading.primitives.surfaces import icosahedron_surface
    >>> from meshgrading.surface import SurfaceMesh
    >>> surface = SurfaceMesh.from_mesh(icosahedron_surface.load())
    >>> stats = uniform_remeshing(surface, icosahedron_surface.edge_length())
    >>> stats.total_splits, stats.total_collapses, surface.n_faces
    (0, 0, 20)
    """
    config = RemeshingConfig(
        min_length=target_length,
        max_length=target_length,
        iterations=iterations,
        mode="uniform",
        use_projection=use_projection,
        **kwargs,
    )
    return remesh(surface, config)
