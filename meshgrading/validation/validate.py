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

"""Mesh validation to detect topological errors and degenerate triangles.

Remeshing requires an oriented 2-manifold (with or without boundary). The
checks here report every violation; :func:`validate_remeshing_input` turns
them into an :class:`~meshgrading.errors.InvalidMeshError`.
"""

import warnings
from collections.abc import Mapping
from typing import TYPE_CHECKING

import torch

from meshgrading.errors import InvalidMeshError
from meshgrading.utilities._tolerances import degenerate_area_ratio
from meshgrading.utilities._topology import count_edge_cells

if TYPE_CHECKING:
    from meshgrading.mesh import Mesh


def _count_components(link: list[tuple[int, int]]) -> int:
    """Number of connected components of a graph given by its edges."""
    parent: dict[int, int] = {}

    def find(x: int) -> int:
        while parent.setdefault(x, x) != x:
            parent[x] = parent[parent[x]]
            x = parent[x]
        return x

    for p, q in link:
        parent[find(p)] = find(q)
    return len({find(x) for x in parent})


def _find_non_manifold_vertices(cells: torch.Tensor) -> torch.Tensor:
    """Vertices whose incident triangles do not form a single edge-connected fan."""
    links: dict[int, list[tuple[int, int]]] = {}
    for a, b, c in cells.tolist():
        links.setdefault(a, []).append((b, c))
        links.setdefault(b, []).append((c, a))
        links.setdefault(c, []).append((a, b))

    bad = [v for v, link in links.items() if _count_components(link) > 1]
    return torch.tensor(sorted(bad), dtype=torch.long, device=cells.device)


def validate_mesh(
    mesh: "Mesh",
    check_out_of_bounds: bool = True,
    check_degenerate_cells: bool = True,
    check_duplicate_cells: bool = True,
    check_manifoldness: bool = True,
    check_orientation: bool = True,
    raise_on_error: bool = False,
) -> Mapping[str, bool | int | torch.Tensor]:
    """Validate mesh integrity.

    Parameters
    ----------
    mesh : Mesh
        Triangle mesh to validate.
    check_out_of_bounds : bool
        Check that cell indices refer to existing points.
    check_degenerate_cells : bool
        Check for triangles whose area is negligible compared to their
        longest edge squared.
    check_duplicate_cells : bool
        Check for triangles over the same three vertices.
    check_manifoldness : bool
        Check that every edge has at most two triangles and that the
        triangles around every vertex form a single fan.
    check_orientation : bool
        Check that neighbouring triangles traverse their shared edge in
        opposite directions.
    raise_on_error : bool
        If True, raise on the first failed check. If False, return all
        results.

    Returns
    -------
    Mapping[str, bool | int | torch.Tensor]
        Dictionary with validation results:
            - "valid": bool, True if all enabled checks passed
            - "n_out_of_bounds_cells", "out_of_bounds_cell_indices"
            - "n_degenerate_cells", "degenerate_cell_indices"
            - "n_duplicate_cells", "duplicate_cell_indices"
            - "non_manifold_edges", "non_manifold_vertices"
            - "is_manifold": bool
            - "n_inconsistent_edges": int, edges traversed twice in the same
              direction
            - "is_consistently_oriented": bool

    Raises
    ------
    InvalidMeshError
        If ``raise_on_error=True`` and validation fails.

    Examples
    --------
    >>> from meshgrading.primitives.surfaces import sphere_icosahedral
    >>> report = validate_mesh(sphere_icosahedral.load(subdivisions=1))
    >>> assert report["valid"] == True
    """
    results = {"valid": True}

    ### Check for out-of-bounds indices FIRST (before any geometric computations)
    if check_out_of_bounds:
        out_of_bounds_cells = torch.any(
            (mesh.cells < 0) | (mesh.cells >= mesh.n_points), dim=1
        )
        n_out_of_bounds = int(out_of_bounds_cells.sum())
        results["n_out_of_bounds_cells"] = n_out_of_bounds
        if n_out_of_bounds > 0:
            results["valid"] = False
            results["out_of_bounds_cell_indices"] = torch.where(out_of_bounds_cells)[0]
            if raise_on_error:
                raise InvalidMeshError(
                    f"Found {n_out_of_bounds} cells with out-of-bounds indices.\n"
                    f"Cell indices must be in range [0, {mesh.n_points}).\n"
                    f"Problem cells: {results['out_of_bounds_cell_indices'].tolist()[:10]}"
                )
            # Remaining checks index points by cell
            return results

    ### Check for degenerate cells
    if check_degenerate_cells:
        tri = mesh.points[mesh.cells]
        longest_sq = (tri - tri.roll(1, dims=1)).pow(2).sum(-1).amax(dim=-1)
        ratio = degenerate_area_ratio(mesh.points.dtype)
        degenerate = (mesh.cell_areas < ratio * longest_sq) | (longest_sq == 0)
        n_degenerate = int(degenerate.sum())
        results["n_degenerate_cells"] = n_degenerate
        if n_degenerate > 0:
            results["valid"] = False
            results["degenerate_cell_indices"] = torch.where(degenerate)[0]
            if raise_on_error:
                raise InvalidMeshError(
                    f"Found {n_degenerate} degenerate cells.\n"
                    f"Problem cells: {results['degenerate_cell_indices'].tolist()[:10]}"
                )

    ### Check for duplicate cells
    if check_duplicate_cells and mesh.n_cells > 0:
        sorted_cells = torch.sort(mesh.cells, dim=1).values
        _, inverse, counts = torch.unique(
            sorted_cells, dim=0, return_inverse=True, return_counts=True
        )
        duplicate = counts[inverse] > 1
        n_duplicate = int(duplicate.sum())
        results["n_duplicate_cells"] = n_duplicate
        if n_duplicate > 0:
            results["valid"] = False
            results["duplicate_cell_indices"] = torch.where(duplicate)[0]
            if raise_on_error:
                raise InvalidMeshError(
                    f"Found {n_duplicate} cells sharing their vertices with another cell.\n"
                    f"Problem cells: {results['duplicate_cell_indices'].tolist()[:10]}"
                )
    elif check_duplicate_cells:
        results["n_duplicate_cells"] = 0

    ### Check manifoldness
    if check_manifoldness:
        unique_edges, counts = count_edge_cells(mesh)
        non_manifold_edges = unique_edges[counts > 2]
        non_manifold_vertices = _find_non_manifold_vertices(mesh.cells)
        results["non_manifold_edges"] = non_manifold_edges
        results["non_manifold_vertices"] = non_manifold_vertices
        results["is_manifold"] = (
            len(non_manifold_edges) == 0 and len(non_manifold_vertices) == 0
        )
        if not results["is_manifold"]:
            results["valid"] = False
            if raise_on_error:
                raise InvalidMeshError(
                    f"Mesh is not a 2-manifold: found {len(non_manifold_edges)} edges "
                    f"shared by more than 2 cells and {len(non_manifold_vertices)} "
                    f"vertices whose cells do not form a single fan.\n"
                    f"Problem edges: {non_manifold_edges.tolist()[:10]}\n"
                    f"Problem vertices: {non_manifold_vertices.tolist()[:10]}"
                )

    ### Check orientation consistency
    if check_orientation:
        directed = mesh.cells[:, [0, 1, 1, 2, 2, 0]].reshape(-1, 2)
        if len(directed) > 0:
            _, counts = torch.unique(directed, dim=0, return_counts=True)
            n_inconsistent = int((counts > 1).sum())
        else:
            n_inconsistent = 0
        results["n_inconsistent_edges"] = n_inconsistent
        results["is_consistently_oriented"] = n_inconsistent == 0
        if n_inconsistent > 0:
            results["valid"] = False
            if raise_on_error:
                raise InvalidMeshError(
                    f"Mesh is not consistently oriented: {n_inconsistent} edges are "
                    f"traversed in the same direction by two cells."
                )

    return results


def validate_remeshing_input(mesh: "Mesh") -> Mapping[str, bool | int | torch.Tensor]:
    """Check that a mesh can be remeshed in place.

    Topological problems are errors; degenerate triangles only produce a
    warning.

    Parameters
    ----------
    mesh : Mesh
        Snapshot of the surface to be remeshed.

    Raises
    ------
    InvalidMeshError
        If the mesh has no triangles, or is not a consistently oriented
        2-manifold.

    Returns
    -------
    Mapping[str, bool | int | torch.Tensor]
        The topology report of :func:`validate_mesh`.
    """
    if mesh.n_cells == 0:
        raise InvalidMeshError(
            f"Cannot remesh an empty surface ({mesh.n_points=}, {mesh.n_cells=})."
        )

    report = validate_mesh(
        mesh,
        check_degenerate_cells=False,
        check_duplicate_cells=True,
        check_manifoldness=True,
        check_orientation=True,
        raise_on_error=True,
    )

    degenerate = validate_mesh(
        mesh,
        check_out_of_bounds=False,
        check_degenerate_cells=True,
        check_duplicate_cells=False,
        check_manifoldness=False,
        check_orientation=False,
    )["n_degenerate_cells"]
    if degenerate > 0:
        warnings.warn(
            f"Input mesh has {degenerate} degenerate triangles; they are kept "
            f"unless a collapse removes them.",
            stacklevel=3,
        )
    return report
