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

"""Conversion between :class:`~meshgrading.mesh.Mesh` and PyVista, and file I/O.

PyVista is imported lazily so that the rest of the package works without it.
"""

import importlib
import logging
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import torch

from meshgrading.errors import MeshIOError
from meshgrading.mesh import Mesh

if TYPE_CHECKING:
    import pyvista

logger = logging.getLogger(__name__)


def _import_pyvista():
    try:
        return importlib.import_module("pyvista")
    except ImportError as e:
        raise ImportError(
            "Mesh file I/O requires pyvista; install it with "
            "`pip install meshgrading[pyvista]`."
        ) from e


def _to_point_data(arrays, n_points: int) -> dict[str, torch.Tensor]:
    """Numeric per-point arrays of a PyVista dataset as tensors."""
    point_data = {}
    for name in arrays.keys():
        arr = np.asarray(arrays[name])
        if arr.dtype.kind not in "biuf" or arr.ndim == 0 or arr.shape[0] != n_points:
            logger.debug(f"Skipping point array {name!r} with {arr.dtype=}, {arr.shape=}")
            continue
        point_data[str(name)] = torch.from_numpy(arr.copy())
    return point_data


def from_pyvista(
    pyvista_mesh: "pyvista.DataSet",
    dtype: torch.dtype = torch.float32,
) -> Mesh:
    """Convert a PyVista surface to a triangle :class:`Mesh`.

    Non-triangular faces are triangulated; volume datasets are reduced to
    their outer surface.

    Parameters
    ----------
    pyvista_mesh : pyvista.DataSet
        Input PyVista mesh, typically ``pyvista.PolyData``.
    dtype : torch.dtype
        Floating-point dtype of the resulting points.

    Returns
    -------
    Mesh
        Triangle mesh with numeric point arrays as point data (on CPU).

    Raises
    ------
    ImportError
        If pyvista is not installed.
    """
    pv = _import_pyvista()

    ### Reduce to a triangulated surface
    if not isinstance(pyvista_mesh, pv.PolyData):
        pyvista_mesh = pyvista_mesh.extract_surface()
    if pyvista_mesh.n_faces_strict > 0 and not pyvista_mesh.is_all_triangles:
        pyvista_mesh = pyvista_mesh.triangulate()

    ### Extract and convert geometry
    points = torch.from_numpy(np.asarray(pyvista_mesh.points)).to(dtype)
    if pyvista_mesh.n_faces_strict > 0:
        cells = torch.from_numpy(np.asarray(pyvista_mesh.regular_faces)).long()
    else:
        cells = torch.empty((0, 3), dtype=torch.long)

    return Mesh(
        points=points,
        cells=cells,
        point_data=_to_point_data(pyvista_mesh.point_data, len(points)),
    )


def to_pyvista(mesh: Mesh) -> "pyvista.PolyData":
    """Convert a triangle :class:`Mesh` to ``pyvista.PolyData``.

    Cached derived quantities are not exported; other point and cell data
    are, with high-rank arrays flattened for VTK compatibility.

    Raises
    ------
    ImportError
        If pyvista is not installed.
    """
    pv = _import_pyvista()
    mesh = mesh.strip_caches()

    points_np = mesh.points.detach().cpu().numpy()
    cells_np = mesh.cells.cpu().numpy()
    if mesh.n_cells == 0:
        pv_mesh = pv.PolyData(points_np)
    else:
        # PyVista padded format: [3, v0, v1, v2, 3, v0, v1, v2, ...]
        faces_array = np.column_stack(
            [np.full(len(cells_np), 3, dtype=np.int64), cells_np]
        ).ravel()
        pv_mesh = pv.PolyData(points_np, faces=faces_array)

    for k, v in mesh.point_data.items(include_nested=True, leaves_only=True):
        arr = v.detach().cpu().numpy()
        pv_mesh.point_data[str(k)] = (
            arr.reshape(arr.shape[0], -1) if arr.ndim > 2 else arr
        )
    for k, v in mesh.cell_data.items(include_nested=True, leaves_only=True):
        arr = v.detach().cpu().numpy()
        pv_mesh.cell_data[str(k)] = (
            arr.reshape(arr.shape[0], -1) if arr.ndim > 2 else arr
        )

    return pv_mesh


def read_mesh(path: str | Path, dtype: torch.dtype = torch.float32) -> Mesh:
    """Read a triangle surface from any format PyVista can read (PLY, STL, OBJ, VTK, ...).

    Raises
    ------
    MeshIOError
        If the file does not exist or cannot be parsed.
    """
    pv = _import_pyvista()
    try:
        pyvista_mesh = pv.read(str(path))
    except (OSError, ValueError) as e:
        raise MeshIOError(f"Failed to read mesh: {path}: {e}") from e
    if pyvista_mesh is None:
        raise MeshIOError(f"Failed to read mesh: {path}: no data")
    return from_pyvista(pyvista_mesh, dtype=dtype)


def write_mesh(mesh: Mesh, path: str | Path, binary: bool = False) -> None:
    """Write a triangle surface; the format follows the file extension.

    Parameters
    ----------
    mesh : Mesh
        Mesh to write.
    path : str or Path
        Output file.
    binary : bool
        Write binary instead of ASCII data, where the format supports both.

    Raises
    ------
    MeshIOError
        If the file cannot be written.
    """
    pv_mesh = to_pyvista(mesh)
    try:
        pv_mesh.save(str(path), binary=binary)
    except (OSError, ValueError) as e:
        raise MeshIOError(f"Failed to write mesh: {path}: {e}") from e
