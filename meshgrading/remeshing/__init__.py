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

"""Isotropic and graded remeshing of triangle surfaces.

The remeshing loop alternates four local operators, each a full pass over
the surface:

- :func:`split_long_edges` and :func:`collapse_short_edges` bring edge
  lengths into ``[4/5, 4/3]`` of the local target;
- :func:`equalize_valences` flips edges towards valence 6 (4 on the
  boundary);
- :func:`relax_vertices` smooths vertex positions tangentially and projects
  them back onto the input surface.

:func:`remesh` runs the loop for a :class:`~meshgrading.config.RemeshingConfig`;
:func:`adaptive_remeshing` and :func:`uniform_remeshing` are shortcuts.
"""

from meshgrading.remeshing._collapse import collapse_short_edges
from meshgrading.remeshing._flip import equalize_valences
from meshgrading.remeshing._projection import (
    ReferenceSurface,
    closest_point_on_triangles,
)
from meshgrading.remeshing._relax import relax_vertices
from meshgrading.remeshing._remeshing import (
    adaptive_remeshing,
    remesh,
    uniform_remeshing,
)
from meshgrading.remeshing._split import split_long_edges
from meshgrading.remeshing._stats import IterationStats, RemeshingStats
