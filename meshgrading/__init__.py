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

"""Curvature-adaptive mesh grading for HRTF head meshes."""

from meshgrading.config import RemeshingConfig, resolve_gamma
from meshgrading.errors import (
    ConfigurationError,
    InvalidMeshError,
    MeshGradingError,
    MeshIOError,
)
from meshgrading.mesh import Mesh
from meshgrading.remeshing import (
    IterationStats,
    RemeshingStats,
    adaptive_remeshing,
    remesh,
    uniform_remeshing,
)
from meshgrading.surface import RemeshableMesh, SurfaceMesh

__version__ = "0.1.0"
