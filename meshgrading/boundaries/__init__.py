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

"""Boundary detection and feature classification for triangle surfaces.

This module provides:
1. Vectorized boundary detection on :class:`~meshgrading.mesh.Mesh` snapshots
2. Sharp (dihedral angle) edge detection
3. The :class:`FeatureSet` classification the remeshing operators consult
"""

from meshgrading.boundaries._detection import (
    get_boundary_edges,
    get_boundary_vertices,
)
from meshgrading.boundaries._features import (
    FeatureSet,
    classify_features,
    detect_sharp_edges,
)
