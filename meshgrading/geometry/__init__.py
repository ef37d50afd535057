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

"""Discrete geometry of triangle meshes: corner angles, dual areas, cotangent weights."""

from meshgrading.geometry._angles import (
    compute_corner_angles,
    compute_triangle_angles,
    compute_vertex_angle_sums,
    stable_angle_between_vectors,
)
from meshgrading.geometry.dual_meshes import (
    compute_cotan_weights,
    compute_dual_areas,
)
