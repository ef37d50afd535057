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

"""Discrete curvature of triangle surfaces.

- Gaussian curvature from the angle defect (intrinsic).
- Mean curvature from the cotangent Laplace-Beltrami operator (extrinsic).
- Principal curvatures, and their largest magnitude, from the two above.

All operators return one value per vertex and use NaN where the estimate is
undefined (isolated vertices, and boundary vertices for the extrinsic ones).
"""

from meshgrading.curvature.gaussian import gaussian_curvature_vertices
from meshgrading.curvature.mean import mean_curvature_vertices
from meshgrading.curvature.principal import (
    max_abs_curvature_vertices,
    principal_curvatures,
)
