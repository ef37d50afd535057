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

"""Target edge length field.

The field combines three constraints, each only ever shrinking the target:

1. Curvature and approximation error (:func:`curvature_to_edge_length`).
2. Proximity to the high-resolution anchor (:func:`distance_limited_length`).
3. Bounded gradation between neighbours (:func:`limit_gradation`).
"""

from meshgrading.sizing._anchors import (
    AnchorPoints,
    estimate_anchor,
    explicit_anchor,
    resolve_anchors,
)
from meshgrading.sizing._curvature import curvature_to_edge_length
from meshgrading.sizing._field import (
    compute_target_lengths,
    distance_limited_length,
    limit_gradation,
    smooth_target_lengths,
)
