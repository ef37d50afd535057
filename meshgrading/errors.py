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

"""Exception types raised by meshgrading.

Local operator infeasibility (a split, collapse or flip that would break the
manifold or feature invariants) is never raised: the operation is skipped.
Only conditions detectable before the first mutation, and file I/O failures,
surface as exceptions.
"""


class MeshGradingError(Exception):
    """Base class for all meshgrading errors."""


class ConfigurationError(MeshGradingError, ValueError):
    """Invalid grading parameters (lengths, side selector, mode, anchors)."""


class InvalidMeshError(MeshGradingError, ValueError):
    """Input mesh is empty, not a triangle mesh, or not an oriented 2-manifold."""


class MeshIOError(MeshGradingError, OSError):
    """A mesh could not be read from or written to disk."""
