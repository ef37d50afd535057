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

"""Cache helpers for TensorDict-backed mesh data.

Derived quantities (areas, normals, centroids) are stored under the
``"_cache"`` sub-TensorDict so they travel with the mesh but can be told apart
from user-supplied fields and dropped before export.
"""

import torch
from tensordict import TensorDict

CACHE_KEY = "_cache"


def get_cached(data: TensorDict, key: str) -> torch.Tensor | None:
    """Return ``data["_cache", key]``, or None if it has not been computed.

    Parameters
    ----------
    data : TensorDict
        Point or cell data of a mesh.
    key : str
        Name of the cached value (without the ``"_cache"`` prefix).

    Returns
    -------
    torch.Tensor or None
        The cached tensor, if present.
    """
    return data.get((CACHE_KEY, key), None)


def set_cached(data: TensorDict, key: str, value: torch.Tensor) -> None:
    """Store ``value`` under ``data["_cache", key]``, creating the sub-dict if needed."""
    if CACHE_KEY not in data.keys():
        data[CACHE_KEY] = TensorDict({}, batch_size=data.batch_size, device=data.device)
    data[(CACHE_KEY, key)] = value


def without_cache(data: TensorDict) -> TensorDict:
    """Return a shallow copy of ``data`` with the ``"_cache"`` entry removed.

    Examples
    --------
    >>> td = TensorDict({"a": torch.zeros(3)}, batch_size=[3])
    >>> set_cached(td, "b", torch.ones(3))
    >>> sorted(without_cache(td).keys())
    ['a']
    """
    if CACHE_KEY not in data.keys():
        return data.clone(recurse=False)
    return data.exclude(CACHE_KEY)
