# Copyright 2025 Google LLC
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
# ==============================================================================

import re

_UPPERCASE_RE = re.compile(r"([A-Z])")


def to_snake_case(value: str) -> str:
    """
    Converts a camelCase name to snake_case.

    Names that are already snake_case are returned unchanged, e.g.
    `accessToken` -> `access_token`, `app_id` -> `app_id`.
    """
    return _UPPERCASE_RE.sub(r"_\1", value).lower()
