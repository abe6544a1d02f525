# Copyright The OpenTelemetry Authors
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

# Includes work from:
# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Tuple

DEFAULT_RULE_NAME = "Default"
# Rules missing a priority sort after the default rule (priority 10000)
_DEFAULT_PRIORITY = 10001


@dataclass(frozen=True)
class _SamplingRule:
    """Snapshot of one X-Ray sampling rule definition.

    See https://docs.aws.amazon.com/xray/latest/api/API_SamplingRule.html
    """

    rule_name: str = DEFAULT_RULE_NAME
    rule_arn: str = ""
    priority: int = _DEFAULT_PRIORITY
    reservoir_size: int = 0
    fixed_rate: float = 0.0
    service_name: str = ""
    service_type: str = ""
    host: str = ""
    http_method: str = ""
    url_path: str = ""
    resource_arn: str = ""
    attributes: Mapping[str, str] = field(default_factory=dict, hash=False)
    version: int | None = None

    def __post_init__(self):
        # Attributes are read-only like every other field
        object.__setattr__(
            self, "attributes", MappingProxyType(dict(self.attributes))
        )

    @classmethod
    def from_record(cls, rule: Mapping[str, Any]) -> "_SamplingRule":
        """Builds a rule from the ``SamplingRule`` object of a
        GetSamplingRules response record."""

        def _get(key: str, default: Any) -> Any:
            value = rule.get(key)
            return default if value is None else value

        return cls(
            # RuleName is optional in the X-Ray API docs, but targets could
            # not be matched to a rule without one.
            rule_name=rule.get("RuleName") or DEFAULT_RULE_NAME,
            rule_arn=_get("RuleARN", ""),
            priority=_get("Priority", _DEFAULT_PRIORITY),
            reservoir_size=_get("ReservoirSize", 0),
            fixed_rate=_get("FixedRate", 0.0),
            service_name=_get("ServiceName", ""),
            service_type=_get("ServiceType", ""),
            host=_get("Host", ""),
            http_method=_get("HTTPMethod", ""),
            url_path=_get("URLPath", ""),
            resource_arn=_get("ResourceARN", ""),
            attributes=dict(_get("Attributes", {})),
            version=rule.get("Version"),
        )

    @property
    def sort_key(self) -> Tuple[int, str]:
        # String order example: "A", "Abc", "a", "ab", "abc", "abcdef"
        return (self.priority, self.rule_name)

    @property
    def is_default(self) -> bool:
        return self.rule_name == DEFAULT_RULE_NAME
