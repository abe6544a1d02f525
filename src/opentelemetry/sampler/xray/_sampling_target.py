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
from logging import getLogger
from typing import Any, List, Mapping

_logger = getLogger(__name__)


@dataclass(frozen=True)
class _SamplingTarget:
    """Remote override of a rule's fixed rate and reservoir quota.

    See https://docs.aws.amazon.com/xray/latest/api/API_SamplingTargetDocument.html
    """

    rule_name: str
    fixed_rate: float | None = None
    interval: int | None = None
    reservoir_quota: int | None = None
    reservoir_quota_ttl: float | None = None

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "_SamplingTarget":
        rule_name = document.get("RuleName")
        if not isinstance(rule_name, str) or not rule_name:
            raise ValueError("sampling target is missing a rule name")
        return cls(
            rule_name=rule_name,
            fixed_rate=document.get("FixedRate"),
            interval=document.get("Interval"),
            reservoir_quota=document.get("ReservoirQuota"),
            reservoir_quota_ttl=document.get("ReservoirQuotaTTL"),
        )


@dataclass(frozen=True)
class _UnprocessedStatistics:
    rule_name: str = ""
    error_code: str = ""
    message: str = ""


@dataclass(frozen=True)
class _SamplingTargetResponse:
    last_rule_modification: float = 0.0
    sampling_target_documents: List[_SamplingTarget] = field(
        default_factory=list
    )
    unprocessed_statistics: List[_UnprocessedStatistics] = field(
        default_factory=list
    )

    @classmethod
    def from_response(
        cls, response: Mapping[str, Any]
    ) -> "_SamplingTargetResponse":
        targets: List[_SamplingTarget] = []
        for document in response.get("SamplingTargetDocuments") or []:
            try:
                targets.append(_SamplingTarget.from_document(document))
            except (AttributeError, ValueError) as err:
                _logger.debug("Skipping invalid sampling target: %s", err)

        unprocessed: List[_UnprocessedStatistics] = []
        for entry in response.get("UnprocessedStatistics") or []:
            if not isinstance(entry, Mapping):
                continue
            unprocessed.append(
                _UnprocessedStatistics(
                    rule_name=entry.get("RuleName") or "",
                    error_code=entry.get("ErrorCode") or "",
                    message=entry.get("Message") or "",
                )
            )

        return cls(
            last_rule_modification=response.get("LastRuleModification")
            or 0.0,
            sampling_target_documents=targets,
            unprocessed_statistics=unprocessed,
        )

    def target_map(self) -> dict[str, _SamplingTarget]:
        return {
            target.rule_name: target
            for target in self.sampling_target_documents
        }
