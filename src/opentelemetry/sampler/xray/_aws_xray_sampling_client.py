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

import json
from logging import getLogger
from typing import Any, Dict, List, Optional

import requests

from opentelemetry.instrumentation.utils import suppress_instrumentation
from opentelemetry.sampler.xray._sampling_rule import _SamplingRule
from opentelemetry.sampler.xray._sampling_target import (
    _SamplingTargetResponse,
)

_logger = getLogger(__name__)

DEFAULT_SAMPLING_PROXY_ENDPOINT = "http://127.0.0.1:2000"
REQUEST_TIMEOUT_SECONDS = 20
_SUPPORTED_RULE_VERSION = 1


class _AwsXRaySamplingClient:
    """Fetches sampling rules and targets from the X-Ray sampling proxy.

    Failures are logged and reported as ``None``; they never raise.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_SAMPLING_PROXY_ENDPOINT,
        log_level: Optional[str] = None,
    ):
        # Override default log level
        if log_level is not None:
            _logger.setLevel(log_level)

        endpoint = endpoint.rstrip("/")
        self.__get_sampling_rules_endpoint = endpoint + "/GetSamplingRules"
        self.__sampling_targets_endpoint = endpoint + "/SamplingTargets"
        self.__session = requests.Session()

    @property
    def sampling_rules_endpoint(self) -> str:
        return self.__get_sampling_rules_endpoint

    @property
    def sampling_targets_endpoint(self) -> str:
        return self.__sampling_targets_endpoint

    def __post(self, url: str, body: Dict[str, Any]) -> Any:
        # The sampler's own requests must never produce spans
        with suppress_instrumentation():
            response = self.__session.post(
                url=url,
                headers={"content-type": "application/json"},
                json=body,
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        response.raise_for_status()
        return response.json()

    def get_sampling_rules(self) -> Optional[List[_SamplingRule]]:
        try:
            response = self.__post(self.__get_sampling_rules_endpoint, {})
        except requests.exceptions.RequestException as req_err:
            _logger.error("Request error occurred: %s", req_err)
            return None
        except json.JSONDecodeError as json_err:
            _logger.error("Error in decoding JSON response: %s", json_err)
            return None

        if (
            not isinstance(response, dict)
            or response.get("SamplingRuleRecords") is None
        ):
            _logger.error(
                "SamplingRuleRecords is missing in GetSamplingRules response: %s",
                response,
            )
            return None

        sampling_rules: List[_SamplingRule] = []
        for record in response["SamplingRuleRecords"]:
            if not isinstance(record, dict) or not isinstance(
                record.get("SamplingRule"), dict
            ):
                _logger.error("SamplingRule is missing in SamplingRuleRecord")
                continue
            try:
                rule = _SamplingRule.from_record(record["SamplingRule"])
            except (TypeError, ValueError) as err:
                _logger.error("Invalid SamplingRule: %s", err)
                continue
            if rule.version not in (None, _SUPPORTED_RULE_VERSION):
                _logger.debug(
                    "Sampling rule with version %s is not supported: RuleName: %s",
                    rule.version,
                    rule.rule_name,
                )
                continue
            sampling_rules.append(rule)
        return sampling_rules

    def get_sampling_targets(
        self, statistics_documents: List[Dict[str, "str | int"]]
    ) -> Optional[_SamplingTargetResponse]:
        try:
            response = self.__post(
                self.__sampling_targets_endpoint,
                {"SamplingStatisticsDocuments": statistics_documents},
            )
        except requests.exceptions.RequestException as req_err:
            _logger.debug("Request error occurred: %s", req_err)
            return None
        except json.JSONDecodeError as json_err:
            _logger.debug("Error in decoding JSON response: %s", json_err)
            return None

        if (
            not isinstance(response, dict)
            or response.get("SamplingTargetDocuments") is None
        ):
            _logger.debug(
                "SamplingTargetDocuments is missing in SamplingTargets response: %s",
                response,
            )
            return None

        targets_response = _SamplingTargetResponse.from_response(response)
        for unprocessed in targets_response.unprocessed_statistics:
            _logger.debug(
                "X-Ray could not process statistics for rule %s: %s %s",
                unprocessed.rule_name,
                unprocessed.error_code,
                unprocessed.message,
            )
        return targets_response
