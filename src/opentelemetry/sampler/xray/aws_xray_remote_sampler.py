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

import random
from logging import getLogger
from typing import List, Optional, Sequence

from typing_extensions import override

from opentelemetry.context import Context
from opentelemetry.sampler.xray._aws_xray_sampling_client import (
    DEFAULT_SAMPLING_PROXY_ENDPOINT,
    _AwsXRaySamplingClient,
)
from opentelemetry.sampler.xray._clock import _Clock
from opentelemetry.sampler.xray._fallback_sampler import _FallbackSampler
from opentelemetry.sampler.xray._rule_cache import (
    DEFAULT_TARGET_POLLING_INTERVAL_SECONDS,
    _RuleCache,
)
from opentelemetry.sampler.xray._sampling_rule_applier import (
    _SamplingRuleApplier,
)
from opentelemetry.sampler.xray._scheduled_task import _ScheduledTask
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace.sampling import (
    ParentBased,
    Sampler,
    SamplingResult,
)
from opentelemetry.trace import Link, SpanKind
from opentelemetry.trace.span import TraceState
from opentelemetry.util.types import Attributes

_logger = getLogger(__name__)

DEFAULT_RULES_POLLING_INTERVAL_SECONDS = 300
MIN_RULES_POLLING_INTERVAL_SECONDS = 10
RULES_POLLING_MAX_JITTER_SECONDS = 5.0
TARGET_POLLING_MAX_JITTER_SECONDS = 0.1


def _generate_client_id() -> str:
    return "".join(random.choices("0123456789abcdef", k=24))


class AwsXRayRemoteSampler(Sampler):
    """Remote sampler that gets its sampling rules and targets from AWS X-Ray.

    The parent span's sampling decision is respected. Only spans without a
    parent go through the X-Ray sampling rules.

    Args:
        resource: OpenTelemetry Resource, used to match sampling rules
        endpoint: X-Ray sampling proxy endpoint (Optional)
        polling_interval: Seconds between sampling rule polls, at least 10 (Optional)
        log_level: Log level override for the remote sampler (Optional)
    """

    def __init__(
        self,
        resource: Optional[Resource],
        endpoint: Optional[str] = None,
        polling_interval: Optional[int] = None,
        log_level: Optional[str] = None,
    ):
        self._internal_sampler = _InternalAwsXRayRemoteSampler(
            resource=resource,
            endpoint=endpoint,
            polling_interval=polling_interval,
            log_level=log_level,
        )
        self._root = ParentBased(self._internal_sampler)

    @override
    def should_sample(
        self,
        parent_context: Optional["Context"],
        trace_id: int,
        name: str,
        kind: Optional[SpanKind] = None,
        attributes: Optional[Attributes] = None,
        links: Optional[Sequence["Link"]] = None,
        trace_state: Optional["TraceState"] = None,
    ) -> "SamplingResult":
        return self._root.should_sample(
            parent_context,
            trace_id,
            name,
            kind=kind,
            attributes=attributes,
            links=links,
            trace_state=trace_state,
        )

    @override
    def get_description(self) -> str:
        return f"AwsXRayRemoteSampler{{root:{self._root.get_description()}}}"

    def shutdown(self) -> None:
        self._internal_sampler.shutdown()


class _InternalAwsXRayRemoteSampler(Sampler):
    """Core X-Ray sampling logic, applied to every span regardless of its
    parent. Use the parent-based ``AwsXRayRemoteSampler`` instead.

    Two background tasks keep the rule cache current: the rules poll runs
    right away and then every ``polling_interval`` seconds, and the targets
    poll reports sampling statistics and applies the returned targets at the
    interval X-Ray asks for.
    """

    def __init__(
        self,
        resource: Optional[Resource],
        endpoint: Optional[str] = None,
        polling_interval: Optional[int] = None,
        log_level: Optional[str] = None,
    ):
        # Override default log level
        if log_level is not None:
            _logger.setLevel(log_level)

        if endpoint is None:
            _logger.info(
                "`endpoint` is `None`. Defaulting to %s",
                DEFAULT_SAMPLING_PROXY_ENDPOINT,
            )
            endpoint = DEFAULT_SAMPLING_PROXY_ENDPOINT
        if (
            polling_interval is None
            or polling_interval < MIN_RULES_POLLING_INTERVAL_SECONDS
        ):
            _logger.info(
                "`polling_interval` is `None` or too small. Defaulting to %s",
                DEFAULT_RULES_POLLING_INTERVAL_SECONDS,
            )
            polling_interval = DEFAULT_RULES_POLLING_INTERVAL_SECONDS
        if resource is None:
            _logger.warning(
                "OTel Resource provided is `None`. Defaulting to empty resource"
            )
            resource = Resource.get_empty()

        self._endpoint = endpoint
        self._polling_interval = polling_interval
        self._resource = resource
        self._client_id = _generate_client_id()
        self._clock = _Clock()
        self._xray_client = _AwsXRaySamplingClient(
            endpoint, log_level=log_level
        )
        self._fallback_sampler = _FallbackSampler(self._clock)
        self._rule_cache = _RuleCache(resource, self._clock)

        self._rules_polling_jitter = random.uniform(
            0.0, RULES_POLLING_MAX_JITTER_SECONDS
        )
        self._target_polling_interval = DEFAULT_TARGET_POLLING_INTERVAL_SECONDS
        self._target_polling_jitter = random.uniform(
            0.0, TARGET_POLLING_MAX_JITTER_SECONDS
        )

        self._rules_task = _ScheduledTask(
            "xray-sampling-rules-poller",
            self._poll_sampling_rules,
            lambda: self._polling_interval + self._rules_polling_jitter,
        )
        self._targets_task = _ScheduledTask(
            "xray-sampling-targets-poller",
            self._poll_sampling_targets,
            lambda: self._target_polling_interval
            + self._target_polling_jitter,
        )
        self._rules_task.start(delay=0)
        self._targets_task.start()

    @override
    def should_sample(
        self,
        parent_context: Optional["Context"],
        trace_id: int,
        name: str,
        kind: Optional[SpanKind] = None,
        attributes: Optional[Attributes] = None,
        links: Optional[Sequence["Link"]] = None,
        trace_state: Optional["TraceState"] = None,
    ) -> "SamplingResult":
        sampler: Sampler = self._fallback_sampler
        if self._rule_cache.expired():
            _logger.debug(
                "Rule cache is expired so using fallback sampling strategy"
            )
        else:
            matched_rule = self._rule_cache.get_matched_rule(attributes)
            if matched_rule is not None:
                sampler = matched_rule
            else:
                _logger.debug(
                    "Using fallback sampler as no rule match was found. "
                    "This is likely due to a bug, since default rule should always match"
                )

        return sampler.should_sample(
            parent_context,
            trace_id,
            name,
            kind=kind,
            attributes=attributes,
            links=links,
            trace_state=trace_state,
        )

    @override
    def get_description(self) -> str:
        return "_InternalAwsXRayRemoteSampler{remote sampling with AWS X-Ray}"

    def shutdown(self) -> None:
        self._rules_task.cancel()
        self._targets_task.cancel()

    def _poll_sampling_rules(self) -> None:
        sampling_rules = self._xray_client.get_sampling_rules()
        if sampling_rules is None:
            return
        sampling_rule_appliers: List[_SamplingRuleApplier] = []
        for sampling_rule in sampling_rules:
            try:
                sampling_rule_appliers.append(
                    _SamplingRuleApplier(sampling_rule, self._clock)
                )
            except (TypeError, ValueError) as err:
                _logger.error(
                    "Skipping invalid sampling rule %s: %s",
                    sampling_rule.rule_name,
                    err,
                )
        self._rule_cache.update_rules(sampling_rule_appliers)

    def _poll_sampling_targets(self) -> None:
        statistics_documents = (
            self._rule_cache.create_sampling_statistics_documents(
                self._client_id
            )
        )
        targets_response = self._xray_client.get_sampling_targets(
            statistics_documents
        )
        if targets_response is None:
            return

        refresh_rules, next_polling_interval = self._rule_cache.update_targets(
            targets_response.target_map(),
            targets_response.last_rule_modification,
        )
        self._target_polling_interval = next_polling_interval

        if refresh_rules:
            _logger.debug(
                "Performing out-of-band sampling rule polling to fetch updated rules."
            )
            self._rules_task.restart()
