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

from typing import Sequence

from opentelemetry.context import Context
from opentelemetry.sampler.xray import _matcher
from opentelemetry.sampler.xray._clock import _Clock
from opentelemetry.sampler.xray._rate_limiting_sampler import (
    _RateLimitingSampler,
)
from opentelemetry.sampler.xray._sampling_rule import _SamplingRule
from opentelemetry.sampler.xray._sampling_target import _SamplingTarget
from opentelemetry.sampler.xray._statistics import _SamplingStatistics
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace.sampling import (
    Decision,
    SamplingResult,
    TraceIdRatioBased,
)
from opentelemetry.trace import Link, SpanKind
from opentelemetry.trace.span import TraceState
from opentelemetry.util.types import Attributes


class _SamplingRuleApplier:
    """Makes sampling decisions for the spans matched by one sampling rule.

    Before X-Ray hands out a target for the rule, the applier borrows at most
    one span per second from the reservoir (if the rule has any reservoir at
    all) so X-Ray learns the rule is in use. Once a target is known, the
    reservoir quota and fixed rate come from the target instead.
    """

    def __init__(
        self,
        sampling_rule: _SamplingRule,
        clock: _Clock,
        statistics: _SamplingStatistics | None = None,
        target: _SamplingTarget | None = None,
    ):
        self.sampling_rule = sampling_rule
        self._clock = clock
        self.__statistics = (
            statistics if statistics is not None else _SamplingStatistics()
        )

        self.__fixed_rate_sampler = TraceIdRatioBased(sampling_rule.fixed_rate)
        self.__reservoir_sampler = _RateLimitingSampler(
            1 if sampling_rule.reservoir_size > 0 else 0, clock
        )
        # Borrow until the end of time unless a target says otherwise
        self.__reservoir_expiry = clock.max()
        self.__borrowing = True

        if target is not None:
            self.__apply_target(target)

    @property
    def statistics(self) -> _SamplingStatistics:
        return self.__statistics

    @property
    def borrowing(self) -> bool:
        return self.__borrowing

    @property
    def reservoir_sampler(self) -> _RateLimitingSampler:
        return self.__reservoir_sampler

    @property
    def fixed_rate_sampler(self) -> TraceIdRatioBased:
        return self.__fixed_rate_sampler

    @property
    def reservoir_expiry(self):
        return self.__reservoir_expiry

    def __apply_target(self, target: _SamplingTarget) -> None:
        self.__borrowing = False
        if target.reservoir_quota is not None:
            self.__reservoir_sampler = _RateLimitingSampler(
                target.reservoir_quota, self._clock
            )
        if target.reservoir_quota_ttl is not None:
            self.__reservoir_expiry = self._clock.from_timestamp(
                target.reservoir_quota_ttl
            )
        else:
            # No TTL means the reservoir is already expired
            self.__reservoir_expiry = self._clock.now()
        if target.fixed_rate is not None:
            self.__fixed_rate_sampler = TraceIdRatioBased(target.fixed_rate)

    def with_target(self, target: _SamplingTarget) -> "_SamplingRuleApplier":
        """Returns an applier for the same rule reconfigured by ``target``.

        The statistics object is shared with the new applier so that counting
        continues across target updates.
        """
        return _SamplingRuleApplier(
            self.sampling_rule,
            self._clock,
            statistics=self.__statistics,
            target=target,
        )

    def matches(
        self, attributes: Attributes | None, resource: Resource | None
    ) -> bool:
        rule = self.sampling_rule
        return (
            _matcher.attribute_match(attributes, rule.attributes)
            and _matcher.wildcard_match(
                rule.host, _matcher.get_http_host(attributes)
            )
            and _matcher.wildcard_match(
                rule.http_method, _matcher.get_http_method(attributes)
            )
            and _matcher.wildcard_match(
                rule.service_name, _matcher.get_service_name(resource)
            )
            and _matcher.wildcard_match(
                rule.url_path, _matcher.get_url_path(attributes)
            )
            and _matcher.wildcard_match(
                rule.service_type, _matcher.get_service_type(resource)
            )
            and _matcher.wildcard_match(
                rule.resource_arn,
                _matcher.get_resource_arn(resource, attributes),
            )
        )

    def should_sample(
        self,
        parent_context: Context | None,
        trace_id: int,
        name: str,
        kind: SpanKind | None = None,
        attributes: Attributes | None = None,
        links: Sequence["Link"] | None = None,
        trace_state: TraceState | None = None,
    ) -> "SamplingResult":
        has_borrowed = False
        sampling_result = None

        if self._clock.now() < self.__reservoir_expiry:
            sampling_result = self.__reservoir_sampler.should_sample(
                parent_context,
                trace_id,
                name,
                kind=kind,
                attributes=attributes,
                links=links,
                trace_state=trace_state,
            )
            has_borrowed = (
                self.__borrowing
                and sampling_result.decision is not Decision.DROP
            )

        if sampling_result is None or sampling_result.decision is Decision.DROP:
            sampling_result = self.__fixed_rate_sampler.should_sample(
                parent_context,
                trace_id,
                name,
                kind=kind,
                attributes=attributes,
                links=links,
                trace_state=trace_state,
            )

        self.__statistics.record(
            sampled=sampling_result.decision is not Decision.DROP,
            borrowed=has_borrowed,
        )
        return sampling_result

    def snapshot_statistics(self) -> _SamplingStatistics:
        return self.__statistics.snapshot()
