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

import datetime
from logging import getLogger
from threading import Lock
from typing import Dict, List, Mapping, Optional, Tuple

from opentelemetry.sampler.xray._clock import _Clock
from opentelemetry.sampler.xray._sampling_rule_applier import (
    _SamplingRuleApplier,
)
from opentelemetry.sampler.xray._sampling_target import _SamplingTarget
from opentelemetry.sdk.resources import Resource
from opentelemetry.util.types import Attributes

_logger = getLogger(__name__)

# The cache expires 1 hour after the last successful rules refresh
CACHE_TTL_SECONDS = 3600
DEFAULT_TARGET_POLLING_INTERVAL_SECONDS = 10


class _RuleCache:
    """Ordered collection of rule appliers shared by the samplers and the
    pollers.

    Writers build a new list and publish it under the cache lock. Readers
    never take the lock: they iterate whichever complete list was published
    last.
    """

    def __init__(self, resource: Resource | None, clock: _Clock):
        self.__rule_appliers: List[_SamplingRuleApplier] = []
        self.__resource = resource
        self._clock = clock
        self.__cache_lock = Lock()
        self._last_updated = self._clock.now()

    @property
    def rule_appliers(self) -> List[_SamplingRuleApplier]:
        return self.__rule_appliers

    def expired(self) -> bool:
        return self._clock.now() - self._last_updated > datetime.timedelta(
            seconds=CACHE_TTL_SECONDS
        )

    def get_matched_rule(
        self, attributes: Attributes | None
    ) -> Optional[_SamplingRuleApplier]:
        for applier in self.__rule_appliers:
            if (
                applier.matches(attributes, self.__resource)
                or applier.sampling_rule.is_default
            ):
                return applier
        return None

    def update_rules(self, new_appliers: List[_SamplingRuleApplier]) -> None:
        appliers = list(new_appliers)
        with self.__cache_lock:
            current: Dict[str, _SamplingRuleApplier] = {
                applier.sampling_rule.rule_name: applier
                for applier in self.__rule_appliers
            }
            # Keep the existing applier, with its statistics and target,
            # for every rule whose definition has not changed.
            for index, new_applier in enumerate(appliers):
                old_applier = current.get(new_applier.sampling_rule.rule_name)
                if (
                    old_applier is not None
                    and old_applier.sampling_rule == new_applier.sampling_rule
                ):
                    appliers[index] = old_applier

            appliers.sort(key=lambda applier: applier.sampling_rule.sort_key)
            self.__rule_appliers = appliers
            self._last_updated = self._clock.now()

    def create_sampling_statistics_documents(
        self, client_id: str
    ) -> List[Dict[str, "str | int"]]:
        documents: List[Dict[str, "str | int"]] = []
        for applier in self.__rule_appliers:
            statistics = applier.snapshot_statistics()
            documents.append(
                {
                    "ClientID": client_id,
                    "RuleName": applier.sampling_rule.rule_name,
                    "Timestamp": int(self._clock.now().timestamp()),
                    "RequestCount": statistics.request_count,
                    "BorrowCount": statistics.borrow_count,
                    "SampledCount": statistics.sample_count,
                }
            )
        return documents

    def update_targets(
        self,
        targets: Mapping[str, _SamplingTarget],
        last_rule_modification: float,
    ) -> Tuple[bool, int]:
        """Applies the targets to the appliers of their rules.

        Returns whether the rules changed remotely since the last rules
        refresh, and the interval to wait before the next targets poll.
        """
        min_polling_interval: Optional[int] = None

        with self.__cache_lock:
            appliers: List[_SamplingRuleApplier] = []
            for applier in self.__rule_appliers:
                target = targets.get(applier.sampling_rule.rule_name)
                if target is None:
                    appliers.append(applier)
                    continue
                try:
                    appliers.append(applier.with_target(target))
                except (ArithmeticError, TypeError, ValueError) as err:
                    _logger.error(
                        "Ignoring invalid sampling target for rule %s: %s",
                        target.rule_name,
                        err,
                    )
                    appliers.append(applier)
                    continue
                if target.interval is not None and (
                    min_polling_interval is None
                    or target.interval < min_polling_interval
                ):
                    min_polling_interval = target.interval
            self.__rule_appliers = appliers

            last_updated_millis = self._last_updated.timestamp() * 1000
            refresh_rules = last_rule_modification * 1000 > last_updated_millis

        if min_polling_interval is None:
            min_polling_interval = DEFAULT_TARGET_POLLING_INTERVAL_SECONDS
        return refresh_rules, min_polling_interval
