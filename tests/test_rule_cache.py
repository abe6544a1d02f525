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

import datetime
from unittest import TestCase

from opentelemetry.sampler.xray._rule_cache import (
    CACHE_TTL_SECONDS,
    DEFAULT_TARGET_POLLING_INTERVAL_SECONDS,
    _RuleCache,
)
from opentelemetry.sampler.xray._rule_cache import (
    _logger as rule_cache_logger,
)
from opentelemetry.sampler.xray._sampling_rule import _SamplingRule
from opentelemetry.sampler.xray._sampling_rule_applier import (
    _SamplingRuleApplier,
)
from opentelemetry.sampler.xray._sampling_target import _SamplingTarget
from opentelemetry.sdk.resources import Resource

from ._mock_clock import MockClock

CLIENT_ID = "12345678901234567890abcd"


def _rule(rule_name, priority, **overrides):
    fields = {
        "rule_name": rule_name,
        "priority": priority,
        "reservoir_size": 1,
        "fixed_rate": 0.05,
        "service_name": "*",
        "service_type": "*",
        "host": "*",
        "http_method": "*",
        "url_path": "*",
        "resource_arn": "*",
        "version": 1,
    }
    fields.update(overrides)
    return _SamplingRule(**fields)


class TestRuleCache(TestCase):
    def setUp(self):
        self.clock = MockClock(datetime.datetime.fromtimestamp(1707551387.0))
        self.resource = Resource.get_empty()
        self.cache = _RuleCache(self.resource, self.clock)

    def _appliers(self, *rules):
        return [_SamplingRuleApplier(rule, self.clock) for rule in rules]

    def _rule_names(self):
        return [
            applier.sampling_rule.rule_name
            for applier in self.cache.rule_appliers
        ]

    def test_cache_update_rules_and_sorts_rules(self):
        self.cache.update_rules(
            self._appliers(
                _rule("Default", 10000),
                _rule("abcdef", 200),
                _rule("abc", 100),
                _rule("ab", 100),
                _rule("A", 100),
                _rule("Abc", 100),
                _rule("abcdef", 1),
            )
        )

        self.assertEqual(
            [
                (applier.sampling_rule.priority, applier.sampling_rule.rule_name)
                for applier in self.cache.rule_appliers
            ],
            [
                (1, "abcdef"),
                (100, "A"),
                (100, "Abc"),
                (100, "ab"),
                (100, "abc"),
                (200, "abcdef"),
                (10000, "Default"),
            ],
        )

    def test_update_rules_keeps_unchanged_appliers(self):
        self.cache.update_rules(
            self._appliers(
                _rule("Default", 10000),
                _rule("first", 1),
                _rule("second", 2),
            )
        )
        first, second, default = self.cache.rule_appliers
        first.should_sample(None, 1234, "name")
        second.should_sample(None, 1234, "name")

        self.cache.update_rules(
            self._appliers(
                _rule("second", 2, url_path="/changed"),
                _rule("first", 1),
                _rule("Default", 10000),
            )
        )

        self.assertIs(self.cache.rule_appliers[0], first)
        self.assertIsNot(self.cache.rule_appliers[1], second)
        self.assertIs(self.cache.rule_appliers[2], default)
        self.assertEqual(
            self.cache.rule_appliers[1].sampling_rule.url_path, "/changed"
        )
        self.assertEqual(first.statistics.request_count, 1)
        self.assertEqual(
            self.cache.rule_appliers[1].statistics.request_count, 0
        )

    def test_update_rules_removes_missing_rules(self):
        self.cache.update_rules(
            self._appliers(_rule("Default", 10000), _rule("gone", 1))
        )
        self.cache.update_rules(self._appliers(_rule("Default", 10000)))

        self.assertEqual(self._rule_names(), ["Default"])

    def test_update_rules_copies_input(self):
        appliers = self._appliers(_rule("Default", 10000))
        self.cache.update_rules(appliers)
        appliers.append(_SamplingRuleApplier(_rule("late", 1), self.clock))

        self.assertEqual(self._rule_names(), ["Default"])

    def test_expired(self):
        self.assertFalse(self.cache.expired())

        self.clock.add_time(CACHE_TTL_SECONDS)
        self.assertFalse(self.cache.expired())

        self.clock.add_time(1)
        self.assertTrue(self.cache.expired())

        self.cache.update_rules(self._appliers(_rule("Default", 10000)))
        self.assertFalse(self.cache.expired())

    def test_get_matched_rule(self):
        self.assertIsNone(self.cache.get_matched_rule({}))

        self.cache.update_rules(
            self._appliers(
                _rule("Default", 10000),
                _rule("get_only", 1, http_method="GET"),
            )
        )

        self.assertEqual(
            self.cache.get_matched_rule(
                {"http.request.method": "GET"}
            ).sampling_rule.rule_name,
            "get_only",
        )
        self.assertEqual(
            self.cache.get_matched_rule(
                {"http.request.method": "POST"}
            ).sampling_rule.rule_name,
            "Default",
        )

    def test_default_rule_matches_regardless_of_fields(self):
        self.cache.update_rules(
            self._appliers(_rule("Default", 10000, http_method="PUT"))
        )

        self.assertEqual(
            self.cache.get_matched_rule({}).sampling_rule.rule_name,
            "Default",
        )

    def test_no_match_without_default_rule(self):
        self.cache.update_rules(
            self._appliers(_rule("get_only", 1, http_method="GET"))
        )

        self.assertIsNone(
            self.cache.get_matched_rule({"http.request.method": "POST"})
        )

    def test_update_targets(self):
        self.cache.update_rules(
            self._appliers(
                _rule("Default", 10000),
                _rule("first", 1),
                _rule("second", 2),
            )
        )
        first, second, default = self.cache.rule_appliers

        refresh, interval = self.cache.update_targets(
            {
                "first": _SamplingTarget(
                    rule_name="first", fixed_rate=0.5, interval=25
                ),
                "Default": _SamplingTarget(
                    rule_name="Default", fixed_rate=0.2, interval=15
                ),
                "unknown": _SamplingTarget(
                    rule_name="unknown", fixed_rate=1.0, interval=1
                ),
            },
            0.0,
        )

        self.assertFalse(refresh)
        self.assertEqual(interval, 15)
        self.assertEqual(self._rule_names(), ["first", "second", "Default"])

        updated_first, updated_second, updated_default = (
            self.cache.rule_appliers
        )
        self.assertIsNot(updated_first, first)
        self.assertIs(updated_first.statistics, first.statistics)
        self.assertEqual(updated_first.fixed_rate_sampler.rate, 0.5)
        self.assertIs(updated_second, second)
        self.assertIsNot(updated_default, default)
        self.assertEqual(updated_default.fixed_rate_sampler.rate, 0.2)

    def test_update_targets_default_interval(self):
        self.cache.update_rules(self._appliers(_rule("Default", 10000)))

        _, interval = self.cache.update_targets({}, 0.0)
        self.assertEqual(interval, DEFAULT_TARGET_POLLING_INTERVAL_SECONDS)

        _, interval = self.cache.update_targets(
            {"Default": _SamplingTarget(rule_name="Default", fixed_rate=0.1)},
            0.0,
        )
        self.assertEqual(interval, DEFAULT_TARGET_POLLING_INTERVAL_SECONDS)

    def test_update_targets_signals_rules_refresh(self):
        self.cache.update_rules(self._appliers(_rule("Default", 10000)))
        last_updated = self.clock.now().timestamp()

        refresh, _ = self.cache.update_targets({}, last_updated)
        self.assertFalse(refresh)

        refresh, _ = self.cache.update_targets({}, last_updated + 1)
        self.assertTrue(refresh)

    def test_create_sampling_statistics_documents(self):
        self.cache.update_rules(
            self._appliers(_rule("Default", 10000), _rule("first", 1))
        )
        first, default = self.cache.rule_appliers
        first.statistics.record(sampled=True, borrowed=True)
        first.statistics.record(sampled=False, borrowed=False)
        default.statistics.record(sampled=True, borrowed=False)

        documents = self.cache.create_sampling_statistics_documents(CLIENT_ID)

        self.assertEqual(
            documents,
            [
                {
                    "ClientID": CLIENT_ID,
                    "RuleName": "first",
                    "Timestamp": 1707551387,
                    "RequestCount": 2,
                    "BorrowCount": 1,
                    "SampledCount": 1,
                },
                {
                    "ClientID": CLIENT_ID,
                    "RuleName": "Default",
                    "Timestamp": 1707551387,
                    "RequestCount": 1,
                    "BorrowCount": 0,
                    "SampledCount": 1,
                },
            ],
        )

        documents = self.cache.create_sampling_statistics_documents(CLIENT_ID)
        self.assertEqual(
            [document["RequestCount"] for document in documents], [0, 0]
        )

    def test_invalid_target_keeps_current_applier(self):
        self.cache.update_rules(
            self._appliers(_rule("Default", 10000), _rule("first", 1))
        )
        first, default = self.cache.rule_appliers

        with self.assertLogs(rule_cache_logger, level="ERROR") as logs:
            _, interval = self.cache.update_targets(
                {
                    "first": _SamplingTarget(
                        rule_name="first", fixed_rate=2.0, interval=5
                    ),
                    "Default": _SamplingTarget(
                        rule_name="Default", fixed_rate=0.2, interval=20
                    ),
                },
                0.0,
            )

        self.assertIn("first", logs.output[0])
        self.assertEqual(interval, 20)
        updated_first, updated_default = self.cache.rule_appliers
        self.assertIs(updated_first, first)
        self.assertIsNot(updated_default, default)
        self.assertEqual(updated_default.fixed_rate_sampler.rate, 0.2)
