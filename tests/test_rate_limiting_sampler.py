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

from opentelemetry.sampler.xray._rate_limiting_sampler import (
    _RateLimitingSampler,
)
from opentelemetry.sdk.trace.sampling import Decision

from ._mock_clock import MockClock


class TestRateLimitingSampler(TestCase):
    def _count_sampled(self, sampler, attempts=100):
        sampled = 0
        for _ in range(attempts):
            if (
                sampler.should_sample(None, 1234, "name").decision
                is not Decision.DROP
            ):
                sampled += 1
        return sampled

    def test_should_sample(self):
        clock = MockClock(datetime.datetime.fromtimestamp(1707551387.0))
        sampler = _RateLimitingSampler(30, clock)

        self.assertEqual(self._count_sampled(sampler), 0)

        clock.add_time(0.5)
        self.assertEqual(self._count_sampled(sampler), 15)

        clock.add_time(1.0)
        self.assertEqual(self._count_sampled(sampler), 30)

        clock.add_time(2.5)
        self.assertEqual(self._count_sampled(sampler), 30)

        clock.add_time(1000)
        self.assertEqual(self._count_sampled(sampler), 30)

    def test_should_sample_with_quota_of_one(self):
        clock = MockClock(datetime.datetime.fromtimestamp(1707551387.0))
        sampler = _RateLimitingSampler(1, clock)

        self.assertEqual(self._count_sampled(sampler), 0)

        clock.add_time(0.5)
        self.assertEqual(self._count_sampled(sampler), 0)

        clock.add_time(0.5)
        self.assertEqual(self._count_sampled(sampler), 1)

        clock.add_time(1000)
        self.assertEqual(self._count_sampled(sampler), 1)

    def test_passes_attributes_through(self):
        clock = MockClock(datetime.datetime.fromtimestamp(1707551387.0))
        sampler = _RateLimitingSampler(1, clock)
        clock.add_time(1)

        result = sampler.should_sample(
            None, 1234, "name", attributes={"foo": "bar"}
        )
        self.assertEqual(result.decision, Decision.RECORD_AND_SAMPLE)
        self.assertEqual(result.attributes["foo"], "bar")

    def test_get_description(self):
        sampler = _RateLimitingSampler(123, MockClock())
        self.assertEqual(
            sampler.get_description(),
            "RateLimitingSampler{rate limiting sampling with sampling config of 123 req/sec and 0% of additional requests}",
        )
