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

from decimal import Decimal
from threading import Lock

from opentelemetry.sampler.xray._clock import _Clock


class _RateLimiter:
    """Token bucket measured in elapsed wall-clock time.

    The balance is the time elapsed since the wallet floor, capped at
    ``max_balance_in_seconds``. Each take costs ``1000 / quota`` milliseconds
    of balance, so unused quota accumulates up to one full second and can be
    spent in a burst.
    """

    def __init__(
        self, quota: int, clock: _Clock, max_balance_in_seconds: int = 1
    ):
        self._clock = clock
        self._quota = Decimal(quota)
        self._max_balance_millis = Decimal(max_balance_in_seconds * 1000)
        self.__wallet_floor_millis = Decimal(self._clock.now_millis())
        self.__lock = Lock()

    @property
    def quota(self) -> Decimal:
        return self._quota

    def take(self, cost: int = 1) -> bool:
        if self._quota == 0:
            return False

        cost_in_millis = Decimal(cost) / (self._quota / Decimal(1000))

        with self.__lock:
            now_millis = Decimal(self._clock.now_millis())
            balance_millis = min(
                now_millis - self.__wallet_floor_millis,
                self._max_balance_millis,
            )
            remaining_millis = balance_millis - cost_in_millis
            if remaining_millis < 0:
                return False
            self.__wallet_floor_millis = now_millis - remaining_millis
            return True
