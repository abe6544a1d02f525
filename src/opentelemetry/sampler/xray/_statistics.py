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

from threading import Lock


class _SamplingStatistics:
    """Per-rule sampling counters reported to X-Ray.

    The counters are guarded by their own lock so that they can be shared
    between the appliers created for one rule when new targets arrive.
    """

    def __init__(
        self, request_count: int = 0, sample_count: int = 0, borrow_count: int = 0
    ):
        self.__request_count = request_count
        self.__sample_count = sample_count
        self.__borrow_count = borrow_count
        self.__lock = Lock()

    @property
    def request_count(self) -> int:
        return self.__request_count

    @property
    def sample_count(self) -> int:
        return self.__sample_count

    @property
    def borrow_count(self) -> int:
        return self.__borrow_count

    def record(self, sampled: bool, borrowed: bool) -> None:
        with self.__lock:
            self.__request_count += 1
            if sampled:
                self.__sample_count += 1
            if borrowed:
                self.__borrow_count += 1

    def snapshot(self) -> "_SamplingStatistics":
        """Returns the current counts and resets them to zero."""
        with self.__lock:
            current = _SamplingStatistics(
                self.__request_count,
                self.__sample_count,
                self.__borrow_count,
            )
            self.__request_count = 0
            self.__sample_count = 0
            self.__borrow_count = 0
        return current
