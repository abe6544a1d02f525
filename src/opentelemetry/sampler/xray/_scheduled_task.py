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

from logging import getLogger
from threading import Lock, Timer
from typing import Callable, Optional

_logger = getLogger(__name__)


class _ScheduledTask:
    """Runs ``callback`` repeatedly on daemon timer threads.

    Python Timers only fire once, so a new Timer is created after every run,
    waiting ``interval()`` seconds. ``interval`` is re-evaluated for each
    run, which lets the owner change the polling rate between runs.

    Every scheduled timer carries the generation it was scheduled in.
    ``restart`` and ``cancel`` start a new generation, so a run that is
    already in progress at that point finishes but does not schedule
    another one. Once cancelled, the task stays stopped: later calls to
    ``start`` or ``restart`` are ignored.
    """

    def __init__(
        self,
        name: str,
        callback: Callable[[], None],
        interval: Callable[[], float],
    ):
        self._name = name
        self._callback = callback
        self._interval = interval
        self._timer: Optional[Timer] = None
        self.__generation = 0
        self.__stopped = False
        self.__lock = Lock()

    def start(self, delay: float | None = None) -> None:
        with self.__lock:
            if self.__stopped:
                _logger.debug("%s is cancelled, not scheduling it", self._name)
                return
            self.__generation += 1
            self.__schedule(
                self._interval() if delay is None else delay,
                self.__generation,
            )

    def restart(self) -> None:
        """Cancels the pending run and runs the callback now."""
        self.start(delay=0)

    def cancel(self) -> None:
        with self.__lock:
            self.__stopped = True
            self.__generation += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def __schedule(self, delay: float, generation: int) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = Timer(delay, self.__run, args=(generation,))
        self._timer.name = self._name
        # Daemon timers never keep the interpreter alive at exit
        self._timer.daemon = True
        self._timer.start()

    def __run(self, generation: int) -> None:
        try:
            self._callback()
        # pylint: disable=broad-exception-caught
        except Exception as err:
            _logger.error("Error running %s: %s", self._name, err)

        with self.__lock:
            if self.__stopped or generation != self.__generation:
                return
            self.__schedule(self._interval(), generation)
