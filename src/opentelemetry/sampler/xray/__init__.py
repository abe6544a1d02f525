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

"""
AWS X-Ray remote sampler for OpenTelemetry.

The sampler polls sampling rules and targets from the X-Ray sampling proxy
(for example the CloudWatch agent or the ADOT collector) and reports
sampling statistics back to it.

Usage
-----

.. code:: python

    from opentelemetry import trace
    from opentelemetry.sampler.xray import AwsXRayRemoteSampler
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider

    resource = Resource.create({"service.name": "my-service"})
    sampler = AwsXRayRemoteSampler(
        resource=resource,
        endpoint="http://localhost:2000",
        polling_interval=60,
    )
    trace.set_tracer_provider(
        TracerProvider(resource=resource, sampler=sampler)
    )

The sampler can also be configured through environment variables::

    OTEL_TRACES_SAMPLER=aws_xray_remote
    OTEL_TRACES_SAMPLER_ARG=endpoint=http://localhost:2000,polling_interval=60
"""

from __future__ import annotations

from logging import getLogger
from typing import Any, Dict, Optional

from opentelemetry.sampler.xray.aws_xray_remote_sampler import (
    AwsXRayRemoteSampler,
)
from opentelemetry.sdk.resources import Resource

__all__ = [
    "AwsXRayRemoteSampler",
    "aws_xray_remote_sampler_factory",
]

_logger = getLogger(__name__)


def _parse_sampler_arg(sampler_arg: Optional[str]) -> Dict[str, Any]:
    options: Dict[str, Any] = {}
    if not sampler_arg:
        return options
    for pair in sampler_arg.split(","):
        key, sep, value = pair.partition("=")
        key, value = key.strip(), value.strip()
        if not sep or not value:
            _logger.warning("Ignoring malformed sampler argument: %s", pair)
        elif key == "endpoint":
            options["endpoint"] = value
        elif key == "polling_interval":
            try:
                options["polling_interval"] = int(value)
            except ValueError:
                _logger.warning(
                    "Ignoring invalid polling_interval value: %s", value
                )
        else:
            _logger.warning("Ignoring unknown sampler argument: %s", key)
    return options


def aws_xray_remote_sampler_factory(
    sampler_arg: Optional[str] = None,
) -> AwsXRayRemoteSampler:
    """Entry point used by the SDK for ``OTEL_TRACES_SAMPLER=aws_xray_remote``."""
    return AwsXRayRemoteSampler(
        resource=Resource.create(), **_parse_sampler_arg(sampler_arg)
    )
