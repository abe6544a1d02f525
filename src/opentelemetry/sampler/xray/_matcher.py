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

"""Wildcard and attribute matching of sampling rules against spans.

Sampling rule fields are wildcard patterns where ``*`` matches any sequence
of characters and ``?`` matches exactly one character. Matching is
case-insensitive and always anchored at both ends of the text.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Mapping
from urllib.parse import urlparse

from opentelemetry.sdk.resources import Resource
from opentelemetry.semconv._incubating.attributes.cloud_attributes import (
    CloudPlatformValues,
)
from opentelemetry.semconv.resource import ResourceAttributes
from opentelemetry.semconv.trace import SpanAttributes
from opentelemetry.util.types import Attributes, AttributeValue

cloud_platform_mapping = {
    CloudPlatformValues.AWS_LAMBDA.value: "AWS::Lambda::Function",
    CloudPlatformValues.AWS_ELASTIC_BEANSTALK.value: "AWS::ElasticBeanstalk::Environment",
    CloudPlatformValues.AWS_EC2.value: "AWS::EC2::Instance",
    CloudPlatformValues.AWS_ECS.value: "AWS::ECS::Container",
    CloudPlatformValues.AWS_EKS.value: "AWS::EKS::Container",
}

# Newer semantic convention keys come first, the older keys are still
# emitted by many instrumentations.
_URL_PATH_KEYS = (SpanAttributes.URL_PATH, SpanAttributes.HTTP_TARGET)
_URL_FULL_KEYS = (SpanAttributes.URL_FULL, SpanAttributes.HTTP_URL)
_HTTP_METHOD_KEYS = (
    SpanAttributes.HTTP_REQUEST_METHOD,
    SpanAttributes.HTTP_METHOD,
)
_HTTP_HOST_KEYS = (
    SpanAttributes.SERVER_ADDRESS,
    SpanAttributes.HTTP_HOST,
    SpanAttributes.CLIENT_ADDRESS,
)
_RESOURCE_ARN_KEYS = (
    ResourceAttributes.AWS_ECS_CONTAINER_ARN,
    ResourceAttributes.AWS_ECS_CLUSTER_ARN,
    ResourceAttributes.AWS_EKS_CLUSTER_ARN,
)
_LAMBDA_RESOURCE_ARN_KEYS = (ResourceAttributes.CLOUD_RESOURCE_ID, "faas.id")
_LAMBDA_SPAN_ARN_KEYS = (
    SpanAttributes.CLOUD_RESOURCE_ID,
    SpanAttributes.AWS_LAMBDA_INVOKED_ARN,
)


@lru_cache(maxsize=256)
def _compile_pattern(pattern: str) -> re.Pattern:
    regex = "".join(
        ".*" if char == "*" else "." if char == "?" else re.escape(char)
        for char in pattern
    )
    return re.compile(regex, re.IGNORECASE | re.DOTALL)


def wildcard_match(pattern: str | None, text: AttributeValue | None) -> bool:
    if pattern == "*":
        return True
    if pattern is None or not isinstance(text, str):
        return False
    if len(pattern) == 0:
        return len(text) == 0
    return _compile_pattern(pattern).fullmatch(text) is not None


def attribute_match(
    attributes: Attributes | None,
    rule_attributes: Mapping[str, str] | None,
) -> bool:
    """Checks that every attribute the rule requires is present on the span
    and matches the rule's pattern. Extra span attributes are ignored."""
    if not rule_attributes:
        return True
    if not attributes or len(rule_attributes) > len(attributes):
        return False

    matched_count = 0
    for key, pattern in rule_attributes.items():
        if key in attributes and wildcard_match(pattern, attributes[key]):
            matched_count += 1
    return matched_count == len(rule_attributes)


def _first_present(
    attributes: Mapping[str, AttributeValue] | None, keys
) -> AttributeValue | None:
    if not attributes:
        return None
    for key in keys:
        value = attributes.get(key)
        if value is not None:
            return value
    return None


def get_url_path(attributes: Attributes | None) -> AttributeValue | None:
    url_path = _first_present(attributes, _URL_PATH_KEYS)
    if url_path is not None:
        return url_path

    url_full = _first_present(attributes, _URL_FULL_KEYS)
    if url_full is None:
        # When missing, the URL path is assumed to be /
        return "/"
    if not isinstance(url_full, str):
        return None
    try:
        return urlparse(url_full).path or "/"
    except ValueError:
        return "/"


def get_http_method(attributes: Attributes | None) -> AttributeValue | None:
    return _first_present(attributes, _HTTP_METHOD_KEYS)


def get_http_host(attributes: Attributes | None) -> AttributeValue | None:
    return _first_present(attributes, _HTTP_HOST_KEYS)


def get_service_name(resource: Resource | None) -> AttributeValue:
    if resource is None:
        return ""
    return resource.attributes.get(ResourceAttributes.SERVICE_NAME, "")


def get_service_type(resource: Resource | None) -> str:
    if resource is None:
        return ""
    cloud_platform = resource.attributes.get(ResourceAttributes.CLOUD_PLATFORM)
    if not isinstance(cloud_platform, str):
        return ""
    return cloud_platform_mapping.get(cloud_platform, "")


def get_resource_arn(
    resource: Resource | None, attributes: Attributes | None
) -> AttributeValue:
    if resource is None:
        return ""

    arn = _first_present(resource.attributes, _RESOURCE_ARN_KEYS)
    if arn is not None:
        return arn

    if (
        resource.attributes.get(ResourceAttributes.CLOUD_PLATFORM)
        != CloudPlatformValues.AWS_LAMBDA.value
    ):
        return ""

    # A Lambda function may only learn its full ARN on invocation, so the
    # span attributes are consulted as well.
    arn = _first_present(resource.attributes, _LAMBDA_RESOURCE_ARN_KEYS)
    if arn is None:
        arn = _first_present(attributes, _LAMBDA_SPAN_ARN_KEYS)
    return arn if arn is not None else ""
