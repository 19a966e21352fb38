"""Deterministic cache keys for outbound API calls.

A key is built only from the request identity: client name, HTTP method,
endpoint, normalized parameters and API version. No clock, salt or process
state goes in, so keys survive restarts and are shared between workers.
"""

import hashlib
import json
import math
import re
from typing import Any, Mapping

from loguru import logger

from api_cache.errors import ValidationError

MAX_PARAM_DEPTH = 20
SUMMARY_VALUE_LENGTH = 100

_IDENTIFIER = re.compile(r"^[A-Za-z0-9_-]+$")


def validate_identifier(value: str) -> str:
    """Ensure a client name is safe to embed in keys.

    Raises:
        ValidationError: If the name is empty or has characters other than
            letters, digits, hyphens and underscores
    """
    if not isinstance(value, str) or not _IDENTIFIER.match(value):
        raise ValidationError(
            f"Invalid identifier {value!r}: only letters, digits, hyphens and underscores are allowed"
        )
    return value


def normalize_params(params: Mapping[str, Any] | None) -> dict[str, Any]:
    """Return a canonical copy of request parameters.

    Mapping keys are coerced to strings and sorted at every level, None
    values are dropped from mappings, lists keep their order. ``None`` and
    ``{}`` normalize to the same empty dict.

    Raises:
        ValidationError: On values that are not JSON scalars, lists or
            mappings, on non-finite floats, or past 20 levels of nesting
    """
    if params is None:
        return {}
    if not isinstance(params, Mapping):
        raise ValidationError(f"Parameters must be a mapping, got {type(params).__name__}")
    return _normalize_mapping(params, 0)


def _normalize_mapping(value: Mapping[Any, Any], depth: int) -> dict[str, Any]:
    if depth >= MAX_PARAM_DEPTH:
        raise ValidationError(f"Parameters nested deeper than {MAX_PARAM_DEPTH} levels")
    items = ((str(k), v) for k, v in value.items() if v is not None)
    return {k: _normalize_value(v, depth + 1) for k, v in sorted(items, key=lambda kv: kv[0])}


def _normalize_value(value: Any, depth: int) -> Any:
    if isinstance(value, Mapping):
        return _normalize_mapping(value, depth)
    if isinstance(value, (list, tuple)):
        if depth >= MAX_PARAM_DEPTH:
            raise ValidationError(f"Parameters nested deeper than {MAX_PARAM_DEPTH} levels")
        return [_normalize_value(item, depth + 1) for item in value]
    if value is None or isinstance(value, (str, bool, int)):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValidationError("Parameters cannot contain NaN or infinite numbers")
        return value
    raise ValidationError(f"Unsupported parameter type: {type(value).__name__}")


def canonical_json(params: Mapping[str, Any] | None) -> str:
    """Serialize normalized parameters the same way every time."""
    return json.dumps(normalize_params(params), sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def fingerprint(
    client_name: str,
    endpoint: str,
    params: Mapping[str, Any] | None = None,
    method: str = "GET",
    version: str | None = None,
) -> str:
    """Build the cache key for a call.

    Format: ``{client}.{method}.{endpoint}.{params_sha1}[.{version}]`` with
    the method lower-cased and the endpoint's leading slash removed. The
    version segment is left out when there is no version.

    Example:
        ```python
        fingerprint("demo", "/predictions", {"b": 2, "a": 1}, "GET", "v1")
        # "demo.get.predictions.<sha1 of {"a":1,"b":2}>.v1"
        ```
    """
    validate_identifier(client_name)

    params_hash = hashlib.sha1(canonical_json(params).encode("utf-8")).hexdigest()
    components = [client_name, method.lower(), endpoint.lstrip("/"), params_hash]
    if version is not None:
        components.append(version)

    key = ".".join(components)
    logger.debug("Generated cache key client={} key={}", client_name, key)
    return key


def summarize_params(params: Mapping[str, Any] | None) -> str:
    """Short, human-readable JSON summary of request parameters.

    Long strings are cut to 100 characters; nested structures are rendered to
    canonical JSON and cut the same way. Numbers and booleans stay as they are.
    """
    summary: dict[str, Any] = {}
    for key, value in normalize_params(params).items():
        if isinstance(value, (dict, list)):
            value = json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
        if isinstance(value, str) and len(value) > SUMMARY_VALUE_LENGTH:
            value = value[:SUMMARY_VALUE_LENGTH] + "..."
        summary[key] = value
    return json.dumps(summary, separators=(",", ":"), ensure_ascii=False)
