"""Payload guards for Gazelle JSON responses."""

from __future__ import annotations

from reedgrass.errors import TrackerError

RETRYABLE_HTTP_STATUSES = frozenset({429, 500, 502, 503, 504})


def _type_error(where: str, value: object) -> TrackerError:
    return TrackerError(f"{where} has unexpected type '{type(value).__name__}'")


def expect_dict(value: object, context: str) -> dict:
    if not isinstance(value, dict):
        raise _type_error(context, value)
    return value


def optional_dict(container: dict, key: str, context: str) -> dict:
    value = container.get(key)
    return {} if value is None else expect_dict(value, f"{context}.{key}")


def optional_list(container: dict, key: str, context: str) -> list:
    value = container.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise _type_error(f"{context}.{key}", value)
    return value


def optional_list_of_dicts(container: dict, key: str, context: str) -> list[dict]:
    return [
        expect_dict(item, f"{context}.{key}[{index}]")
        for index, item in enumerate(optional_list(container, key, context))
    ]


def response_payload(payload: object, context: str) -> dict:
    """Unwrap ``response`` from a Gazelle envelope; anything but success raises.

    Failed uploads come back as ``{"status": "failure", "error": "..."}``.
    """
    root = expect_dict(payload, f"{context} payload")
    status = str(root.get("status") or "").strip().lower()
    if status != "success":
        error = root.get("error")
        detail = f": {error}" if error else ""
        raise TrackerError(f"{context} returned status={status or 'missing'}{detail}")
    return optional_dict(root, "response", context)
