from __future__ import annotations

from sap_adt_lib.errors import NameTooLong

CUSTOMER_PREFIXES = ("Z", "Y")
DEFAULT_PREFIX = "Z"
FUNCTION_GROUP_MAX_LENGTH = 26


def normalize_name(name: str) -> str:
    """Uppercase and force the customer namespace: "foo" -> "ZFOO", "Ybar" -> "YBAR"."""

    normalized = (name or "").strip().upper()
    if not normalized:
        raise ValueError("object name cannot be empty")
    if not normalized.startswith(CUSTOMER_PREFIXES):
        normalized = DEFAULT_PREFIX + normalized
    return normalized


def function_group_name(name: str) -> str:
    normalized = normalize_name(name)
    if len(normalized) > FUNCTION_GROUP_MAX_LENGTH:
        raise NameTooLong("function group", normalized, FUNCTION_GROUP_MAX_LENGTH)
    return normalized


def derive_function_group(function_module: str) -> str:
    """Group name for a function module created without an explicit group.

    Unlike explicit group names, a derived name is truncated to the limit.
    """

    return normalize_name(function_module)[:FUNCTION_GROUP_MAX_LENGTH]
