"""
Upstream response shape parsing.

The provider answers with a bare list, a single object, or a wrapper object
whose collection sits under one of a handful of keys. Every accepted shape is
enumerated here once; callers receive ``Records`` or ``Malformed``.
"""

from dataclasses import dataclass, field
from typing import Any, Union

from sportsfeed.constants import COLLECTION_KEYS

Record = dict[str, Any]


@dataclass(frozen=True)
class Records:
    items: list[Record] = field(default_factory=list)


@dataclass(frozen=True)
class Malformed:
    reason: str
    body: Any = None


ParseResult = Union[Records, Malformed]


def _from_list(body: list) -> ParseResult:
    if not all(isinstance(item, dict) for item in body):
        return Malformed("collection contains non-object items", body)
    return Records(list(body))


def _from_envelope(inner: Any) -> ParseResult:
    if inner is None:
        return Records([])
    if isinstance(inner, list):
        return _from_list(inner)
    if isinstance(inner, dict):
        return Records([inner])
    return Malformed(f"unsupported data envelope of type {type(inner).__name__}", inner)


def parse_records(body: Any) -> ParseResult:
    """
    Normalize an upstream body to a list of records.

    Accepted shapes:
        - ``None`` or empty string -> no records
        - ``[{...}, ...]`` -> the list
        - ``{"data": [...]}`` (or matches/highlights/result/results/items) -> inner list
        - ``{"data": {...}}`` -> one-element list of the inner object
        - ``{"data": null}`` -> no records
        - ``{...}`` -> one-element list
    Anything else is ``Malformed``, including ``{"data": <scalar>}``.

    Only ``data`` is the provider envelope. The other keys unwrap a list and
    are otherwise plain record fields (``{"id": 1, "result": null}``).
    """
    if body is None or body == "":
        return Records([])

    if isinstance(body, list):
        return _from_list(body)

    if isinstance(body, dict):
        if "data" in body:
            return _from_envelope(body["data"])
        for key in COLLECTION_KEYS:
            if isinstance(body.get(key), list):
                return _from_list(body[key])
        return Records([body])

    return Malformed(f"unsupported response type {type(body).__name__}", body)


def record_id(record: Record) -> str | None:
    """Identifier of a record as a string, or None when it has none."""
    value = record.get("id")
    if value is None:
        return None
    return str(value)
