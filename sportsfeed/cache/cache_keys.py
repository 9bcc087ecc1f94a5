"""
Cache key management.

Centralized cache key definitions to:
- Make semantically identical requests collide on one key
- Keep the canonical (no parameter) entry of a topic addressable
- Document cache structure
"""

import json
from typing import Any, Mapping, Optional


def normalize_params(params: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """Drop unset values and sort by name."""
    if not params:
        return {}
    return {name: params[name] for name in sorted(params) if params[name] is not None}


def build_cache_key(topic: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """
    Encode (topic, parameters) as a cache key.

    Parameters are sorted by name before encoding, so
    ``build_cache_key("football", {"b": 2, "a": 1})`` equals
    ``build_cache_key("football", {"a": 1, "b": 2})``.
    """
    encoded = json.dumps(normalize_params(params), separators=(",", ":"), default=str)
    return f"{topic}:{encoded}"


class CacheKeys:
    """
    Cache key builders per resource kind.

    Naming convention: {topic}:{sorted-json-params}

    Examples:
        - football:{} -> canonical football match list
        - football:{"date":"2024-12-10"} -> one day of football matches
        - football:123:{} -> detail of football match 123
        - football/standings:{"leagueId":"1","season":"2024"} -> standings
    """

    @staticmethod
    def matches(domain: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """Match list for a domain."""
        return build_cache_key(domain, params)

    @staticmethod
    def item(domain: str, item_id: str) -> str:
        """Detail record for one item of a domain."""
        return build_cache_key(f"{domain}:{item_id}")

    @staticmethod
    def resource(path: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """Auxiliary upstream resource addressed by path."""
        return build_cache_key(path.strip("/"), params)
