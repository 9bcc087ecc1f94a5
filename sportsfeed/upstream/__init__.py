"""
Upstream provider module.

Provides the async provider client and the response shape parser:
- ``SportsApiClient`` with bounded retries and quota tracking
- ``parse_records`` returning ``Records`` or ``Malformed``
"""

from sportsfeed.upstream.client import RateLimiter, RetryPolicy, SportsApiClient
from sportsfeed.upstream.parsing import Malformed, Records, parse_records, record_id

__all__ = [
    "Malformed",
    "RateLimiter",
    "Records",
    "RetryPolicy",
    "SportsApiClient",
    "parse_records",
    "record_id",
]
