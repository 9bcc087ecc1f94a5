"""
Topic identity.

A topic is a domain (sport) optionally narrowed to a single item (match id).
Its channel name is ``domain`` or ``domain:item_id``.
"""

from dataclasses import dataclass
from typing import Optional

SEPARATOR = ":"


@dataclass(frozen=True)
class Topic:
    domain: str
    item_id: Optional[str] = None

    @property
    def key(self) -> str:
        if self.item_id is None:
            return self.domain
        return f"{self.domain}{SEPARATOR}{self.item_id}"

    @property
    def root(self) -> "Topic":
        if self.item_id is None:
            return self
        return Topic(self.domain)

    @property
    def is_item(self) -> bool:
        return self.item_id is not None

    @classmethod
    def of(cls, domain: str, item_id: Optional[object] = None) -> "Topic":
        """Build a topic from request values, normalising case and id type."""
        if item_id is None or item_id == "":
            return cls(domain.lower())
        return cls(domain.lower(), str(item_id))

    def __str__(self) -> str:
        return self.key
