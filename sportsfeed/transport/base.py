"""
Transport contract.

The engine only needs a topic-publish primitive; connection handling,
rooms and wire framing belong to the transport.
"""

from typing import Any, Protocol, Sequence

from sportsfeed.logging import get_logger

logger = get_logger("transport")

Message = dict[str, Any]


class Transport(Protocol):
    async def publish(self, channel: str, message: Message) -> None: ...

    async def close(self) -> None: ...


class FanoutTransport:
    """Publish to several transports; a failing one does not block the rest."""

    def __init__(self, transports: Sequence[Transport]):
        self.transports = list(transports)

    async def publish(self, channel: str, message: Message) -> None:
        for transport in self.transports:
            try:
                await transport.publish(channel, message)
            except Exception as e:
                logger.error(
                    "transport_publish_failed",
                    transport=type(transport).__name__,
                    channel=channel,
                    error=str(e),
                )

    async def close(self) -> None:
        for transport in self.transports:
            await transport.close()
