"""
Transports for topic broadcasts.

- ``WebSocketHub``: in-process rooms over FastAPI WebSockets
- ``RedisPublisher``: Redis pub/sub fan-out across processes
- ``FanoutTransport``: both at once
"""

from sportsfeed.transport.base import FanoutTransport, Message, Transport
from sportsfeed.transport.websocket_hub import WebSocketHub

__all__ = [
    "FanoutTransport",
    "Message",
    "Transport",
    "WebSocketHub",
]
