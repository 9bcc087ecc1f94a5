"""
FastAPI dependencies.

The engine and the WebSocket hub live on ``app.state`` so each app built by
``create_app`` (and each test) has its own.
"""

from fastapi import Request

from sportsfeed.engine import FeedEngine
from sportsfeed.transport.websocket_hub import WebSocketHub


def get_engine(request: Request) -> FeedEngine:
    return request.app.state.engine


def get_hub(request: Request) -> WebSocketHub:
    return request.app.state.hub
