"""
WebSocket stream.

Clients send ``{"action": "subscribe" | "unsubscribe", "sport": ..., "itemId": ...}``
and receive ``<topic>-update`` events for every topic they joined.
"""

import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from sportsfeed.engine import FeedEngine
from sportsfeed.exceptions import InvalidTopic
from sportsfeed.logging import get_logger, log_context
from sportsfeed.services.broadcast import update_message
from sportsfeed.topics import Topic
from sportsfeed.transport.websocket_hub import WebSocketHub

from ..schemas import StreamRequest

router = APIRouter(tags=["stream"])
logger = get_logger("backend.stream")


def _error(message: str) -> dict:
    return {"event": "error", "message": message}


async def handle_message(engine: FeedEngine, hub: WebSocketHub, subscriber_id: str, raw: str) -> None:
    try:
        request = StreamRequest.model_validate_json(raw)
    except ValidationError:
        await hub.send(subscriber_id, _error("Invalid message"))
        return

    try:
        topic = engine.topic(request.sport, request.itemId)
    except InvalidTopic:
        await hub.send(subscriber_id, _error("Invalid sport specified"))
        return

    with log_context(topic=topic.key, action=request.action):
        await _apply(engine, hub, subscriber_id, topic, request.action)


async def _apply(engine: FeedEngine, hub: WebSocketHub, subscriber_id: str, topic: Topic, action: str) -> None:
    if action == "unsubscribe":
        hub.leave(topic.key, subscriber_id)
        engine.unsubscribe(topic, subscriber_id)
        await hub.send(subscriber_id, {"event": "unsubscribed", "topic": topic.key})
        logger.info("stream_unsubscribed")
        return

    # Join the room first so the activating broadcast reaches this client
    hub.join(topic.key, subscriber_id)
    await hub.send(subscriber_id, {"event": "subscribed", "topic": topic.key})
    activated = await engine.subscribe(topic, subscriber_id)

    if not activated:
        entry = engine.get_snapshot(topic)
        if entry is not None:
            await hub.send(subscriber_id, update_message(topic, entry.records, entry.fetched_at))


@router.websocket("/ws")
async def stream(websocket: WebSocket):
    engine: FeedEngine = websocket.app.state.engine
    hub: WebSocketHub = websocket.app.state.hub

    await websocket.accept()
    subscriber_id = str(uuid.uuid4())
    hub.connect(subscriber_id, websocket)
    logger.info("client_connected", subscriber=subscriber_id, connections=hub.connection_count)

    with log_context(subscriber=subscriber_id):
        try:
            while True:
                raw = await websocket.receive_text()
                await handle_message(engine, hub, subscriber_id, raw)
        except WebSocketDisconnect:
            pass
        finally:
            hub.drop(subscriber_id)
            engine.on_disconnect(subscriber_id)
            logger.info("client_disconnected", connections=hub.connection_count)
