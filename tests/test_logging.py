"""Tests for request context propagation and log processors."""

import asyncio
from unittest.mock import MagicMock

from sportsfeed.logging import (
    MAX_FIELD_LENGTH,
    RequestContextMiddleware,
    _truncate_fields,
    current_context,
    log_context,
)


def http_scope(headers=()):
    return {"type": "http", "method": "GET", "path": "/status", "headers": list(headers)}


def recording_logger(seen):
    """Logger whose calls record the request id bound at the time of the call."""
    logger = MagicMock()

    def record(event, **fields):
        seen.append((event, current_context().get("request_id")))

    logger.info.side_effect = record
    logger.warning.side_effect = record
    logger.error.side_effect = record
    return logger


def run_middleware(scope, status=200, logger=None):
    captured = {}
    sent = []

    async def app(scope, receive, send):
        captured.update(current_context())
        await send({"type": "http.response.start", "status": status, "headers": []})
        await send({"type": "http.response.body", "body": b"{}"})

    async def receive():
        return {"type": "http.request"}

    async def send(message):
        sent.append(message)

    middleware = RequestContextMiddleware(app, logger=logger or MagicMock())
    asyncio.run(middleware(scope, receive, send))
    return captured, sent


class TestRequestContextMiddleware:
    def test_incoming_request_id_is_bound_and_echoed(self):
        captured, sent = run_middleware(http_scope([(b"x-request-id", b"abc123")]))

        assert captured["request_id"] == "abc123"
        assert captured["path"] == "/status"
        assert (b"x-request-id", b"abc123") in sent[0]["headers"]

    def test_generated_id_matches_response_header(self):
        scope = http_scope()
        captured, sent = run_middleware(scope)

        header = dict(sent[0]["headers"])[b"x-request-id"].decode()
        assert captured["request_id"] == header
        assert scope["state"]["request_id"] == header

    def test_request_logs_share_the_request_id(self):
        """Start and completion entries carry the id the response echoes."""
        seen = []
        run_middleware(http_scope([(b"x-request-id", b"req-1")]), logger=recording_logger(seen))

        assert seen == [("request_started", "req-1"), ("request_complete", "req-1")]

    def test_server_errors_log_at_error_level(self):
        logger = MagicMock()
        run_middleware(http_scope(), status=503, logger=logger)

        logger.error.assert_called_once()
        assert logger.error.call_args.kwargs["status_code"] == 503

    def test_context_is_released_after_request(self):
        run_middleware(http_scope([(b"x-request-id", b"gone")]))

        assert "request_id" not in current_context()

    def test_websocket_connection_binds_transport(self):
        captured = {}

        async def app(scope, receive, send):
            captured.update(current_context())

        scope = {"type": "websocket", "path": "/ws", "headers": [(b"x-request-id", b"ws-1")]}
        logger = MagicMock()
        asyncio.run(RequestContextMiddleware(app, logger=logger)(scope, None, None))

        assert captured["request_id"] == "ws-1"
        assert captured["transport"] == "websocket"
        assert [c.args[0] for c in logger.info.call_args_list] == ["websocket_opened", "websocket_closed"]

    def test_lifespan_passes_through(self):
        app = MagicMock()

        async def passthrough(scope, receive, send):
            app(scope)

        logger = MagicMock()
        asyncio.run(RequestContextMiddleware(passthrough, logger=logger)({"type": "lifespan"}, None, None))

        app.assert_called_once()
        logger.info.assert_not_called()


class TestLogContext:
    def test_nested_context_restores_outer_values(self):
        with log_context(topic="football", trigger="tick"):
            with log_context(topic="basketball"):
                assert current_context()["topic"] == "basketball"
            assert current_context() == {"topic": "football", "trigger": "tick"}

        assert "topic" not in current_context()


class TestTruncateFields:
    def test_long_body_is_truncated(self):
        event = _truncate_fields(None, "error", {"event": "x", "body": "a" * 500})

        assert event["body"] == "a" * MAX_FIELD_LENGTH + "..."

    def test_undecodable_bytes_are_replaced(self):
        event = _truncate_fields(None, "error", {"event": "x", "body": b"\xff\xfeok"})

        assert event["body"].endswith("ok")
        assert "�" in event["body"]

    def test_missing_fields_are_not_added(self):
        assert _truncate_fields(None, "info", {"event": "x"}) == {"event": "x"}
