"""
Tests for the HTTP and WebSocket surface.

The app is built around an engine with a mocked upstream and manual timers,
and the WebSocket hub as its transport.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from backend.app.main import create_app
from sportsfeed.engine import FeedEngine
from sportsfeed.exceptions import NotFound, RateLimited, UpstreamUnavailable
from sportsfeed.logging import current_context
from sportsfeed.transport.websocket_hub import WebSocketHub

from helpers import FakeClock, ManualTimers, make_records, make_settings


@pytest.fixture
def api():
    clock = FakeClock()
    settings = make_settings()
    upstream = AsyncMock()
    upstream.fetch.return_value = make_records(3)
    upstream.fetch_detail.return_value = {"id": 1, "state": "live"}
    upstream.request.return_value = {"data": [{"id": "h1"}]}
    hub = WebSocketHub()
    engine = FeedEngine(settings, upstream, hub, timers=ManualTimers(clock), clock=clock)
    app = create_app(settings=settings, engine=engine, hub=hub)

    with TestClient(app) as client:
        yield client, engine, upstream


class TestHealth:
    def test_health(self, api):
        client, _, _ = api

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
        assert "x-request-id" in response.headers

    def test_index_lists_sports(self, api):
        client, _, _ = api

        response = client.get("/")

        assert response.status_code == 200
        assert "football" in response.text
        assert "/ws" in response.text

    def test_status(self, api):
        client, _, _ = api

        body = client.get("/status").json()

        assert body["connections"] == 0
        assert body["scheduler"]["football"]["phase"] == "idle"
        assert [job["id"] for job in body["timers"]] == ["sweep"]


class TestMatches:
    def test_list_matches(self, api):
        client, _, upstream = api

        response = client.get("/football/matches", params={"season": "2024", "leagueId": "1"})

        assert response.status_code == 200
        body = response.json()
        assert body["data"] == make_records(3)
        assert body["meta"]["totalResults"] == 3
        assert body["meta"]["sport"] == "football"
        assert body["meta"]["parameters"] == {"season": "2024", "leagueId": "1"}
        upstream.fetch.assert_awaited_once_with("football", {"leagueId": "1", "season": "2024", "limit": 100})

    def test_repeated_request_served_from_cache(self, api):
        client, _, upstream = api

        client.get("/football/matches")
        client.get("/football/matches")

        assert upstream.fetch.await_count == 1

    def test_timezone_param_passed_through(self, api):
        client, _, upstream = api

        client.get("/football/matches", params={"timezone": "Europe/London"})

        assert upstream.fetch.await_args.args[1]["timezone"] == "Europe/London"

    def test_unknown_sport_is_400(self, api):
        client, _, _ = api

        response = client.get("/curling/matches")

        assert response.status_code == 400
        assert "curling" in response.json()["detail"]

    def test_match_detail(self, api):
        client, _, upstream = api

        response = client.get("/football/matches/1")

        assert response.status_code == 200
        assert response.json()["data"] == [{"id": 1, "state": "live"}]
        upstream.fetch_detail.assert_awaited_once_with("football", "1")


class TestErrorMapping:
    @pytest.mark.parametrize(
        "error,status",
        [
            (NotFound(404, "missing"), 404),
            (RateLimited("slow down", retry_after=30), 429),
            (UpstreamUnavailable("down"), 503),
        ],
    )
    def test_upstream_errors(self, api, error, status):
        client, _, upstream = api
        upstream.fetch.side_effect = error

        response = client.get("/football/matches")

        assert response.status_code == status

    def test_rate_limited_sets_retry_after(self, api):
        client, _, upstream = api
        upstream.fetch.side_effect = RateLimited("slow down", retry_after=30)

        response = client.get("/football/matches")

        assert response.headers["retry-after"] == "30"

    def test_unhandled_error_is_generic_500(self, api):
        client, _, upstream = api
        upstream.fetch.side_effect = KeyError("secret internals")

        response = TestClient(client.app, raise_server_exceptions=False).get("/football/matches")

        assert response.status_code == 500
        assert response.json()["detail"] == "Internal server error"


class TestSnapshot:
    def test_snapshot_missing_is_404(self, api):
        client, _, upstream = api

        response = client.get("/football/snapshot")

        assert response.status_code == 404
        upstream.fetch.assert_not_awaited()

    def test_snapshot_after_fetch(self, api):
        client, _, _ = api
        client.get("/football/matches")

        body = client.get("/football/snapshot").json()

        assert body["data"] == make_records(3)
        assert body["meta"]["fresh"] is True
        assert body["meta"]["topic"] == "football"


class TestFootball:
    def test_standings_require_league_and_season(self, api):
        client, _, _ = api

        assert client.get("/football/standings", params={"leagueId": "1"}).status_code == 400

    def test_standings(self, api):
        client, _, upstream = api

        response = client.get("/football/standings", params={"leagueId": "1", "season": "2024"})

        assert response.status_code == 200
        upstream.request.assert_awaited_once_with("football/standings", {"leagueId": "1", "season": "2024"})

    def test_h2h_requires_both_teams(self, api):
        client, _, _ = api

        assert client.get("/football/h2h", params={"team1": "10"}).status_code == 400

    def test_h2h(self, api):
        client, _, upstream = api

        response = client.get("/football/h2h", params={"team1": "10", "team2": "20"})

        assert response.status_code == 200
        upstream.request.assert_awaited_once_with("football/matches/head-to-head", {"h2h": "10-20"})

    def test_highlights_aggregate_date_window(self, api):
        client, _, upstream = api

        response = client.get("/football/highlights", params={"limit": 10})

        assert response.status_code == 200
        body = response.json()
        assert upstream.request.await_count == 7
        assert body["meta"]["totalResults"] == 7
        assert body["meta"]["dateRange"] == {"startDate": "2024-12-07", "endDate": "2024-12-13", "days": 7}
        assert body["pagination"] == {"limit": 10, "offset": 0, "nextOffset": 10}
        assert body["meta"]["parameters"]["timezone"] == "Etc/UTC"

    def test_highlights_limit_clamped_to_provider_maximum(self, api):
        client, _, upstream = api

        response = client.get("/football/highlights", params={"limit": 50})

        assert response.status_code == 200
        assert response.json()["pagination"] == {"limit": 40, "offset": 0, "nextOffset": 40}
        assert {c.args[1]["limit"] for c in upstream.request.await_args_list} == {40}

    def test_highlights_limit_must_be_positive(self, api):
        client, _, _ = api

        assert client.get("/football/highlights", params={"limit": 0}).status_code == 422

    def test_cricket_highlight_requires_numeric_id(self, api):
        client, _, _ = api

        assert client.get("/cricket/highlights/abc").status_code == 400

    def test_highlight_detail(self, api):
        client, _, upstream = api

        response = client.get("/cricket/highlights/42")

        assert response.status_code == 200
        upstream.request.assert_awaited_once_with("cricket/highlights/42", {})


class TestStream:
    def test_subscribe_receives_first_update(self, api):
        client, engine, upstream = api

        with client.websocket_connect("/ws") as ws:
            ws.send_json({"action": "subscribe", "sport": "football"})

            assert ws.receive_json() == {"event": "subscribed", "topic": "football"}
            update = ws.receive_json()

        assert update["event"] == "football-update"
        assert update["data"] == make_records(3)
        assert upstream.fetch.await_count == 1

    def test_second_client_gets_snapshot_replay(self, api):
        client, engine, upstream = api

        with client.websocket_connect("/ws") as first:
            first.send_json({"action": "subscribe", "sport": "football"})
            first.receive_json()
            first.receive_json()

            with client.websocket_connect("/ws") as second:
                second.send_json({"action": "subscribe", "sport": "football"})
                assert second.receive_json()["event"] == "subscribed"
                replay = second.receive_json()

        assert replay["event"] == "football-update"
        assert replay["data"] == make_records(3)
        assert upstream.fetch.await_count == 1

    def test_invalid_sport(self, api):
        client, _, _ = api

        with client.websocket_connect("/ws") as ws:
            ws.send_json({"action": "subscribe", "sport": "curling"})

            assert ws.receive_json() == {"event": "error", "message": "Invalid sport specified"}

    def test_invalid_message(self, api):
        client, _, _ = api

        with client.websocket_connect("/ws") as ws:
            ws.send_text("not json")

            assert ws.receive_json() == {"event": "error", "message": "Invalid message"}

    def test_unsubscribe(self, api):
        client, engine, _ = api

        with client.websocket_connect("/ws") as ws:
            ws.send_json({"action": "subscribe", "sport": "football"})
            ws.receive_json()
            ws.receive_json()
            ws.send_json({"action": "unsubscribe", "sport": "football"})

            assert ws.receive_json() == {"event": "unsubscribed", "topic": "football"}
        assert engine.registry.live_count("football") == 0

    def test_item_subscription(self, api):
        client, _, _ = api

        with client.websocket_connect("/ws") as ws:
            ws.send_json({"action": "subscribe", "sport": "football", "itemId": 1})
            assert ws.receive_json() == {"event": "subscribed", "topic": "football:1"}
            update = ws.receive_json()

        assert update["event"] == "football:1-update"
        assert update["data"] == [{"id": 1, "state": "live"}]

    def test_activating_refresh_runs_in_connection_log_context(self, api):
        client, _, upstream = api
        seen = {}

        async def fetch(domain, params):
            seen.update(current_context())
            return make_records(3)

        upstream.fetch.side_effect = fetch

        with client.websocket_connect("/ws", headers={"X-Request-ID": "ws-42"}) as ws:
            ws.send_json({"action": "subscribe", "sport": "football"})
            ws.receive_json()
            ws.receive_json()

        assert seen["request_id"] == "ws-42"
        assert seen["transport"] == "websocket"
        assert seen["topic"] == "football"
        assert seen["trigger"] == "activate"
        assert seen["subscriber"]
