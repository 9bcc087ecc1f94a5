"""
FastAPI application entry point.

Uses structured logging from sportsfeed.logging. The feed engine is built
once per app and stored on ``app.state``; routers reach it through
``backend.app.dependencies``.
"""

from html import escape
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import HTMLResponse

from sportsfeed import __version__
from sportsfeed.engine import FeedEngine, build_engine
from sportsfeed.logging import RequestContextMiddleware, configure_logging, get_logger
from sportsfeed.transport.base import FanoutTransport, Transport
from sportsfeed.transport.redis_publisher import RedisPublisher
from sportsfeed.transport.websocket_hub import WebSocketHub

from .config import Settings, get_settings
from .dependencies import get_engine, get_hub
from .error_handlers import register_exception_handlers
from .routers import football as football_router
from .routers import sports as sports_router
from .routers import stream as stream_router

logger = get_logger("api")


def build_transport(settings: Settings, hub: WebSocketHub) -> Transport:
    """WebSocket rooms, plus Redis pub/sub when REDIS_URL is configured."""
    if not settings.redis_url:
        return hub
    return FanoutTransport([hub, RedisPublisher(settings.redis_url, prefix=settings.redis_channel_prefix)])


def render_index(engine: FeedEngine) -> str:
    sports = "".join(f"<li><code>{escape(s)}</code></li>" for s in engine.sports)
    return f"""<!DOCTYPE html>
<html>
<head><title>{escape(engine.settings.app_name)}</title></head>
<body>
<h1>{escape(engine.settings.app_name)}</h1>
<h2>Sports</h2>
<ul>{sports}</ul>
<h2>Endpoints</h2>
<ul>
<li><code>GET /{{sport}}/matches</code> (date, leagueId, leagueName, season, countryCode, timezone, homeTeamId, awayTeamId)</li>
<li><code>GET /{{sport}}/matches/{{matchId}}</code></li>
<li><code>GET /{{sport}}/snapshot</code></li>
<li><code>GET /{{sport}}/highlights/{{highlightId}}</code></li>
<li><code>GET /football/highlights</code> (limit, offset, timezone, countryCode, leagueId)</li>
<li><code>GET /football/standings</code> (leagueId, season)</li>
<li><code>GET /football/h2h</code> (team1, team2)</li>
<li><code>GET /status</code></li>
</ul>
<h2>Live updates</h2>
<p>Connect to <code>/ws</code> and send
<code>{{"action": "subscribe", "sport": "football"}}</code>.
Add <code>"itemId"</code> to follow a single match.
Updates arrive as <code>&lt;sport&gt;-update</code> events.</p>
</body>
</html>"""


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[FeedEngine] = None,
    hub: Optional[WebSocketHub] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(level="DEBUG" if settings.debug else "INFO")

    hub = hub or WebSocketHub()
    if engine is None:
        engine = build_engine(settings, build_transport(settings, hub))

    app = FastAPI(title=settings.app_name, debug=settings.debug, version=__version__)
    app.state.settings = settings
    app.state.engine = engine
    app.state.hub = hub

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "Accept-Encoding", "Origin", "X-Requested-With"],
        expose_headers=["Retry-After", "X-Request-ID"],
    )

    # GZip compression for responses > 500 bytes
    app.add_middleware(GZipMiddleware, minimum_size=500)

    # Outermost: request id and request logging share one log context
    app.add_middleware(RequestContextMiddleware)

    register_exception_handlers(app)

    @app.on_event("startup")
    async def startup_event():
        logger.info("app_startup", app_name=settings.app_name, sports=list(engine.sports))
        for warning in settings.validate_production_config():
            logger.warning("config_warning", message=warning)
        engine.start()

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("app_shutdown")
        await engine.shutdown()

    @app.get("/", response_class=HTMLResponse, include_in_schema=False)
    def index(engine: FeedEngine = Depends(get_engine)):
        return render_index(engine)

    @app.get("/health", tags=["health"])
    def health_check():
        """Liveness check."""
        return {"status": "ok"}

    @app.get("/status", tags=["health"])
    def status_check(
        engine: FeedEngine = Depends(get_engine),
        hub: WebSocketHub = Depends(get_hub),
    ):
        """Topic phases, subscriber counts and cache stats."""
        return {
            "status": "ok",
            "connections": hub.connection_count,
            **engine.status(),
        }

    # Football-specific routes first so /football/... is not read as /{sport}/...
    app.include_router(football_router.router)
    app.include_router(sports_router.router)
    app.include_router(stream_router.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("backend.app.main:app", host=settings.host, port=settings.port, reload=settings.debug)
