"""Tiny HTTP server so the hosting platform can see the bot is alive."""
from __future__ import annotations

import logging

import aiohttp.web

import config

logger = logging.getLogger("skirmish.http")


async def _handle_root(request: aiohttp.web.Request) -> aiohttp.web.Response:
    """GET / - plain-text liveness check."""
    return aiohttp.web.Response(text="Skirmish bot is running.\n")


async def _handle_health(request: aiohttp.web.Request) -> aiohttp.web.Response:
    """GET /health - liveness plus whether the Discord connection is up."""
    bot = request.app["bot"]
    engine = getattr(bot, "engine", None)
    return aiohttp.web.json_response(
        {
            "status": "ok",
            "discord_ready": bot.is_ready(),
            "players": len(engine.registry.players) if engine else 0,
        }
    )


def create_app(bot) -> aiohttp.web.Application:
    """Create aiohttp app with bot reference."""
    app = aiohttp.web.Application()
    app["bot"] = bot
    app.router.add_get("/", _handle_root)
    app.router.add_get("/health", _handle_health)
    return app


async def start_http_server(bot, host: str = config.HTTP_HOST, port: int = config.PORT) -> aiohttp.web.AppRunner:
    """Start the liveness server alongside the bot. Returns the runner so it can be cleaned up."""
    app = create_app(bot)
    runner = aiohttp.web.AppRunner(app)
    await runner.setup()
    site = aiohttp.web.TCPSite(runner, host, port)
    await site.start()
    logger.info("HTTP server listening on %s:%d", host, port)
    return runner
