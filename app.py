"""
Giveaway Bot - Interactions web app

Flask application serving Discord's interaction webhooks. Run with:
    gunicorn app:app
"""

import logging
from datetime import timedelta

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

import config
from core.discord_rest import DiscordREST
from core.dispatcher import DeferredRunner, InteractionDispatcher
from core.interactions import register_interaction_routes
from core.registry import HandlerRegistry
from giveaways.database import create_db_engine, setup_giveaway_database
from giveaways.manager import GiveawayManager
from giveaways.queue import DRAW_QUEUE, DelayedTaskQueue
from giveaways.store import GiveawayStore
from utils.error_helpers import json_error
from utils.logging_config import setup_logging
from utils.redis_publisher import BotRedisPublisher

logger = logging.getLogger(__name__)


def build_manager(engine=None, rest=None, runner=None, publisher=None, **overrides) -> GiveawayManager:
    """
    Wire store, queue, REST client and runner into a GiveawayManager.

    Anything not passed in is built from config. Extra keyword arguments go
    straight to GiveawayManager (clock, rng, color_resolver, ...).
    """
    if engine is None:
        engine = create_db_engine(config.DATABASE_URL)
        setup_giveaway_database(engine)

    if rest is None:
        rest = DiscordREST(
            config.require("DISCORD_TOKEN"),
            application_id=config.DISCORD_CLIENT_ID or None,
            api_base=config.DISCORD_API_BASE,
            timeout=config.HTTP_TIMEOUT,
        )

    if runner is None:
        runner = DeferredRunner(start_delay=config.DEFERRED_START_DELAY, max_workers=config.DEFERRED_WORKERS)

    if publisher is None:
        publisher = BotRedisPublisher(config.REDIS_URL)

    store = GiveawayStore(engine)
    queue = DelayedTaskQueue(
        engine,
        DRAW_QUEUE,
        visibility_timeout=config.TASK_VISIBILITY_TIMEOUT,
        max_attempts=config.TASK_MAX_ATTEMPTS,
        retry_backoff=config.TASK_RETRY_BACKOFF,
    )

    overrides.setdefault("max_duration", timedelta(seconds=config.GIVEAWAY_MAX_DURATION))
    overrides.setdefault("claim_timeout", config.TASK_VISIBILITY_TIMEOUT)
    return GiveawayManager(store, queue, rest, runner, publisher=publisher, **overrides)


def create_app(manager: GiveawayManager = None, public_key_hex: str = None) -> Flask:
    """
    Build the interactions app.

    Startup fails if no handlers are registered, a handler key is registered
    twice, or the public key is missing.
    """
    if manager is None:
        setup_logging(log_level=config.LOG_LEVEL, log_file=config.LOG_FILE)
        manager = build_manager()

    registry = HandlerRegistry()
    manager.register_handlers(registry)
    registry.ensure_ready()

    app = Flask(__name__)
    app.config["GIVEAWAY_MANAGER"] = manager
    register_interaction_routes(app, InteractionDispatcher(registry), public_key_hex or config.DISCORD_PUBLIC_KEY)

    @app.route('/health')
    def health():
        return jsonify({"status": "healthy", "handlers": len(registry)}), 200

    @app.errorhandler(404)
    def handle_404(e):
        logger.info(f"ℹ️ 404: {request.method} {request.path}")
        return json_error("Not Found", 404)

    @app.errorhandler(Exception)
    def handle_error(e):
        if isinstance(e, HTTPException):
            return json_error(e.name, e.code)
        logger.error(f"🚨 Unhandled error: {e}", exc_info=True)
        return json_error("Internal server error", 500, type=type(e).__name__)

    logger.info(f"✅ Interactions app ready ({len(registry)} handlers)")
    return app


_app = None


def get_app() -> Flask:
    """Process-wide app, built from config on first use"""
    global _app
    if _app is None:
        _app = create_app()
    return _app


def __getattr__(name):
    # gunicorn loads "app:app"; build it on first access instead of at import
    if name == "app":
        return get_app()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


if __name__ == '__main__':
    app = get_app()
    logger.info(f"🚀 Starting interactions server on port {config.PORT}")
    app.run(host='0.0.0.0', port=config.PORT, debug=False)
