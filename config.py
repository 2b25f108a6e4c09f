"""
Giveaway Bot Configuration
All configurable parameters, read from the environment (.env supported)
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Discord application credentials
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN", "")
DISCORD_PUBLIC_KEY = os.getenv("DISCORD_PUBLIC_KEY", "")
DISCORD_CLIENT_ID = os.getenv("DISCORD_CLIENT_ID") or os.getenv("CLIENT_ID", "")
DISCORD_API_BASE = os.getenv("DISCORD_API_BASE", "https://discord.com/api/v10")

# Database configuration with cloud PostgreSQL support
DATABASE_URL = os.getenv("DATABASE_URL", "") or "sqlite:///giveaways.db"

# Convert postgres:// to postgresql:// for SQLAlchemy compatibility (Heroku uses postgres://)
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# Optional: dashboard events
REDIS_URL = os.getenv("REDIS_URL", "")

# Web server
PORT = int(os.getenv("PORT", "8000"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE") or None

# Outbound HTTP timeout (seconds)
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "10"))

# Giveaway limits
GIVEAWAY_MAX_DURATION = int(os.getenv("GIVEAWAY_MAX_DURATION", str(30 * 86400)))  # 30 days
DEFAULT_EMBED_COLOR = 0x36393E

# Deferred work: wait before editing the placeholder so the ack lands first
DEFERRED_START_DELAY = float(os.getenv("DEFERRED_START_DELAY", "1.0"))
DEFERRED_WORKERS = int(os.getenv("DEFERRED_WORKERS", "4"))

# Draw scheduler
SCHEDULER_POLL_INTERVAL = float(os.getenv("SCHEDULER_POLL_INTERVAL", "5"))
SCHEDULER_WORKERS = int(os.getenv("SCHEDULER_WORKERS", "4"))
TASK_VISIBILITY_TIMEOUT = int(os.getenv("TASK_VISIBILITY_TIMEOUT", "300"))  # 5 minutes
TASK_MAX_ATTEMPTS = int(os.getenv("TASK_MAX_ATTEMPTS", "5"))
TASK_RETRY_BACKOFF = int(os.getenv("TASK_RETRY_BACKOFF", "30"))


def require(name):
    """Return a required setting or fail at startup"""
    value = globals().get(name)
    if not value:
        raise ValueError(f"{name} not found in environment variables")
    return value
