"""
Register the bot's slash commands with Discord

Posts each global command definition in order. A failed registration is
logged and the rest continue.

Usage:
    python -m scripts.register_commands [--pause SECONDS] [--only NAME ...]
"""

import argparse
import logging
import sys
import time

import discord

import config
from core.discord_rest import DiscordREST
from core.errors import UpstreamFailure
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

STRING = discord.AppCommandOptionType.string.value
INTEGER = discord.AppCommandOptionType.integer.value
CHAT_INPUT = discord.AppCommandType.chat_input.value

COMMANDS = [
    {
        "name": "hello",
        "type": CHAT_INPUT,
        "description": "Say hello",
    },
    {
        "name": "create",
        "type": CHAT_INPUT,
        "description": "Start a giveaway",
        "options": [
            {"name": "prize", "description": "What the winners get", "type": STRING, "required": True},
            {"name": "duration", "description": "How long it runs, e.g. 1h 30m", "type": STRING, "required": True},
            {"name": "message", "description": "Message shown on the giveaway", "type": STRING, "required": True},
            {"name": "image", "description": "Image URL for the giveaway", "type": STRING, "required": False},
            {"name": "winners", "description": "Number of winners (default 1)", "type": INTEGER,
             "required": False, "min_value": 1},
        ],
    },
]


def register_commands(rest, commands=COMMANDS, pause=1.0):
    """
    Register commands one by one.

    Returns:
        (registered names, failed names)
    """
    registered, failed = [], []
    for index, definition in enumerate(commands):
        name = definition["name"]
        try:
            rest.create_global_command(definition)
        except UpstreamFailure as e:
            logger.error(f"❌ Failed to register /{name}: {e}")
            failed.append(name)
        else:
            logger.info(f"✅ Registered /{name}")
            registered.append(name)

        if pause and index < len(commands) - 1:
            time.sleep(pause)

    return registered, failed


def main(argv=None):
    parser = argparse.ArgumentParser(description="Register slash commands with Discord")
    parser.add_argument("--pause", type=float, default=1.0, help="Seconds to wait between registrations")
    parser.add_argument("--only", nargs="+", metavar="NAME", help="Register only these commands")
    args = parser.parse_args(argv)

    setup_logging(log_level=config.LOG_LEVEL)

    commands = COMMANDS
    if args.only:
        commands = [c for c in COMMANDS if c["name"] in args.only]
        unknown = set(args.only) - {c["name"] for c in commands}
        if unknown:
            parser.error(f"Unknown command(s): {', '.join(sorted(unknown))}")

    rest = DiscordREST(
        config.require("DISCORD_TOKEN"),
        application_id=config.require("DISCORD_CLIENT_ID"),
        api_base=config.DISCORD_API_BASE,
        timeout=config.HTTP_TIMEOUT,
    )
    try:
        registered, failed = register_commands(rest, commands, pause=args.pause)
    finally:
        rest.close()

    print(f"\nRegistered {len(registered)}/{len(commands)} command(s)")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
