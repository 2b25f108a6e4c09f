"""
Interaction Dispatcher
Routes an authenticated interaction to its registered handler

Ping                 -> Pong, no lookup
ApplicationCommand   -> command:<data.name>
MessageComponent     -> label:<custom_id before first "_">, handler also gets the text after it
anything else        -> UnsupportedInteraction (HTTP 400)
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Tuple

import discord

from utils.error_helpers import log_exceptions

from .errors import UnsupportedInteraction
from .registry import COMMAND, LABEL, HandlerRegistry, dispatch_key
from .responses import message_response, pong

logger = logging.getLogger(__name__)

PING = discord.InteractionType.ping.value
APPLICATION_COMMAND = discord.InteractionType.application_command.value
MESSAGE_COMPONENT = discord.InteractionType.component.value


def split_custom_id(custom_id: str) -> Tuple[str, str]:
    """'action_123' -> ('action', '123')"""
    label, _, correlation_id = (custom_id or "").partition("_")
    return label, correlation_id


class InteractionDispatcher:
    """Selects and invokes the handler for an interaction"""

    def __init__(self, registry: HandlerRegistry):
        self.registry = registry

    def dispatch(self, interaction: Dict[str, Any]) -> Tuple[Dict[str, Any], int]:
        """
        Handle one interaction.

        Returns:
            (response body, HTTP status). Unknown commands/labels answer 404
            with an ephemeral message body.
        """
        interaction_type = interaction.get("type")
        data = interaction.get("data") or {}

        if interaction_type == PING:
            return pong(), 200

        if interaction_type == APPLICATION_COMMAND:
            name = data.get("name", "")
            handler = self.registry.resolve(COMMAND, name)
            if handler is None:
                logger.warning(f"No handler for {dispatch_key(COMMAND, name)}")
                return self._not_found("Command not found"), 404
            logger.info(f"/{name} from interaction {interaction.get('id')}")
            return handler(interaction), 200

        if interaction_type == MESSAGE_COMPONENT:
            label, correlation_id = split_custom_id(data.get("custom_id", ""))
            handler = self.registry.resolve(LABEL, label)
            if handler is None:
                logger.warning(f"No handler for {dispatch_key(LABEL, label)}")
                return self._not_found("Component not found"), 404
            logger.debug(f"Button {label} clicked for {correlation_id}")
            return handler(interaction, correlation_id), 200

        raise UnsupportedInteraction(f"Invalid interaction type: {interaction_type}")

    @staticmethod
    def _not_found(content):
        response = message_response(content)
        response["error"] = content
        return response


class DeferredRunner:
    """
    Runs work after the HTTP response has been sent.

    Work is delayed by start_delay so the deferred acknowledgment reaches
    Discord before anything edits the placeholder. Exceptions are logged with
    traceback. inline=True runs everything immediately on the caller's
    thread (tests, CLI).
    """

    def __init__(self, start_delay: float = 1.0, max_workers: int = 4, inline: bool = False):
        self.start_delay = start_delay
        self.inline = inline
        self._executor = None if inline else ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="deferred"
        )

    def submit(self, func, *args, **kwargs):
        if self.inline:
            return func(*args, **kwargs)

        return self._executor.submit(self._run, func, *args, **kwargs)

    def _run(self, func, *args, **kwargs):
        if self.start_delay:
            time.sleep(self.start_delay)
        with log_exceptions("deferred work", handler=getattr(func, "__name__", repr(func))):
            return func(*args, **kwargs)

    def shutdown(self, wait=True):
        if self._executor:
            self._executor.shutdown(wait=wait)
