"""
Handler Registry
Process-wide table mapping dispatch keys to interaction handlers

Two kinds of keys exist:
- command: slash-command name, e.g. "create"
- label:   component custom_id prefix (text before the first "_"), e.g. "action"

The table is built once at startup and frozen before the first request.

Usage:
    registry = HandlerRegistry()

    @registry.command("hello")
    def hello(interaction):
        ...

    registry.register(LABEL, "info", manager.list_participants)
    registry.ensure_ready()
"""

import logging
from typing import Callable, Dict, Optional, Tuple

from .errors import DuplicateRegistration, NoHandlersRegistered, RegistrationError

logger = logging.getLogger(__name__)

COMMAND = "command"
LABEL = "label"
KINDS = (COMMAND, LABEL)


def dispatch_key(kind: str, key: str) -> str:
    return f"{kind}:{key}"


class HandlerRegistry:
    """Explicit dispatch table; duplicate keys are a startup error"""

    def __init__(self):
        self._handlers: Dict[Tuple[str, str], Callable] = {}
        self._frozen = False

    def register(self, kind: str, key: str, handler: Callable) -> Callable:
        if kind not in KINDS:
            raise RegistrationError(f"Unknown handler kind: {kind}")
        if not key:
            raise RegistrationError(f"Empty {kind} key")
        if self._frozen:
            raise RegistrationError(f"Registry is frozen, cannot add {dispatch_key(kind, key)}")
        if (kind, key) in self._handlers:
            raise DuplicateRegistration(dispatch_key(kind, key))

        self._handlers[(kind, key)] = handler
        logger.info(f"==> {dispatch_key(kind, key)}")
        return handler

    def command(self, name: str):
        """Decorator form of register(COMMAND, name, func)"""
        def decorator(func):
            return self.register(COMMAND, name, func)
        return decorator

    def button(self, label: str):
        """Decorator form of register(LABEL, label, func)"""
        def decorator(func):
            return self.register(LABEL, label, func)
        return decorator

    def resolve(self, kind: str, key: str) -> Optional[Callable]:
        return self._handlers.get((kind, key))

    def ensure_ready(self):
        """Fail startup if nothing was registered, then lock the table"""
        if not self._handlers:
            raise NoHandlersRegistered()
        self.freeze()
        logger.info(f"✅ {len(self._handlers)} interaction handlers registered")

    def freeze(self):
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __len__(self):
        return len(self._handlers)

    def __contains__(self, item):
        return item in self._handlers
