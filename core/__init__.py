"""
Core modules for the Giveaway Bot

Modules:
- interactions: Signed interaction webhook endpoint (Ed25519)
- registry: Command and button handler registry
- dispatcher: Interaction routing and deferred work
- responses: Interaction response builders
- discord_rest: Discord REST client
- errors: Error types mapped to HTTP statuses
"""

from .discord_rest import DiscordREST
from .dispatcher import DeferredRunner, InteractionDispatcher
from .errors import (
    InteractionError,
    RegistrationError,
    UpstreamFailure,
)
from .interactions import (
    register_interaction_routes,
    verify_interaction_request,
    verify_signature,
)
from .registry import HandlerRegistry

__all__ = [
    # REST
    'DiscordREST',
    # Dispatch
    'DeferredRunner',
    'InteractionDispatcher',
    'HandlerRegistry',
    # Errors
    'InteractionError',
    'RegistrationError',
    'UpstreamFailure',
    # Webhook endpoint
    'register_interaction_routes',
    'verify_interaction_request',
    'verify_signature',
]
