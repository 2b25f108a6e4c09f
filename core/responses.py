"""
Interaction payload helpers
Builders for interaction responses and accessors for inbound interaction data
"""

from typing import Any, Dict, Optional

import discord

EPHEMERAL = discord.MessageFlags(ephemeral=True).value


def pong() -> Dict[str, Any]:
    return {"type": discord.InteractionResponseType.pong.value}


def message_response(content: str, ephemeral: bool = True) -> Dict[str, Any]:
    """Channel message reply; ephemeral by default"""
    data = {"content": content}
    if ephemeral:
        data["flags"] = EPHEMERAL
    return {
        "type": discord.InteractionResponseType.channel_message.value,
        "data": data,
    }


def deferred_response(ephemeral: bool = True) -> Dict[str, Any]:
    """Acknowledge now, edit the placeholder later"""
    return {
        "type": discord.InteractionResponseType.deferred_channel_message.value,
        "data": {"flags": EPHEMERAL} if ephemeral else {},
    }


def get_option(interaction: Dict[str, Any], name: str, default=None):
    """Value of a slash-command option, or default when it was not supplied"""
    for option in (interaction.get("data") or {}).get("options") or []:
        if option.get("name") == name:
            return option.get("value")
    return default


def interaction_user(interaction: Dict[str, Any]) -> Dict[str, Any]:
    """Invoking user; guild interactions nest it under member"""
    member = interaction.get("member") or {}
    return member.get("user") or interaction.get("user") or {}


def display_name(interaction: Dict[str, Any]) -> Optional[str]:
    user = interaction_user(interaction)
    return user.get("username") or user.get("global_name")
