"""
Discord REST Client
Minimal bot-authenticated client for the message endpoints the giveaway system needs

All calls have a finite timeout. Any transport error or non-2xx response
raises UpstreamFailure carrying the HTTP status.
"""

import logging
import time
from typing import Any, Dict, Optional

import requests

from utils.logging_config import log_api_call

from .errors import UpstreamFailure

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://discord.com/api/v10"


class DiscordREST:
    """Bot-token REST client (channels, messages, interaction webhooks, commands)"""

    def __init__(self, token: str, application_id: str = None, api_base: str = DEFAULT_API_BASE,
                 timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.application_id = application_id
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bot {token}",
            "Content-Type": "application/json",
        })

    def _request(self, operation: str, method: str, path: str, body: Dict[str, Any] = None):
        url = f"{self.api_base}{path}"
        started = time.monotonic()
        try:
            response = self.session.request(method, url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamFailure(operation, detail=str(e)) from e

        log_api_call(logger, "Discord", f"{method} {path}", response.status_code, time.monotonic() - started)

        if not response.ok:
            raise UpstreamFailure(operation, response.status_code, response.text[:200])

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # -------------------------
    # Messages
    # -------------------------

    def post_message(self, channel_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("Create message", "POST", f"/channels/{channel_id}/messages", body)

    def fetch_message(self, channel_id: str, message_id: str) -> Dict[str, Any]:
        return self._request("Fetch message", "GET", f"/channels/{channel_id}/messages/{message_id}")

    def patch_message(self, channel_id: str, message_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("Edit message", "PATCH", f"/channels/{channel_id}/messages/{message_id}", body)

    # -------------------------
    # Interactions
    # -------------------------

    def edit_original_response(self, interaction_token: str, body: Dict[str, Any],
                               application_id: str = None) -> Dict[str, Any]:
        """Edit the deferred placeholder of an interaction"""
        application_id = application_id or self.application_id
        return self._request(
            "Edit original response",
            "PATCH",
            f"/webhooks/{application_id}/{interaction_token}/messages/@original",
            body,
        )

    def create_global_command(self, definition: Dict[str, Any]) -> Dict[str, Any]:
        if not self.application_id:
            raise ValueError("application_id is required to register commands")
        return self._request(
            f"Register /{definition.get('name')}",
            "POST",
            f"/applications/{self.application_id}/commands",
            definition,
        )

    def close(self):
        self.session.close()
