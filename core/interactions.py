"""
Discord Interactions Endpoint
Authenticates and routes inbound interaction webhooks

Discord signs every interaction with the application's Ed25519 key.
The signed message is: timestamp + raw_body

Usage:
    from core.interactions import register_interaction_routes

    register_interaction_routes(app, dispatcher, public_key_hex)
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional

from cryptography.exceptions import InvalidSignature as CryptoInvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from flask import Blueprint, current_app, jsonify, request

from .dispatcher import InteractionDispatcher
from .errors import InteractionError, InvalidBody, InvalidSignature, MethodNotAllowed, MissingHeaders

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Signature-Ed25519"
TIMESTAMP_HEADER = "X-Signature-Timestamp"
REQUIRED_HEADERS = (SIGNATURE_HEADER, TIMESTAMP_HEADER)

# -------------------------
# Signature Verification
# -------------------------

def load_public_key(public_key_hex: str) -> Ed25519PublicKey:
    """Parse the application's hex encoded public key (fails at startup if malformed)"""
    return Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key_hex))


def verify_signature(public_key: Ed25519PublicKey, signature_hex: str, timestamp: str, raw_body: bytes) -> bool:
    """
    Verify Discord's detached Ed25519 signature.

    Args:
        public_key: Application public key
        signature_hex: X-Signature-Ed25519 header value
        timestamp: X-Signature-Timestamp header value
        raw_body: Raw request body as bytes

    Returns:
        True if signature is valid, False otherwise
    """
    try:
        signature = bytes.fromhex(signature_hex)
    except ValueError:
        logger.warning("Signature header is not valid hex")
        return False

    try:
        public_key.verify(signature, timestamp.encode("utf-8") + raw_body)
        return True
    except CryptoInvalidSignature:
        return False


def verify_interaction_request(method: str, headers: Mapping[str, str], raw_body: bytes,
                               public_key: Ed25519PublicKey) -> bytes:
    """
    Authenticate an inbound request.

    Returns:
        The raw body, to be parsed by the caller (never read twice)

    Raises:
        MethodNotAllowed, MissingHeaders, InvalidSignature
    """
    if method != "POST":
        raise MethodNotAllowed()

    if not all(headers.get(header) for header in REQUIRED_HEADERS):
        raise MissingHeaders()

    if not verify_signature(public_key, headers[SIGNATURE_HEADER], headers[TIMESTAMP_HEADER], raw_body):
        raise InvalidSignature()

    return raw_body


def parse_interaction(raw_body: bytes) -> Dict[str, Any]:
    try:
        interaction = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise InvalidBody()
    if not isinstance(interaction, dict):
        raise InvalidBody("Interaction must be a JSON object")
    return interaction

# -------------------------
# Flask Routes
# -------------------------

interactions_bp = Blueprint("interactions", __name__)


@interactions_bp.route("/interactions", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
def handle_interaction():
    """
    Main interactions endpoint.

    Returns:
        200 with an interaction response on all handled paths
        404 for unknown commands/components
        405 / 400 / 401 with {"error": ...} on rejected requests
    """
    public_key = current_app.config["INTERACTIONS_PUBLIC_KEY"]
    dispatcher: InteractionDispatcher = current_app.config["INTERACTIONS_DISPATCHER"]

    # Raw body first, before any JSON parsing
    raw_body: bytes = request.get_data(cache=True)

    try:
        body = verify_interaction_request(request.method, request.headers, raw_body, public_key)
        interaction = parse_interaction(body)
        response, status = dispatcher.dispatch(interaction)
    except InteractionError as e:
        logger.warning(f"Rejected interaction request ({e.status}): {e}")
        return jsonify({"error": str(e)}), e.status

    return jsonify(response), status


def register_interaction_routes(app, dispatcher: InteractionDispatcher, public_key_hex: Optional[str]):
    """
    Register the interactions blueprint with a Flask app.

    Args:
        app: Flask application
        dispatcher: Dispatcher holding the frozen handler registry
        public_key_hex: Application public key from the developer portal
    """
    if not public_key_hex:
        raise ValueError("DISCORD_PUBLIC_KEY not found in environment variables")

    app.config["INTERACTIONS_PUBLIC_KEY"] = load_public_key(public_key_hex)
    app.config["INTERACTIONS_DISPATCHER"] = dispatcher
    app.register_blueprint(interactions_bp)
    logger.info("✅ Registered interaction routes at /interactions")
