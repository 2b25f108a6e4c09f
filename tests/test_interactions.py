"""Tests for the signed /interactions endpoint."""

import json

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from core.errors import InvalidSignature, MethodNotAllowed, MissingHeaders
from core.interactions import (
    SIGNATURE_HEADER,
    TIMESTAMP_HEADER,
    load_public_key,
    verify_interaction_request,
    verify_signature,
)

from .conftest import make_command, make_component


class TestVerifySignature:
    def test_valid_signature(self, private_key, public_key_hex):
        body = b'{"type":1}'
        signature = private_key.sign(b"123" + body).hex()
        assert verify_signature(load_public_key(public_key_hex), signature, "123", body)

    def test_any_modified_byte_fails(self, private_key, public_key_hex):
        public_key = load_public_key(public_key_hex)
        body = b'{"type":1,"id":"42"}'
        signature = private_key.sign(b"123" + body).hex()

        for i in range(len(body)):
            mutated = body[:i] + bytes([body[i] ^ 0x01]) + body[i + 1:]
            assert not verify_signature(public_key, signature, "123", mutated)

    def test_modified_timestamp_fails(self, private_key, public_key_hex):
        body = b'{"type":1}'
        signature = private_key.sign(b"123" + body).hex()
        assert not verify_signature(load_public_key(public_key_hex), signature, "124", body)

    def test_other_key_fails(self, public_key_hex):
        body = b'{"type":1}'
        signature = Ed25519PrivateKey.generate().sign(b"123" + body).hex()
        assert not verify_signature(load_public_key(public_key_hex), signature, "123", body)

    def test_malformed_hex_fails(self, public_key_hex):
        assert not verify_signature(load_public_key(public_key_hex), "zz-not-hex", "123", b"{}")


class TestVerifyRequest:
    def test_rejects_non_post(self, public_key_hex):
        with pytest.raises(MethodNotAllowed):
            verify_interaction_request("GET", {}, b"", load_public_key(public_key_hex))

    def test_rejects_missing_headers(self, public_key_hex):
        with pytest.raises(MissingHeaders):
            verify_interaction_request("POST", {SIGNATURE_HEADER: "ab"}, b"{}", load_public_key(public_key_hex))

    def test_rejects_bad_signature(self, public_key_hex):
        headers = {SIGNATURE_HEADER: "00" * 64, TIMESTAMP_HEADER: "1"}
        with pytest.raises(InvalidSignature):
            verify_interaction_request("POST", headers, b"{}", load_public_key(public_key_hex))

    def test_returns_raw_body(self, private_key, public_key_hex):
        body = b'{"type":1}'
        headers = {SIGNATURE_HEADER: private_key.sign(b"1" + body).hex(), TIMESTAMP_HEADER: "1"}
        assert verify_interaction_request("POST", headers, body, load_public_key(public_key_hex)) == body


class TestEndpoint:
    @pytest.mark.parametrize("method", ["get", "put", "patch", "delete"])
    def test_wrong_method_is_405(self, client, method):
        response = getattr(client, method)("/interactions")
        assert response.status_code == 405
        assert response.get_json() == {"error": "Method not allowed"}

    def test_missing_headers_is_400(self, client):
        response = client.post("/interactions", data=b'{"type":1}', content_type="application/json")
        assert response.status_code == 400
        assert response.get_json() == {"error": "Missing headers"}

    def test_bad_signature_is_401(self, client, sign):
        headers = sign(b'{"type":1}')
        response = client.post("/interactions", data=b'{"type":2}', headers=headers,
                               content_type="application/json")
        assert response.status_code == 401
        assert response.get_json() == {"error": "Invalid signature"}

    def test_ping_returns_pong(self, post_interaction):
        response = post_interaction({"id": "1", "type": 1})
        assert response.status_code == 200
        assert response.get_json() == {"type": 1}

    def test_signed_garbage_is_400(self, post_interaction):
        response = post_interaction(b"not json")
        assert response.status_code == 400
        assert "error" in response.get_json()

    def test_unsupported_type_is_400(self, post_interaction):
        response = post_interaction({"id": "1", "type": 4, "data": {}})
        assert response.status_code == 400
        assert "Invalid interaction type" in response.get_json()["error"]

    def test_unknown_command_is_404_with_message(self, post_interaction):
        response = post_interaction(make_command("nope"))
        body = response.get_json()
        assert response.status_code == 404
        assert body["error"] == "Command not found"
        assert body["data"]["content"] == "Command not found"
        assert body["data"]["flags"] == 64

    def test_unknown_component_is_404(self, post_interaction):
        response = post_interaction(make_component("mystery_123"))
        assert response.status_code == 404
        assert response.get_json()["data"]["content"] == "Component not found"

    def test_hello_command(self, post_interaction):
        response = post_interaction(make_command("hello", username="carol"))
        body = response.get_json()
        assert response.status_code == 200
        assert body["type"] == 4
        assert body["data"]["content"] == "Hello `carol`!"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json()["handlers"] == 4

    def test_unknown_route_is_json_404(self, client):
        response = client.get("/nowhere")
        assert response.status_code == 404
        assert json.loads(response.data) == {"error": "Not Found"}
