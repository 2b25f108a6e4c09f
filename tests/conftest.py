"""Pytest configuration and fixtures."""

import copy
import json
import random
from datetime import datetime, timezone

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from app import create_app
from core.dispatcher import DeferredRunner
from core.errors import UpstreamFailure
from core.interactions import SIGNATURE_HEADER, TIMESTAMP_HEADER
from giveaways.database import create_db_engine, setup_giveaway_database
from giveaways.manager import GiveawayManager
from giveaways.queue import DelayedTaskQueue, ScheduledDrawTask
from giveaways.store import GiveawayStore

CHANNEL_ID = "555"
APPLICATION_ID = "777"


class FakeClock:
    """Controllable wall clock shared by store, queue and manager"""

    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def time(self):
        return self.now

    def datetime(self):
        return datetime.fromtimestamp(self.now, tz=timezone.utc)

    def advance(self, seconds):
        self.now += seconds


class FakeDiscordREST:
    """Records every REST call; set fail_* to make a call raise UpstreamFailure"""

    def __init__(self):
        self.messages = {}
        self.posts = []
        self.patches = []
        self.edits = []
        self.fail_post = False
        self.fail_fetch = False
        self.fail_patch = False
        self._next_id = 9000

    def post_message(self, channel_id, body):
        if self.fail_post:
            raise UpstreamFailure("Create message", 403, "Missing Access")
        self._next_id += 1
        message = {"id": str(self._next_id), "channel_id": channel_id, **copy.deepcopy(body)}
        self.messages[(channel_id, message["id"])] = message
        self.posts.append((channel_id, body))
        return message

    def fetch_message(self, channel_id, message_id):
        if self.fail_fetch or (channel_id, message_id) not in self.messages:
            raise UpstreamFailure("Fetch message", 404, "Unknown Message")
        return copy.deepcopy(self.messages[(channel_id, message_id)])

    def patch_message(self, channel_id, message_id, body):
        if self.fail_patch:
            raise UpstreamFailure("Edit message", 500, "Internal Server Error")
        self.messages[(channel_id, message_id)].update(copy.deepcopy(body))
        self.patches.append((channel_id, message_id, body))
        return self.messages[(channel_id, message_id)]

    def edit_original_response(self, interaction_token, body, application_id=None):
        self.edits.append((interaction_token, body))
        return body

    @property
    def last_message_id(self):
        return str(self._next_id)


def make_user(user_id="1", username="alice"):
    return {"id": user_id, "username": username, "global_name": username.title()}


def make_command(name, options=None, interaction_id="100", user_id="1", username="alice"):
    return {
        "id": interaction_id,
        "application_id": APPLICATION_ID,
        "type": 2,
        "token": f"token-{interaction_id}",
        "channel_id": CHANNEL_ID,
        "member": {"user": make_user(user_id, username)},
        "data": {
            "name": name,
            "options": [{"name": k, "value": v} for k, v in (options or {}).items()],
        },
    }


def make_component(custom_id, user_id="2", username="bob", interaction_id="200"):
    return {
        "id": interaction_id,
        "application_id": APPLICATION_ID,
        "type": 3,
        "token": f"token-{interaction_id}",
        "channel_id": CHANNEL_ID,
        "member": {"user": make_user(user_id, username)},
        "data": {"custom_id": custom_id, "component_type": 2},
    }


def start_giveaway(manager, rest, interaction_id="100", duration="1m", winners=1, prize="Nitro"):
    """Run /create end to end and return the scheduled draw task"""
    response = manager.create(make_command(
        "create",
        {"prize": prize, "duration": duration, "message": "Good luck!", "winners": winners},
        interaction_id=interaction_id,
    ))
    assert response["type"] == 5
    return ScheduledDrawTask(interaction_id, CHANNEL_ID, rest.last_message_id)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'giveaways.db'}")
    setup_giveaway_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine, clock):
    return GiveawayStore(engine, clock=clock.time)


@pytest.fixture
def queue(engine, clock):
    return DelayedTaskQueue(engine, visibility_timeout=300, max_attempts=3, retry_backoff=30, clock=clock.time)


@pytest.fixture
def rest():
    return FakeDiscordREST()


@pytest.fixture
def manager(store, queue, rest, clock):
    return GiveawayManager(
        store,
        queue,
        rest,
        DeferredRunner(inline=True),
        color_resolver=lambda url: 0x123456,
        clock=clock.datetime,
        rng=random.Random(42),
    )


@pytest.fixture
def private_key():
    return Ed25519PrivateKey.generate()


@pytest.fixture
def public_key_hex(private_key):
    return private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw).hex()


@pytest.fixture
def app(manager, public_key_hex):
    return create_app(manager=manager, public_key_hex=public_key_hex)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sign(private_key):
    """Signature headers for a raw body"""
    def _sign(raw_body, timestamp="1700000000"):
        signature = private_key.sign(timestamp.encode("utf-8") + raw_body)
        return {SIGNATURE_HEADER: signature.hex(), TIMESTAMP_HEADER: timestamp}
    return _sign


@pytest.fixture
def post_interaction(client, sign):
    """POST a correctly signed interaction to /interactions"""
    def _post(payload):
        raw_body = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
        return client.post(
            "/interactions",
            data=raw_body,
            headers=sign(raw_body),
            content_type="application/json",
        )
    return _post
