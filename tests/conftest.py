import asyncio
import json
import os
import sys
from pathlib import Path

import pytest

# Add the src/ layout to sys.path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

# Ensure required environment variables for Core.validate()
os.environ.setdefault("DISCORD_TOKEN", "test-token")

from disclink.clients.upstream import Identity  # noqa: E402
from disclink.errors import TransportError  # noqa: E402
from disclink.hub.connection import Connection  # noqa: E402
from disclink.model import Channel, ChannelKind, Guild  # noqa: E402


class FakeSocket:
    """Stands in for ``aiohttp.web.WebSocketResponse``."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.closed = False
        self.fail = fail

    async def send_str(self, text):
        if self.fail:
            raise ConnectionResetError("socket gone")
        self.sent.append(text)

    async def close(self):
        self.closed = True

    def frames(self):
        return [json.loads(t) for t in self.sent]

    def types(self):
        return [f["type"] for f in self.frames()]

    def of_type(self, kind):
        return [f for f in self.frames() if f["type"] == kind]


class FakeUpstream:
    """In-memory :class:`~disclink.clients.upstream.UpstreamPort`."""

    def __init__(self, guilds=None, identity=Identity(id="999", username="bridge")):
        self.guilds = list(guilds or [])
        self._identity = identity
        self.calls = []
        self.sent = []
        self.fail_sends = 0
        self.failing_guilds = set()
        self.list_error = None
        self.history = {}
        self.presence = None

    @property
    def identity(self):
        return self._identity

    async def list_guilds(self):
        self.calls.append(("list_guilds",))
        if self.list_error is not None:
            raise self.list_error
        return [Guild(g.id, g.name) for g in self.guilds]

    async def fetch_channels(self, guild_id):
        self.calls.append(("fetch_channels", guild_id))
        await asyncio.sleep(0)
        if guild_id in self.failing_guilds:
            raise RuntimeError("missing access")
        for g in self.guilds:
            if g.id == guild_id:
                return list(g.channels)
        return []

    async def send(self, channel_id, content):
        self.calls.append(("send", channel_id, content))
        await asyncio.sleep(0)
        if self.fail_sends:
            self.fail_sends -= 1
            raise TransportError("503 Service Unavailable")
        self.sent.append((channel_id, content))

    async def fetch_history(self, channel_id, limit):
        self.calls.append(("fetch_history", channel_id, limit))
        return list(self.history.get(channel_id, []))[:limit]

    async def set_presence(self, text, kind):
        self.calls.append(("set_presence", text, kind))
        self.presence = (text, kind)


class RecordingSleep:
    """Replacement for ``asyncio.sleep`` that records delays and only yields."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)
        await asyncio.sleep(0)


def make_guilds():
    return [
        Guild(
            "1",
            "Test",
            [
                Channel("10", "general", ChannelKind.TEXT),
                Channel("11", "announcements", ChannelKind.NEWS),
                Channel("12", "Voice", ChannelKind.VOICE),
                Channel("13", "Lobby", ChannelKind.CATEGORY),
            ],
        ),
        Guild("2", "Other", [Channel("20", "general", ChannelKind.TEXT)]),
    ]


@pytest.fixture
def guilds():
    return make_guilds()


@pytest.fixture
def upstream(guilds):
    return FakeUpstream(guilds)


@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest.fixture
def make_connection():
    def _make(fail=False, remote="127.0.0.1"):
        socket = FakeSocket(fail=fail)
        return Connection(socket, remote=remote), socket

    return _make


@pytest.fixture
def make_controller(upstream, sleeper):
    from disclink.controller import BridgeController, BridgeState

    def _make(state=None, store=None, connected=False):
        if state is None and store is None:
            state = BridgeState()
        controller = BridgeController(upstream, store, state=state, sleep=sleeper)
        controller.state.upstream_connected = connected
        if connected:
            controller.state.identity = upstream.identity
        return controller

    return _make
