import json

import pytest

from disclink.clients.upstream import Identity
from disclink.controller import BridgeState
from disclink.events import (
    ClientClosed,
    ClientConnected,
    ClientFrame,
    UpstreamDisconnected,
    UpstreamMessage,
    UpstreamReady,
    UpstreamResumed,
)
from disclink.memory.store import PersistedState, PersistenceStore
from disclink.model import Author, Channel, InboundMessage


def _persisted_two_guilds(guilds):
    # Scenario fixture: 3 and 1 sendable channels.
    first = guilds[0]
    first.channels = [c for c in first.channels if c.sendable] + [Channel("14", "random")]
    return PersistedState(ready=True, servers=[first, guilds[1]])


@pytest.mark.asyncio
async def test_connect_replays_persisted_snapshot_without_upstream_calls(make_controller, upstream, guilds, make_connection):
    controller = make_controller(state=BridgeState.from_persisted(_persisted_two_guilds(guilds)))
    connection, socket = make_connection()

    await controller.handle(ClientConnected(connection))

    frames = socket.frames()
    assert [f["type"] for f in frames] == ["bridgeStatus", "ready", "serverList"]
    assert frames[1] == {"type": "ready", "value": True}
    servers = frames[2]["servers"]
    assert [g["id"] for g in servers] == ["1", "2"]
    assert [len(g["channels"]) for g in servers] == [3, 1]
    assert upstream.calls == []


@pytest.mark.asyncio
async def test_queued_send_is_delivered_after_connect(make_controller, upstream, guilds, make_connection, tmp_path):
    store = PersistenceStore(tmp_path / "state.json")
    store.path.write_text(json.dumps(PersistedState(servers=guilds).to_dict()), encoding="utf-8")
    controller = make_controller(store=store)
    connection, socket = make_connection()
    await controller.handle(ClientConnected(connection))

    frame = {"type": "sendMessage", "guildName": "Test", "channelName": "general", "content": "hi", "ref": "abc"}
    await controller.handle(ClientFrame(connection, json.dumps(frame)))
    await controller.drain()

    assert socket.of_type("ack") == [{"type": "ack", "ok": False, "ref": "abc", "queued": True}]
    assert "abc" in controller.state.parked

    await controller.handle(UpstreamReady(Identity("999", "bridge")))
    await controller.drain()

    assert upstream.sent == [("10", "hi")]
    assert "abc" in controller.state.processed
    assert socket.of_type("ack")[-1] == {"type": "ack", "ok": True, "ref": "abc"}
    assert not controller.state.parked


@pytest.mark.asyncio
async def test_processed_refs_survive_restart(make_controller, upstream, guilds, make_connection, tmp_path):
    path = tmp_path / "state.json"
    store = PersistenceStore(path)
    store.path.write_text(json.dumps(PersistedState(ready=True, servers=guilds).to_dict()), encoding="utf-8")
    frame = json.dumps({"type": "sendMessage", "guildId": "1", "channelId": "10", "content": "hi", "ref": "once"})

    first = make_controller(store=store, connected=True)
    connection, _ = make_connection()
    await first.handle(ClientFrame(connection, frame))
    await first.drain()
    store.flush()

    second = make_controller(store=PersistenceStore(path), connected=True)
    connection, socket = make_connection()
    await second.handle(ClientConnected(connection))
    await second.handle(ClientFrame(connection, frame))
    await second.drain()

    assert upstream.sent == [("10", "hi")]
    assert socket.of_type("ack") == [{"type": "ack", "ok": True, "ref": "once", "skipped": True}]


@pytest.mark.asyncio
async def test_ready_without_snapshot_builds_directory(make_controller, upstream, make_connection):
    controller = make_controller()
    connection, socket = make_connection()
    await controller.handle(ClientConnected(connection))

    await controller.handle(UpstreamReady(Identity("999", "bridge")))
    await controller.drain()

    types = socket.types()
    assert types[:2] == ["bridgeStatus", "ready"]
    assert types[2:5] == ["bridgeStatus", "discordReady", "ready"]
    assert types[-2:] == ["ready", "serverList"]
    assert socket.of_type("discordReady")[0]["data"] == {"id": "999", "username": "bridge"}
    assert controller.state.directory.ready is True
    assert upstream.calls[0] == ("list_guilds",)


@pytest.mark.asyncio
async def test_ready_with_snapshot_rebroadcasts_without_rebuild(make_controller, upstream, guilds, make_connection):
    controller = make_controller(state=BridgeState.from_persisted(PersistedState(ready=True, servers=guilds)))
    connection, socket = make_connection()
    controller.hub.add(connection)

    await controller.handle(UpstreamReady(None))
    await controller.drain()

    assert socket.types() == ["bridgeStatus", "discordReady", "serverList"]
    assert controller.state.identity == upstream.identity
    assert upstream.calls == []


@pytest.mark.asyncio
async def test_connectivity_changes_are_broadcast(make_controller, make_connection):
    controller = make_controller(connected=True)
    connection, socket = make_connection()
    controller.hub.add(connection)

    await controller.handle(UpstreamDisconnected())
    await controller.handle(UpstreamDisconnected())
    await controller.handle(UpstreamResumed())

    statuses = socket.of_type("bridgeStatus")
    assert [s["discordReady"] for s in statuses] == [False, True]


@pytest.mark.asyncio
async def test_bad_json_and_unknown_requests(make_controller, make_connection):
    controller = make_controller()
    connection, socket = make_connection()

    await controller.handle(ClientFrame(connection, "{nope"))
    await controller.handle(ClientFrame(connection, json.dumps({"type": "teleport"})))
    await controller.handle(ClientFrame(connection, "[1, 2]"))

    assert socket.frames() == [
        {"type": "error", "error": "bad-json"},
        {"type": "error", "error": "unknown-request", "raw": {"type": "teleport"}},
        {"type": "error", "error": "unknown-request", "raw": [1, 2]},
    ]


@pytest.mark.asyncio
async def test_any_frame_refreshes_last_seen(make_controller, make_connection):
    controller = make_controller()
    connection, socket = make_connection()
    connection.last_seen_at = 0.0

    await controller.handle(ClientFrame(connection, json.dumps({"type": "hb_ack"})))

    assert connection.last_seen_at > 0.0
    assert socket.sent == []


@pytest.mark.asyncio
async def test_messages_are_fanned_out(make_controller, make_connection):
    controller = make_controller(connected=True)
    connection, socket = make_connection()
    await controller.handle(ClientConnected(connection))
    message = InboundMessage(
        id="m1",
        author=Author("5", "alice"),
        raw_content="hello",
        trimmed_content="hello",
        guild_id="1",
        channel_id="10",
        timestamp=0,
    )

    await controller.handle(UpstreamMessage(message))
    await controller.handle(ClientClosed(connection))
    await controller.handle(UpstreamMessage(message))

    assert socket.of_type("message")[0]["data"]["displayText"] == "hello"
    assert len(socket.of_type("message")) == 1
    assert len(controller.hub) == 0


@pytest.mark.asyncio
async def test_dispatch_loop_processes_posted_events(make_controller, make_connection):
    controller = make_controller()
    connection, socket = make_connection()

    await controller.start()
    try:
        controller.post(ClientConnected(connection))
        controller.post(ClientFrame(connection, json.dumps({"type": "ping"})))
        await controller.drain()
    finally:
        await controller.stop()

    assert socket.types() == ["bridgeStatus", "ready", "pong"]
    assert socket.closed is True
