import asyncio

from disclink.config import relay
from disclink.controller import BridgeState
from disclink.hub.fanout import FanoutHub
from disclink.hub.heartbeat import Heartbeat
from disclink.model import DirectorySnapshot


def test_broadcast_isolates_failing_connections(make_connection):
    hub = FanoutHub()
    good, good_socket = make_connection()
    bad, bad_socket = make_connection(fail=True)
    late, late_socket = make_connection()
    for c in (good, bad, late):
        hub.add(c)

    delivered = asyncio.run(hub.broadcast({"type": "hb"}))

    assert delivered == 2
    assert good_socket.types() == ["hb"]
    assert late_socket.types() == ["hb"]
    assert bad not in hub
    assert len(hub) == 2


def test_closed_connections_are_pruned_on_send(make_connection):
    hub = FanoutHub()
    connection, socket = make_connection()
    hub.add(connection)
    socket.closed = True

    assert asyncio.run(hub.send(connection, {"type": "hb"})) is False
    assert len(hub) == 0


def test_initial_state_is_status_ready_then_servers(make_connection, guilds):
    hub = FanoutHub()
    connection, socket = make_connection()
    state = BridgeState(directory=DirectorySnapshot(servers=guilds, ready=True))

    asyncio.run(hub.send_initial_state(connection, state))

    assert socket.frames()[:2] == [
        {"type": "bridgeStatus", "bridgeConnected": True, "discordReady": False},
        {"type": "ready", "value": True},
    ]
    assert [g["name"] for g in socket.frames()[2]["servers"]] == ["Test", "Other"]


def test_initial_state_without_snapshot_skips_server_list(make_connection):
    hub = FanoutHub()
    connection, socket = make_connection()

    asyncio.run(hub.send_initial_state(connection, BridgeState()))

    assert socket.types() == ["bridgeStatus", "ready"]


def test_heartbeat_closes_stale_and_probes_live(make_connection, monkeypatch):
    monkeypatch.setattr(relay, "HEARTBEAT_STALE", 60)
    hub = FanoutHub()
    live, live_socket = make_connection()
    stale, stale_socket = make_connection()
    hub.add(live)
    hub.add(stale)
    live.last_seen_at = 1000.0
    stale.last_seen_at = 900.0

    closed = asyncio.run(Heartbeat(hub, clock=lambda: 1030.0).sweep())

    assert closed == 1
    assert stale_socket.closed is True
    assert stale not in hub
    assert live_socket.types() == ["hb"]
    assert stale_socket.sent == []


def test_heartbeat_start_and_stop(monkeypatch):
    monkeypatch.setattr(relay, "HEARTBEAT_INTERVAL", 0.01)
    hub = FanoutHub()
    heartbeat = Heartbeat(hub)
    sweeps = []

    async def fake_sweep():
        sweeps.append(1)

    heartbeat.sweep = fake_sweep

    async def run():
        await heartbeat.start()
        await asyncio.sleep(0.05)
        await heartbeat.stop()

    asyncio.run(run())
    assert sweeps


def test_heartbeat_survives_a_failing_sweep(monkeypatch):
    monkeypatch.setattr(relay, "HEARTBEAT_INTERVAL", 0.01)
    heartbeat = Heartbeat(FanoutHub())
    sweeps = []

    async def flaky_sweep():
        sweeps.append(1)
        if len(sweeps) == 1:
            raise RuntimeError("socket gone")

    heartbeat.sweep = flaky_sweep

    async def run():
        await heartbeat.start()
        await asyncio.sleep(0.08)
        await heartbeat.stop()
        await heartbeat.stop()

    asyncio.run(run())
    assert len(sweeps) >= 2
