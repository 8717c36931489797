import asyncio
from types import SimpleNamespace

from disclink.event_hooks import connection_hook, message_hook, ready_hook
from disclink.events import UpstreamDisconnected, UpstreamMessage, UpstreamReady, UpstreamResumed


def _client(user=SimpleNamespace(id=999, name="bridge")):
    events = []
    return SimpleNamespace(user=user, guilds=[], sink=events.append), events


def test_ready_hook_posts_identity():
    client, events = _client()

    asyncio.run(ready_hook.handle(client))

    assert isinstance(events[0], UpstreamReady)
    assert events[0].identity.to_dict() == {"id": "999", "username": "bridge"}


def test_message_hook_posts_normalized_message():
    client, events = _client()
    message = SimpleNamespace(
        id=1,
        content="hi",
        author=SimpleNamespace(id=999, name="bridge", bot=True),
        guild=SimpleNamespace(id=2, name="Test"),
        channel=SimpleNamespace(id=3, name="general"),
        created_at=None,
        attachments=[],
        embeds=[],
        mentions=[],
        webhook_id=None,
        reference=None,
    )

    asyncio.run(message_hook.handle(client, message))

    assert isinstance(events[0], UpstreamMessage)
    assert events[0].message.from_self is True
    assert events[0].message.channel_id == "3"


def test_connection_hooks_post_transitions():
    client, events = _client()

    asyncio.run(connection_hook.handle_disconnect(client))
    asyncio.run(connection_hook.handle_resumed(client))

    assert [type(e) for e in events] == [UpstreamDisconnected, UpstreamResumed]
