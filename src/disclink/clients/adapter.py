"""
Normalization at the discord.py boundary.

Channel types are mapped onto :class:`~disclink.model.ChannelKind` here and
nowhere else, and ``discord.Message`` objects are flattened into
:class:`~disclink.model.InboundMessage` so the inbound pipeline never touches
library objects. Attribute access goes through ``getattr`` so partial or
fake objects degrade to empty values instead of raising.
"""

from __future__ import annotations

import datetime
from typing import Any, Dict, Iterable, List

import discord

from disclink.inbound.display import trim_content
from disclink.model import (
    Attachment,
    Author,
    Channel,
    ChannelKind,
    Embed,
    InboundMessage,
    Mention,
)

_KIND_BY_TYPE: Dict[discord.ChannelType, ChannelKind] = {
    discord.ChannelType.text: ChannelKind.TEXT,
    discord.ChannelType.news: ChannelKind.NEWS,
    discord.ChannelType.public_thread: ChannelKind.THREAD,
    discord.ChannelType.private_thread: ChannelKind.THREAD,
    discord.ChannelType.news_thread: ChannelKind.THREAD,
    discord.ChannelType.voice: ChannelKind.VOICE,
    discord.ChannelType.stage_voice: ChannelKind.VOICE,
    discord.ChannelType.category: ChannelKind.CATEGORY,
}


def channel_kind(channel: Any) -> ChannelKind:
    """Return the normalized kind for a discord.py channel object."""

    return _KIND_BY_TYPE.get(getattr(channel, "type", None), ChannelKind.OTHER)


def to_channel(channel: Any) -> Channel:
    return Channel(
        id=str(channel.id),
        name=str(getattr(channel, "name", "") or ""),
        kind=channel_kind(channel),
    )


def _timestamp_ms(created_at: datetime.datetime | None) -> int:
    if created_at is None:
        return int(datetime.datetime.now(datetime.timezone.utc).timestamp() * 1000)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=datetime.timezone.utc)
    return int(created_at.timestamp() * 1000)


def _author(user: Any) -> Author:
    if user is None:
        return Author(id="")
    return Author(
        id=str(getattr(user, "id", "") or ""),
        username=str(getattr(user, "name", "") or ""),
        bot=bool(getattr(user, "bot", False)),
    )


def _attachments(items: Iterable[Any]) -> List[Attachment]:
    out: List[Attachment] = []
    for item in items or []:
        url = getattr(item, "url", None)
        if not url:
            continue
        out.append(
            Attachment(
                url=str(url),
                name=getattr(item, "filename", None),
                content_type=getattr(item, "content_type", None),
            )
        )
    return out


def _embeds(items: Iterable[Any]) -> List[Embed]:
    return [
        Embed(
            title=getattr(e, "title", None) or None,
            description=getattr(e, "description", None) or None,
            type=getattr(e, "type", None) or None,
        )
        for e in items or []
    ]


def _mentions(users: Iterable[Any]) -> List[Mention]:
    return [
        Mention(id=str(u.id), username=str(getattr(u, "name", "") or ""))
        for u in users or []
        if getattr(u, "id", None) is not None
    ]


def to_inbound(message: Any, self_id: str | None) -> InboundMessage:
    """Flatten a ``discord.Message`` into an :class:`InboundMessage`."""

    guild = getattr(message, "guild", None)
    channel = getattr(message, "channel", None)
    raw = getattr(message, "content", None)
    raw = raw if isinstance(raw, str) else ""
    author = _author(getattr(message, "author", None))
    webhook_id = getattr(message, "webhook_id", None)

    return InboundMessage(
        id=str(message.id),
        author=author,
        raw_content=raw,
        trimmed_content=trim_content(raw),
        guild_id=str(guild.id) if guild is not None else None,
        channel_id=str(channel.id) if channel is not None else None,
        timestamp=_timestamp_ms(getattr(message, "created_at", None)),
        attachments=_attachments(getattr(message, "attachments", [])),
        embeds=_embeds(getattr(message, "embeds", [])),
        mentions=_mentions(getattr(message, "mentions", [])),
        guild_name=str(getattr(guild, "name", "") or ""),
        channel_name=str(getattr(channel, "name", "") or ""),
        webhook_id=str(webhook_id) if webhook_id else None,
        is_reply=getattr(message, "reference", None) is not None,
        from_self=bool(self_id) and author.id == self_id,
    )


def to_history_entry(message: Any) -> Dict[str, Any]:
    """Compact record returned by the ``getMessages`` bulk fetch."""

    raw = getattr(message, "content", None)
    raw = raw if isinstance(raw, str) else ""
    author = _author(getattr(message, "author", None))
    return {
        "id": str(message.id),
        "author": {"id": author.id, "username": author.username},
        "content": raw.replace("\n", " "),
        "timestamp": _timestamp_ms(getattr(message, "created_at", None)),
    }


__all__ = ["channel_kind", "to_channel", "to_history_entry", "to_inbound"]
