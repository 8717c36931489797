"""Dataclass models shared by the directory, queue, pipeline and hub.

Wire schema (output of the ``to_dict`` / ``to_payload`` helpers)::

    Guild          {"id": "1", "name": "Test", "channels": [Channel, ...]}
    Channel        {"id": "2", "name": "general", "kind": "text"}
    SendRequest    {"ref": "abc", "guildId": ..., "guildName": ..., "channelId": ...,
                    "channelName": ..., "content": "hi", "queuedAt": 1700000000.0, "tries": 0}
    message.data   {"messageId": ..., "displayText": ..., "attachments": [...], ...}
    ping.data      {"messageId": ..., "from": {...}, "content": ..., ...}

Ids are Discord snowflakes carried as strings so JSON clients never lose
precision. Channel kinds are normalized once at the upstream boundary; nothing
past :mod:`disclink.clients.adapter` looks at library channel types.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


def _drop_nones(d: Dict[str, Any]) -> Dict[str, Any]:
    """Return a shallow copy of ``d`` without keys mapped to ``None``."""
    return {k: v for k, v in d.items() if v is not None}


def _str_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class ChannelKind(str, Enum):
    TEXT = "text"
    NEWS = "news"
    THREAD = "thread"
    VOICE = "voice"
    CATEGORY = "category"
    OTHER = "other"

    @classmethod
    def parse(cls, raw: Any) -> "ChannelKind":
        if isinstance(raw, cls):
            return raw
        try:
            return cls(str(raw).lower())
        except ValueError:
            return cls.OTHER


SENDABLE_KINDS = frozenset({ChannelKind.TEXT, ChannelKind.NEWS, ChannelKind.THREAD})


# --------------------------------------------------------------------------- #
# Directory
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class Channel:
    id: str
    name: str
    kind: ChannelKind = ChannelKind.TEXT

    @property
    def sendable(self) -> bool:
        return self.kind in SENDABLE_KINDS

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "kind": self.kind.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Channel":
        # Older state files carry only id/name and were already text-filtered.
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            kind=ChannelKind.parse(data.get("kind", ChannelKind.TEXT.value)),
        )


@dataclass(slots=True)
class Guild:
    id: str
    name: str
    channels: List[Channel] = field(default_factory=list)

    def sendable_only(self) -> "Guild":
        """Return a copy holding only channels clients may send to."""

        return Guild(self.id, self.name, [c for c in self.channels if c.sendable])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "channels": [c.to_dict() for c in self.channels],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Guild":
        channels = data.get("channels")
        if not isinstance(channels, list):
            channels = []
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            channels=[Channel.from_dict(c) for c in channels if isinstance(c, dict)],
        )


@dataclass(slots=True)
class DirectorySnapshot:
    servers: List[Guild] = field(default_factory=list)
    ready: bool = False


# --------------------------------------------------------------------------- #
# Outbound
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class Target:
    """Guild/channel reference as supplied by a client; ids win over names."""

    guild_id: Optional[str] = None
    guild_name: Optional[str] = None
    channel_id: Optional[str] = None
    channel_name: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Target":
        return cls(
            guild_id=_str_or_none(payload.get("guildId")),
            guild_name=_str_or_none(payload.get("guildName")),
            channel_id=_str_or_none(payload.get("channelId")),
            channel_name=_str_or_none(payload.get("channelName")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "guildId": self.guild_id,
            "guildName": self.guild_name,
            "channelId": self.channel_id,
            "channelName": self.channel_name,
        }

    def describe(self) -> str:
        guild = self.guild_id or self.guild_name or "?"
        channel = self.channel_id or self.channel_name or "?"
        return f"{guild}/{channel}"


def new_ref() -> str:
    return uuid.uuid4().hex


@dataclass(slots=True)
class SendRequest:
    ref: str
    target: Target
    content: str
    queued_at: float = field(default_factory=time.time)
    tries: int = 0

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "SendRequest":
        """Build a request from a ``sendMessage`` frame, generating a ref if absent."""

        ref = _str_or_none(payload.get("ref")) or new_ref()
        content = payload.get("content")
        return cls(
            ref=ref,
            target=Target.from_payload(payload),
            content="" if content is None else str(content),
        )

    def to_dict(self) -> Dict[str, Any]:
        base = {"ref": self.ref, "content": self.content, "queuedAt": self.queued_at, "tries": self.tries}
        base.update(self.target.to_dict())
        return base

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SendRequest":
        # Older state files wrap the client frame as {"req": {...}, "tries": n}.
        frame = data.get("req") if isinstance(data.get("req"), dict) else data
        request = cls.from_payload(frame)
        try:
            request.tries = max(0, int(data.get("tries") or 0))
        except (TypeError, ValueError):
            request.tries = 0
        queued_at = data.get("queuedAt")
        if isinstance(queued_at, (int, float)):
            # Millisecond epoch values come from older state files.
            request.queued_at = queued_at / 1000.0 if queued_at > 1e11 else float(queued_at)
        return request


@dataclass(slots=True)
class Ack:
    ref: Optional[str]
    ok: bool
    error: Optional[str] = None
    queued: Optional[bool] = None
    skipped: Optional[bool] = None

    @property
    def terminal(self) -> bool:
        return not self.queued

    def to_message(self) -> Dict[str, Any]:
        base = {"type": "ack", "ok": self.ok, "ref": self.ref}
        base.update(_drop_nones({"error": self.error, "queued": self.queued, "skipped": self.skipped}))
        return base


# --------------------------------------------------------------------------- #
# Inbound
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class Author:
    id: str
    username: str = ""
    bot: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "username": self.username, "bot": self.bot}


@dataclass(slots=True)
class Attachment:
    url: str
    name: Optional[str] = None
    content_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "name": self.name, "contentType": self.content_type}


@dataclass(slots=True)
class Embed:
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "description": self.description, "type": self.type}


@dataclass(slots=True)
class Mention:
    id: str
    username: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "username": self.username}


@dataclass(slots=True)
class InboundMessage:
    """Upstream message normalized at the adapter boundary."""

    id: str
    author: Author
    raw_content: str
    trimmed_content: str
    guild_id: Optional[str]
    channel_id: Optional[str]
    timestamp: int  # epoch milliseconds
    attachments: List[Attachment] = field(default_factory=list)
    embeds: List[Embed] = field(default_factory=list)
    mentions: List[Mention] = field(default_factory=list)
    guild_name: str = ""
    channel_name: str = ""
    webhook_id: Optional[str] = None
    is_reply: bool = False
    from_self: bool = False

    def mentions_user(self, user_id: str | None) -> bool:
        if not user_id:
            return False
        return any(m.id == user_id for m in self.mentions)

    def to_payload(self, display_text: str) -> Dict[str, Any]:
        return {
            "messageId": self.id,
            "rawContent": self.raw_content,
            "trimmedContent": self.trimmed_content,
            "contentLength": len(self.trimmed_content),
            "displayText": display_text,
            "attachments": [a.to_dict() for a in self.attachments],
            "embeds": [e.to_dict() for e in self.embeds],
            "mentions": [m.to_dict() for m in self.mentions],
            "isReply": self.is_reply,
            "author": self.author.to_dict(),
            "guildId": self.guild_id,
            "guildName": self.guild_name,
            "channelId": self.channel_id,
            "channelName": self.channel_name,
            "timestamp": self.timestamp,
            "fromSelf": self.from_self,
        }


@dataclass(slots=True)
class PingEvent:
    message_id: str
    sender: Author
    content: str
    guild_id: Optional[str]
    channel_id: Optional[str]
    timestamp: int
    guild_name: str = ""
    channel_name: str = ""

    def to_payload(self) -> Dict[str, Any]:
        return {
            "messageId": self.message_id,
            "from": {"id": self.sender.id, "username": self.sender.username},
            "guildId": self.guild_id,
            "guildName": self.guild_name,
            "channelId": self.channel_id,
            "channelName": self.channel_name,
            "content": self.content,
            "timestamp": self.timestamp,
        }


__all__ = [
    "Ack",
    "Attachment",
    "Author",
    "Channel",
    "ChannelKind",
    "DirectorySnapshot",
    "Embed",
    "Guild",
    "InboundMessage",
    "Mention",
    "PingEvent",
    "SENDABLE_KINDS",
    "SendRequest",
    "Target",
    "new_ref",
]
