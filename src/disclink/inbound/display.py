"""Display-text resolution for forwarded messages."""

from __future__ import annotations

from disclink.model import InboundMessage

NO_CONTENT = "[no content]"

_ZERO_WIDTH_SPACE = "\u200b"


def trim_content(raw: str | None) -> str:
    """Strip zero-width spaces and surrounding whitespace from ``raw``."""

    if not raw:
        return ""
    return raw.replace(_ZERO_WIDTH_SPACE, "").strip()


def pick_display_text(message: InboundMessage) -> str:
    """
    Return the first non-empty human-readable field of ``message``.

    Precedence: trimmed text, first embed description, first embed title,
    first attachment URL, then :data:`NO_CONTENT`.
    """

    if message.trimmed_content:
        return message.trimmed_content
    if message.embeds:
        first = message.embeds[0]
        if first.description:
            return first.description
        if first.title:
            return first.title
    if message.attachments and message.attachments[0].url:
        return message.attachments[0].url
    return NO_CONTENT
