"""Exponential retry delay for replayed sends."""

from disclink.config import relay


def backoff_delay(tries: int) -> float:
    """Delay before the next attempt after ``tries`` failures, capped at ``MAX_BACKOFF``."""

    return min(relay.MAX_BACKOFF, relay.BASE_BACKOFF * (2 ** max(0, tries)))
