"""Outbound sends: the idempotent queue and its retry schedule."""

from .backoff import backoff_delay
from .queue import SendQueue

__all__ = ["SendQueue", "backoff_delay"]
