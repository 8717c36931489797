"""
Downstream side of the bridge.

``connection``
    :class:`~disclink.hub.connection.Connection`, one WebSocket client.
``fanout``
    :class:`~disclink.hub.fanout.FanoutHub`, the connection registry.
``heartbeat``
    Periodic ``hb`` probe and stale-client eviction.
``server``
    The aiohttp application that accepts clients.
"""

from .connection import Connection
from .fanout import FanoutHub
from .heartbeat import Heartbeat

__all__ = ["Connection", "FanoutHub", "Heartbeat"]
