"""WebSocket relay between one Discord account and many local clients."""

__version__ = "0.1.0"
