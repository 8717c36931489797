"""Cached guild/channel directory used to resolve send targets."""

from .cache import DirectoryCache

__all__ = ["DirectoryCache"]
