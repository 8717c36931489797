"""
Inbound event pipeline package.

``display``
    Content trimming and the display-text precedence chain.
``dedupe``
    Per-channel suppression of re-emitted message ids.
``pipeline``
    :class:`~disclink.inbound.pipeline.EventPipeline`, which filters,
    dedupes and converts normalized messages into ``message``/``ping`` frames.
"""

from .pipeline import EventPipeline

__all__ = ["EventPipeline"]
