"""Timeline engine: contracts, state machine, pipeline, renderer and sync.

Downstream code imports the submodules directly, e.g.
    from castimeline.core.app import TimelineApp
    from castimeline.core.settings import settings, get_logger
"""

from __future__ import annotations

__all__ = ["__doc__"]
