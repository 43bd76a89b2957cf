"""CAS Timeline: a browsable, deep-linkable log of a school's CAS activities.

The package is split into the client-side timeline engine (`castimeline.core`),
the event-store capability it talks to (`castimeline.backends`), the local
authoring server (`castimeline.api`), the publish worker
(`castimeline.publisher`) and a terminal front-end (`castimeline.cli`).
"""

from __future__ import annotations

__all__ = ["__version__"]
__version__ = "0.3.0"
