"""
ASGI entry point for the local authoring server.

Usage
-----
    $ cas-timeline serve
    $ uvicorn castimeline.api.server:app --port 3000
"""

from pathlib import Path

import uvicorn
from dotenv import load_dotenv

# Load .env before the settings cache is first filled.
load_dotenv(dotenv_path=Path(".env"))

from castimeline.api.app import create_app  # noqa: E402
from castimeline.core.settings import load_settings  # noqa: E402

app = create_app()


def main(host: str = "127.0.0.1", port: int | None = None) -> None:
    """Run the authoring server."""
    settings = load_settings()
    uvicorn.run(
        "castimeline.api.server:app",
        host=host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
