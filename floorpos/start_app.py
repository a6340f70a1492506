# start_app.py
"""Launch the API server."""

from __future__ import annotations

import argparse
import os

import uvicorn

from .config import get_settings


def main(argv: list[str] | None = None) -> None:
    """Load settings, then serve ``floorpos.main:app`` with uvicorn."""

    parser = argparse.ArgumentParser(description="Run the floor POS API")
    parser.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    parser.add_argument("--reload", action="store_true", help="Restart on code changes")
    args = parser.parse_args(argv)

    settings = get_settings()  # fail fast on a broken config before binding

    uvicorn.run(
        "floorpos.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
