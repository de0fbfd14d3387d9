#!/usr/bin/env python3
"""
Start the plugin host with uvicorn.

Usage:
    python run_server.py                  # HOST/PORT from settings
    python run_server.py --port 8080      # Override port
    python run_server.py --reload         # Development auto-reload
"""

import argparse

import uvicorn

from plugin_host.config import get_settings


def main() -> None:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Run the plugin host server")
    parser.add_argument("--host", default=settings.HOST, help=f"Bind address (default: {settings.HOST})")
    parser.add_argument("--port", type=int, default=settings.PORT, help=f"Port (default: {settings.PORT})")
    parser.add_argument("--reload", action="store_true", help="Reload on source changes")
    args = parser.parse_args()

    uvicorn.run(
        "plugin_host.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
