#!/usr/bin/env python
"""Start the Strategy Book API with uvicorn.

Usage:
    python ui/run_backend.py [--host HOST] [--port PORT] [--no-reload]

Host and port default to ``settings.server``; auto-reload is on in the
development environment.
"""

import argparse
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

load_dotenv(project_root / ".env")

from config.settings import get_settings


def parse_args(argv=None) -> argparse.Namespace:
    server = get_settings().server
    parser = argparse.ArgumentParser(description="Run the Strategy Book API")
    parser.add_argument("--host", default=server.host, help="Bind address")
    parser.add_argument("--port", type=int, default=server.port, help="Bind port")
    parser.add_argument("--no-reload", action="store_true", help="Disable auto-reload")
    return parser.parse_args(argv)


def main() -> None:
    import uvicorn

    args = parse_args()
    reload = get_settings().environment == "development" and not args.no_reload

    print(f"Strategy Book API on http://localhost:{args.port} (docs at /docs)")
    uvicorn.run("ui.backend.api:app", host=args.host, port=args.port, reload=reload)


if __name__ == "__main__":
    main()
