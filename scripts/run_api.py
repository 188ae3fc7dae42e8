#!/usr/bin/env python3
"""Run the Ninja Lens API server.

This script starts the uvicorn server for the aggregation API.

Usage:
    python scripts/run_api.py [--host HOST] [--port PORT] [--log-level LEVEL]

Environment:
    INJECTIVE_INDEXER_URL - Optional. Exchange indexer gateway (default: mainnet sentry)
    INJECTIVE_LCD_URL - Optional. Chain LCD endpoint (default: mainnet sentry)
    LENS_* - Optional. HTTP policy and cache lifetimes, see core/config.py

Examples:
    python scripts/run_api.py
    python scripts/run_api.py --host 0.0.0.0 --port 3000 --log-level debug
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Ensure imports work when invoked as a script
_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


def main() -> int:
    """Run the API server."""
    parser = argparse.ArgumentParser(description="Run the Ninja Lens aggregation API server.")
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=3000,
        help="Port to bind to (default: 3000)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="info",
        help="Log level (default: info)",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Fail fast on a malformed LENS_* variable instead of on the first request
    from core.config import LensConfig

    try:
        config = LensConfig.from_env()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Starting Ninja Lens API on {args.host}:{args.port}")
    print(f"  Indexer: {config.indexer_url}")
    print(f"  LCD:     {config.lcd_url}")
    print("Endpoints:")
    print(f"  - GET http://{args.host}:{args.port}/health")
    print(f"  - GET http://{args.host}:{args.port}/api/v1/markets")
    print(f"  - GET http://{args.host}:{args.port}/docs")
    print()

    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )

    return 0


if __name__ == "__main__":
    sys.exit(main())
