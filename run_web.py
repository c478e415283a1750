#!/usr/bin/env python3
"""
Entry point for running the tourney web server.

Usage:
    python run_web.py [--host HOST] [--port PORT] [--reload] [--data-dir DIR]

Examples:
    python run_web.py                    # Run on localhost:8000
    python run_web.py --port 3000        # Run on localhost:3000
    python run_web.py --host 0.0.0.0     # Allow external connections
    python run_web.py --data-dir /tmp/t  # Store the database elsewhere
"""
import argparse
import logging
import os

import uvicorn

from tourney.config import Settings


def main():
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(description="Run the tourney web server")
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to (default: 8000)"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload on code changes"
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default=settings.data_dir,
        help=f"Directory for the match database (default: {settings.data_dir})"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=settings.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help=f"Logging level (default: {settings.log_level})"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    # The app reads its settings from the environment at startup
    os.environ["TOURNEY_DATA_DIR"] = args.data_dir

    print(f"Starting tourney web server at http://{args.host}:{args.port}")
    print(f"API documentation: http://{args.host}:{args.port}/docs")
    print(f"Data directory: {args.data_dir}")
    print()

    uvicorn.run(
        "tourney.web.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level.lower()
    )


if __name__ == "__main__":
    main()
