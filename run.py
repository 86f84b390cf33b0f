"""
Run script for starting the StoryCall signaling server.

Usage:
    python run.py [--port PORT] [--host HOST] [--log-level LEVEL]
"""

import argparse
import os
import sys
from pathlib import Path

import uvicorn

sys.path.append(str(Path(__file__).parent))

from storycall.config.constants import DEFAULT_PORT
from storycall.config.logging_config import configure_logging

logger = configure_logging()


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Start the StoryCall signaling server")
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", str(DEFAULT_PORT))),
        help=f"Port to run the server on (default: {DEFAULT_PORT} or PORT env var)",
    )
    parser.add_argument(
        "--host",
        default=os.getenv("HOST", "0.0.0.0"),
        help="Host to bind the server to (default: 0.0.0.0 or HOST env var)",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )
    return parser.parse_args()


def main():
    """Main entry point for starting the server."""
    args = parse_args()

    # A missing key only disables the call routes; health and static assets stay up
    if not os.getenv("OPENAI_API_KEY"):
        logger.warning("OPENAI_API_KEY is not set. /session and /token will fail.")

    logger.info(f"StoryCall backend running on http://localhost:{args.port}")
    logger.info(f"- Health:   http://localhost:{args.port}/health")
    logger.info(f"- Token:    http://localhost:{args.port}/token")
    logger.info(f"Log level: {args.log_level}")

    uvicorn.run(
        "storycall.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        http="h11",
        access_log=False,
        reload=os.getenv("ENV", "production").lower() == "development",
    )


if __name__ == "__main__":
    main()
