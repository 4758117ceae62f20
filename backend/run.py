"""
Engagement API startup script.

Usage:
    python run.py
    python run.py --reload
    python run.py --port 8080

On Windows the selector event loop policy is installed before uvicorn
creates its loop; psycopg3 cannot run on the proactor loop.
"""

import argparse
import sys

if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

import uvicorn


def main() -> None:
    """Start the engagement API."""
    parser = argparse.ArgumentParser(description="Run the Habitus33 engagement API")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    args = parser.parse_args()

    uvicorn.run(
        "engagement.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        loop="asyncio",
        # structlog is configured in the app lifespan
        log_config=None,
    )


if __name__ == "__main__":
    main()
