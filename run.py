"""Entry point for running the Trip Planner API.

Host and port are read from the ``ADMIN_HOST`` and ``ADMIN_PORT``
environment variables (defaults ``0.0.0.0`` and ``8000``).  Other
configuration (``DATABASE_URL``, ``SECRET_KEY``, ``LOG_LEVEL``...) is
read by ``trip_planner_api.app.core.config``.

Usage:
    python run.py
"""
import asyncio
import logging
import os

from uvicorn import Config, Server

from trip_planner_api.app.main import app


async def main() -> None:
    host = os.getenv("ADMIN_HOST", "0.0.0.0")
    port = int(os.getenv("ADMIN_PORT", "8000"))
    config = Config(app=app, host=host, port=port, reload=False, log_level="info")
    server = Server(config)
    await server.serve()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logging.getLogger(__name__).info("Shutting down")
