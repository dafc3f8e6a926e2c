import argparse
import logging
import sys

from .core.config import get_settings
from .core.db import DatabaseManager, wait_for_db


def setup_logging(log_level: str = "INFO") -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )
    # Reduce noise from third-party libraries
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.ERROR)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("psycopg2").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


def main():
    """Main entry point for BuildTrack."""
    settings = get_settings()

    parser = argparse.ArgumentParser(description="BuildTrack - Client Build Tracker")
    parser.add_argument(
        "--port",
        type=int,
        default=9010,
        help="Port for the API server"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=settings.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Run in debug mode (DEBUG logging)"
    )
    args = parser.parse_args()

    if args.debug:
        args.log_level = "DEBUG"
    setup_logging(args.log_level)
    logger.info(f"Starting BuildTrack - database: {settings.database_url.split('@')[-1]}")

    db_manager = DatabaseManager(settings.database_url)
    if not wait_for_db(db_manager):
        logger.error("Database unavailable, exiting")
        sys.exit(1)
    db_manager.init_db()

    from .api.app import create_app
    app = create_app(db_manager, settings=settings)

    import uvicorn

    logger.info(f"Starting FastAPI server on http://0.0.0.0:{args.port}")
    print(f"\n  BuildTrack is running at: http://localhost:{args.port}")
    print(f"  API docs at: http://localhost:{args.port}/docs\n")

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=args.port,
        log_level=args.log_level.lower(),
    )


if __name__ == "__main__":
    main()
