import argparse
import logging
import sys


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
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.ERROR)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)


logger = logging.getLogger(__name__)


def main():
    """Main entry point for Cognitia."""
    parser = argparse.ArgumentParser(description="Cognitia - AI Data Intelligence Engine")
    parser.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
        help="Interface to bind the API server to"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=3000,
        help="Port for the API server"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Run in debug mode (auto-reload)"
    )
    args = parser.parse_args()

    setup_logging(args.log_level)

    from .setting import get_settings
    settings = get_settings()
    logger.info(
        f"Starting Cognitia - app_url={settings.app_url or 'NOT_SET'} "
        f"gemini_key={settings.gemini_key_name}"
    )

    import uvicorn

    logger.info(f"Starting FastAPI server on http://{args.host}:{args.port}")
    print(f"\n  Cognitia is running at: http://localhost:{args.port}")
    print(f"  API docs at: http://localhost:{args.port}/docs\n")

    uvicorn.run(
        "cognitia.api.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        reload=args.debug,
    )


if __name__ == "__main__":
    main()
