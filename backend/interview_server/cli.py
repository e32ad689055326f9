import argparse
import sys

from loguru import logger


def main() -> None:
    import uvicorn

    parser = argparse.ArgumentParser(description="Run the voice mock interview API server.")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to.")
    parser.add_argument("--port", type=int, default=3000, help="Port to bind to.")
    parser.add_argument("--reload", action="store_true", help="Enable reload (dev only).")
    parser.add_argument("--log-level", default="INFO", help="Loguru log level.")
    args = parser.parse_args()

    logger.remove()
    logger.add(sys.stderr, level=args.log_level.upper())

    uvicorn.run(
        "interview_server.main:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
