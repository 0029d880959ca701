# sunnah_audio/__main__.py
"""
Run the API server: `python -m sunnah_audio` or `sunnah-audio`.
Exits 0 on a graceful stop and 1 when startup or binding the port fails.
"""
import logging
import sys

import uvicorn

from sunnah_audio.config import Settings

logger = logging.getLogger("uvicorn.error")


def main() -> int:
    try:
        settings = Settings.from_env()
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    from sunnah_audio.main import create_app

    try:
        uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
    except SystemExit as e:
        # uvicorn exits non-zero itself on bind and lifespan startup failures
        if e.code not in (None, 0):
            logger.error("Server failed to start (exit code %s)", e.code)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
