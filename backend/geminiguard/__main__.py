"""Run the GeminiGuard server with ``python -m geminiguard``."""

import uvicorn

from geminiguard.config import settings


def main() -> None:
    uvicorn.run(
        "geminiguard.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
