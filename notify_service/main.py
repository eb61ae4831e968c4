"""Main entry point for notify-service.

    python -m notify_service.main            # run the API server
    python -m notify_service.main seed       # any other arguments go to the CLI
"""

from __future__ import annotations

import sys


def run_fastapi_server() -> None:
    """Run the FastAPI application server with settings from configuration."""
    import uvicorn

    from notify_service.core.settings import get_app_settings, get_logging_settings

    settings = get_app_settings()
    log_settings = get_logging_settings()

    uvicorn.run(
        "notify_service.app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        access_log=settings.debug,
        log_level=log_settings.level.lower(),
    )


def main() -> None:
    if len(sys.argv) > 1:
        from notify_service.cli.main import main as cli_main

        cli_main()
    else:
        run_fastapi_server()


if __name__ == "__main__":
    main()
