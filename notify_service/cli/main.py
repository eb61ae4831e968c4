"""Main CLI entry point for notify-service management commands."""

import sys

import click

from notify_service.cli.utils import coro, error, info, success
from notify_service.core.settings import get_app_settings, get_logging_settings
from notify_service.infra.logging.config import setup_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="notify-service")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Notify Service CLI - run the API and maintain notification data.

    \b
    Quick Start:
      notify-service serve              # Run the API server
      notify-service seed               # Insert default mappings and templates
      notify-service reconcile          # Re-enqueue stale notifications
    """
    ctx.ensure_object(dict)
    setup_logging()


@cli.command()
@click.option("--host", default=None, help="Host to bind (default: APP_HOST)")
@click.option("--port", default=None, type=int, help="Port to bind (default: APP_PORT)")
@click.option("--reload/--no-reload", default=False, help="Enable auto-reload on code changes")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Run the FastAPI server with uvicorn."""
    import uvicorn

    settings = get_app_settings()
    info(f"Starting {settings.service_name} on {host or settings.host}:{port or settings.port}")
    uvicorn.run(
        "notify_service.app.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        access_log=settings.debug,
        log_level=get_logging_settings().level.lower(),
    )


@cli.command()
@coro
async def seed() -> None:
    """Insert the default event mappings and templates if none exist."""
    from notify_service.features.notifications.seed import seed_defaults
    from notify_service.infra.database import close_database, get_async_session, init_database

    await init_database()
    try:
        async with get_async_session() as session:
            inserted = await seed_defaults(session)
    finally:
        await close_database()

    if inserted:
        success("Default event mappings and templates inserted")
    else:
        info("Event mappings already present; nothing to do")


@cli.command()
@click.option(
    "--older-than",
    "older_than_seconds",
    default=None,
    type=int,
    help="Minimum age in seconds (default: NOTIFY_RECONCILE_AFTER_SECONDS)",
)
@click.option("--limit", default=None, type=int, help="Maximum records to re-enqueue")
@coro
async def reconcile(older_than_seconds: int | None, limit: int | None) -> None:
    """Re-enqueue PENDING and RETRIED notifications that stopped making progress.

    Requires RabbitMQ: jobs are handed to the Taskiq workers.
    """
    from notify_service.features.notifications.reconcile import get_notification_reconciler
    from notify_service.infra.database import close_database
    from notify_service.infra.tasks.broker import broker, start_taskiq, stop_taskiq

    if broker is None:
        error("RabbitMQ is not configured (set RABBIT_AMQP_URI)")
        sys.exit(1)

    await start_taskiq()
    try:
        result = await get_notification_reconciler().sweep(
            older_than_seconds=older_than_seconds,
            limit=limit,
        )
    finally:
        await stop_taskiq()
        await close_database()

    success(
        f"Re-enqueued {len(result.requeued)} of {result.scanned} stale notification(s)"
        + (f", {len(result.failed)} failed" if result.failed else "")
    )


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
