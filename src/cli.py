"""
Command-line interface for creator-sync.

Provides commands to run a sync, serve the scheduler endpoint,
initialize the database, register accounts and creators, and run
diagnostic checks.

Usage:
    creator-sync sync          # Run one sync for all accounts
    creator-sync serve         # Start the API server
    creator-sync init-db       # Initialize database
    creator-sync add-account   # Register or update an account
    creator-sync add-source    # Track a creator for an account
    creator-sync health        # Check service health
"""

import asyncio
import json
import sys

import click

from src.config.settings import get_settings
from src.observability.logging import setup_logging
from src.observability.metrics import get_metrics


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Creator Sync - scheduled video sync for tracked creators."""
    get_settings.cache_clear()
    setup_logging("DEBUG" if debug else None)


@main.command()
@click.option(
    "--trigger",
    type=click.Choice(["cron", "manual"]),
    default="manual",
    help="Recorded in the sync log",
)
@click.option("--json", "as_json", is_flag=True, help="Print the run report as JSON")
def sync(trigger: str, as_json: bool) -> None:
    """Run one sync across all accounts.

    Designed for cron scheduling: 30 6,17 * * * creator-sync sync --trigger cron

    Exits 1 if the run could not start (accounts could not be loaded).
    """
    from src.storage.database import Database
    from src.sync.runtime import SyncContext, run_scheduled_sync
    from src.sync.schemas import SyncRunError

    async def run() -> int:
        db = Database()
        await db.connect()

        try:
            context = SyncContext.from_settings(db)
            try:
                report = await run_scheduled_sync(context, trigger)
            except SyncRunError as e:
                if as_json:
                    click.echo(json.dumps({"success": False, "error": str(e)}))
                else:
                    click.echo(click.style(f"Sync failed: {e}", fg="red"), err=True)
                return 1
        finally:
            await db.close()

        if as_json:
            click.echo(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
            return 0

        click.echo(f"\nSync Results ({report.timestamp:%Y-%m-%d %H:%M:%S} UTC):")
        if report.message:
            click.echo(f"  {report.message}")
        for result in report.results:
            line = f"  {result.account_id}: {result.new_item_count} new"
            if result.error:
                click.echo(click.style(f"{line} ({result.error})", fg="yellow"))
            else:
                click.echo(click.style(line, fg="green"))
        click.echo(f"  Total new videos: {report.total_new_items}")
        return 0

    sys.exit(asyncio.run(run()))


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema."""
    from src.storage.database import Database
    from src.sync.runtime import create_tables

    async def run():
        db = Database()
        await db.connect()

        try:
            await create_tables(db)
            click.echo("Database initialized successfully")
        finally:
            await db.close()

    asyncio.run(run())


@main.command("add-account")
@click.argument("account_id")
@click.option("--credential", default=None, help="Upstream cookie for this account")
def add_account(account_id: str, credential: str | None) -> None:
    """Register an account, or update its credential."""
    from src.accounts.repository import AccountRepository
    from src.accounts.schemas import Account
    from src.storage.database import Database

    async def run():
        db = Database()
        await db.connect()

        try:
            await AccountRepository(db).upsert(Account(id=account_id, credential=credential))
            click.echo(f"Account {account_id} saved")
        finally:
            await db.close()

    asyncio.run(run())


@main.command("add-source")
@click.argument("account_id")
@click.argument("source_id", type=int)
@click.option("--name", default="", help="Creator display name")
@click.option("--inactive", is_flag=True, help="Store the creator but skip it during sync")
def add_source(account_id: str, source_id: int, name: str, inactive: bool) -> None:
    """Track a creator (by upstream id) for an account."""
    from src.sources.repository import SourcesRepository
    from src.sources.schemas import Source
    from src.storage.database import Database

    async def run():
        db = Database()
        await db.connect()

        try:
            await SourcesRepository(db).upsert(
                Source(
                    account_id=account_id,
                    source_id=source_id,
                    name=name,
                    is_active=not inactive,
                )
            )
            click.echo(f"Source {source_id} saved for account {account_id}")
        finally:
            await db.close()

    asyncio.run(run())


@main.command()
def health() -> None:
    """Check health of all dependencies."""
    import structlog
    logger = structlog.get_logger()

    async def check():
        results: dict[str, bool] = {}

        try:
            from src.storage.database import Database
            db = Database()
            await db.connect()
            results["postgres"] = await db.health_check()
            await db.close()
        except Exception as e:
            results["postgres"] = False
            logger.error("Postgres health check failed", error=str(e))

        settings = get_settings()
        results["default_credential_configured"] = bool(settings.bilibili_cookie)
        results["cron_secret_configured"] = settings.cron_secret_configured

        click.echo("\nHealth Check Results:")
        click.echo("-" * 40)

        for name, status in results.items():
            icon = "✓" if status else "✗"
            color = "green" if status else "red"
            click.echo(click.style(f"  {icon} {name}: {status}", fg=color))

        click.echo("-" * 40)

        if results["postgres"]:
            click.echo(click.style("All core services healthy!", fg="green"))
            sys.exit(0)
        else:
            click.echo(click.style("Some services unhealthy!", fg="red"))
            sys.exit(1)

    asyncio.run(check())


@main.command()
@click.option("--host", default=None, help="API server host")
@click.option("--port", default=None, type=int, help="API server port")
@click.option("--reload", is_flag=True, help="Enable auto-reload (dev only)")
@click.option("--metrics-port", default=None, type=int, help="Metrics server port")
def serve(host: str | None, port: int | None, reload: bool, metrics_port: int | None) -> None:
    """Start the sync API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    metrics_port = metrics_port or settings.metrics_port

    get_metrics().start_server(port=metrics_port)

    click.echo(f"Starting API server on {host}:{port}")
    click.echo(f"Metrics available on http://localhost:{metrics_port}/metrics")
    click.echo(f"API docs available on http://localhost:{port}/docs")

    uvicorn.run(
        "src.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
