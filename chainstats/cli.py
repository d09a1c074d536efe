import json
import signal
import sys
import click

from config.logging import configure_logging
from config.settings import get_settings
from .errors import CacheMiss, ChainStatsError
from .service import ChainStatsService

def _service(ctx: click.Context) -> ChainStatsService:
    """Return the service for this invocation, building it on first use."""
    if "service" not in ctx.obj:
        ctx.obj["service"] = ChainStatsService.from_settings(ctx.obj["settings"])
    return ctx.obj["service"]

@click.group()
@click.option("--log-level", type=str, default=None, help="Override the configured log level")
@click.pass_context
def cli(ctx: click.Context, log_level: str):
    """Chain throughput statistics"""
    ctx.ensure_object(dict)
    settings = ctx.obj.setdefault("settings", get_settings())
    configure_logging(log_level or settings.LOG_LEVEL)

@cli.command("init-db")
@click.option("--drop-existing", is_flag=True, help="Drop every existing table first")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def init_db(ctx: click.Context, drop_existing: bool, yes: bool):
    """Create the block store tables"""
    if drop_existing and not yes:
        click.confirm("This drops every table in the current schema. Continue?", abort=True)
    try:
        _service(ctx).db.init_schema(drop_existing=drop_existing)
    except ChainStatsError as e:
        click.echo(f"Error initializing database: {e}", err=True)
        sys.exit(1)
    click.echo("✓ Database initialized")

@cli.command("drop-tables")
@click.confirmation_option(prompt="This drops every table in the current schema and cannot be undone. Continue?")
@click.pass_context
def drop_tables(ctx: click.Context):
    """Drop every table of the current schema"""
    try:
        with _service(ctx).db.begin() as tx:
            tx.drop_tables()
            tx.commit()
    except ChainStatsError as e:
        click.echo(f"Error dropping tables: {e}", err=True)
        sys.exit(1)
    click.echo("✓ All tables dropped")

@cli.command()
@click.pass_context
def refresh(ctx: click.Context):
    """Run a single refresh cycle"""
    result = _service(ctx).orchestrator.refresh()
    click.echo(json.dumps({
        "stages": result.stages,
        "blocks": len(result.snapshot) if result.snapshot is not None else None,
        "errors": [f"{type(error).__name__}: {error}" for error in result.errors]
    }))
    if not result.ok:
        sys.exit(1)

@cli.command()
@click.option("--interval", type=float, default=None, help="Seconds between cycles")
@click.pass_context
def run(ctx: click.Context, interval: float):
    """Refresh on a fixed schedule until interrupted"""
    service = _service(ctx)
    scheduler = service.scheduler()
    if interval is not None:
        scheduler.interval = interval

    def signal_handler(sig, frame):
        click.echo("\nStopping refresh scheduler...")
        scheduler.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)
    try:
        scheduler.run_forever()
    finally:
        service.close()

@cli.command()
@click.pass_context
def show(ctx: click.Context):
    """Print the cached snapshot"""
    try:
        wire = _service(ctx).cache.read_wire()
    except CacheMiss:
        click.echo("Snapshot has not been populated yet", err=True)
        sys.exit(2)
    except ChainStatsError as e:
        click.echo(f"Error reading snapshot: {e}", err=True)
        sys.exit(1)
    click.echo(json.dumps([item.model_dump() for item in wire], indent=2))

@cli.command("block-of")
@click.argument("tx_hash")
@click.pass_context
def block_of(ctx: click.Context, tx_hash: str):
    """Print the block containing a transaction (hex hash)"""
    try:
        raw_hash = bytes.fromhex(tx_hash)
    except ValueError:
        raise click.BadParameter("transaction hash must be hex encoded", param_hint="TX_HASH")
    try:
        block_id, found = _service(ctx).db.get_block_id(raw_hash)
    except ChainStatsError as e:
        click.echo(f"Error looking up transaction: {e}", err=True)
        sys.exit(1)
    if not found:
        click.echo("Transaction not found", err=True)
        sys.exit(2)
    click.echo(str(block_id))

@cli.command()
@click.option("--host", type=str, default=None, help="Bind address")
@click.option("--port", type=int, default=None, help="Bind port")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int):
    """Serve the explorer API"""
    import uvicorn
    from explorer.app import create_app

    settings = ctx.obj["settings"]
    app = create_app(_service(ctx))
    uvicorn.run(app, host=host or settings.API_HOST, port=port or settings.API_PORT)

if __name__ == "__main__":
    cli()
