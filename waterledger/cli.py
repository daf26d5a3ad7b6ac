"""CLI entrypoint for waterledger."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import resolve_ledger_dir
from .events import EVENT_TYPES


def _require_identity(ctx: click.Context) -> str:
    identity = ctx.obj.get("identity")
    if not identity:
        raise click.UsageError("This command needs a caller identity. Pass --as IDENTITY or set WATERLEDGER_IDENTITY.")
    return identity


def _configure_logging(level: str) -> None:
    # No-op when the root logger already has handlers (e.g. under a test runner)
    logging.basicConfig(
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    logging.getLogger("waterledger").setLevel(getattr(logging, level.upper()))


timestamp_option = click.option(
    "--at",
    "timestamp",
    type=int,
    default=None,
    metavar="TIMESTAMP",
    help="Logical timestamp for this operation (default: current epoch seconds)",
)

json_option = click.option("--json", "output_json", is_flag=True, help="Output results as JSON")


@click.group()
@click.version_option(__version__, prog_name="waterledger")
@click.option(
    "--ledger-dir",
    "-d",
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Ledger directory (defaults to $WATERLEDGER_DIR or ./.waterledger)",
)
@click.option(
    "--as",
    "identity",
    type=str,
    default=None,
    envvar="WATERLEDGER_IDENTITY",
    metavar="IDENTITY",
    help="Caller identity for mutating commands",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity (written to stderr)",
)
@click.pass_context
def cli(ctx: click.Context, ledger_dir: Path | None, identity: str | None, log_level: str) -> None:
    """waterledger - Tamper-evident water quality and distribution ledger.

    Record measurements, track distributions against safe sources, and
    confirm deliveries.
    """
    _configure_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["ledger_dir"] = resolve_ledger_dir(ledger_dir)
    ctx.obj["identity"] = identity


@cli.command()
@click.option("--owner", required=True, help="Owner identity (fixed for the life of the ledger)")
@click.option("--verifier", "verifiers", multiple=True, help="Grant verifier role at genesis. Repeatable.")
@click.option("--distributor", "distributors", multiple=True, help="Grant distributor role at genesis. Repeatable.")
@timestamp_option
@click.pass_context
def init(
    ctx: click.Context,
    owner: str,
    verifiers: tuple[str, ...],
    distributors: tuple[str, ...],
    timestamp: int | None,
) -> None:
    """Initialize a new ledger directory."""
    from .commands.ledger_cmd import run_init

    exit_code = run_init(
        ctx.obj["ledger_dir"], owner, verifiers=verifiers, distributors=distributors, timestamp=timestamp
    )
    sys.exit(exit_code)


@cli.command()
@click.option("--ph", type=int, required=True, help="pH x100 (e.g. 720 for 7.20)")
@click.option("--tds", type=int, required=True, help="Total dissolved solids, ppm")
@click.option("--turbidity", type=int, required=True, help="Turbidity, NTU")
@click.option("--temperature", type=int, required=True, help="Temperature, degrees C x10 (e.g. 250 for 25.0)")
@click.option("--location", required=True, help="Location key (e.g. Well-A)")
@timestamp_option
@json_option
@click.pass_context
def record(
    ctx: click.Context,
    ph: int,
    tds: int,
    turbidity: int,
    temperature: int,
    location: str,
    timestamp: int | None,
    output_json: bool,
) -> None:
    """Record a water-quality measurement (verifiers only)."""
    from .commands.ledger_cmd import run_record

    exit_code = run_record(
        ctx.obj["ledger_dir"],
        _require_identity(ctx),
        ph=ph,
        tds=tds,
        turbidity=turbidity,
        temperature=temperature,
        location=location,
        timestamp=timestamp,
        output_json=output_json,
    )
    sys.exit(exit_code)


@cli.command()
@click.option("--source", required=True, help="Source location")
@click.option("--destination", "--dest", "destination", required=True, help="Destination location")
@click.option("--quantity", type=int, required=True, help="Quantity in liters")
@click.option("--quality-id", type=int, required=True, help="Quality record certifying the source")
@timestamp_option
@json_option
@click.pass_context
def track(
    ctx: click.Context,
    source: str,
    destination: str,
    quantity: int,
    quality_id: int,
    timestamp: int | None,
    output_json: bool,
) -> None:
    """Track a distribution against a safe quality record (distributors only)."""
    from .commands.ledger_cmd import run_track

    exit_code = run_track(
        ctx.obj["ledger_dir"],
        _require_identity(ctx),
        source=source,
        destination=destination,
        quantity=quantity,
        quality_id=quality_id,
        timestamp=timestamp,
        output_json=output_json,
    )
    sys.exit(exit_code)


@cli.command()
@click.argument("distribution_id", type=int)
@timestamp_option
@click.pass_context
def confirm(ctx: click.Context, distribution_id: int, timestamp: int | None) -> None:
    """Confirm delivery of a distribution (original distributor only)."""
    from .commands.ledger_cmd import run_confirm

    sys.exit(run_confirm(ctx.obj["ledger_dir"], _require_identity(ctx), distribution_id, timestamp=timestamp))


@cli.command()
@click.argument("role", type=click.Choice(["verifier", "distributor"]))
@click.argument("target")
@timestamp_option
@click.pass_context
def grant(ctx: click.Context, role: str, target: str, timestamp: int | None) -> None:
    """Grant a role to TARGET (owner only)."""
    from .commands.ledger_cmd import run_role_change

    exit_code = run_role_change(
        ctx.obj["ledger_dir"], _require_identity(ctx), role, target, grant=True, timestamp=timestamp  # type: ignore[arg-type]
    )
    sys.exit(exit_code)


@cli.command()
@click.argument("role", type=click.Choice(["verifier", "distributor"]))
@click.argument("target")
@timestamp_option
@click.pass_context
def revoke(ctx: click.Context, role: str, target: str, timestamp: int | None) -> None:
    """Revoke a role from TARGET (owner only)."""
    from .commands.ledger_cmd import run_role_change

    exit_code = run_role_change(
        ctx.obj["ledger_dir"], _require_identity(ctx), role, target, grant=False, timestamp=timestamp  # type: ignore[arg-type]
    )
    sys.exit(exit_code)


@cli.command()
@click.argument("location")
@json_option
@click.pass_context
def history(ctx: click.Context, location: str, output_json: bool) -> None:
    """List quality records at LOCATION in recording order."""
    from .commands.query_cmd import run_history

    sys.exit(run_history(ctx.obj["ledger_dir"], location, output_json=output_json))


@cli.command()
@click.argument("location")
@json_option
@click.pass_context
def latest(ctx: click.Context, location: str, output_json: bool) -> None:
    """Show the stored verdict of the latest record at LOCATION."""
    from .commands.query_cmd import run_latest

    sys.exit(run_latest(ctx.obj["ledger_dir"], location, output_json=output_json))


@cli.command()
@click.argument("distribution_id", type=int)
@json_option
@click.pass_context
def status(ctx: click.Context, distribution_id: int, output_json: bool) -> None:
    """Show the status of a distribution."""
    from .commands.query_cmd import run_status

    sys.exit(run_status(ctx.obj["ledger_dir"], distribution_id, output_json=output_json))


@cli.command()
@click.argument("quality_id", type=int)
@click.pass_context
def quality(ctx: click.Context, quality_id: int) -> None:
    """Show a quality record as JSON."""
    from .commands.query_cmd import run_quality_show

    sys.exit(run_quality_show(ctx.obj["ledger_dir"], quality_id))


@cli.command()
@json_option
@click.pass_context
def roles(ctx: click.Context, output_json: bool) -> None:
    """Show the owner and current role members."""
    from .commands.query_cmd import run_roles

    sys.exit(run_roles(ctx.obj["ledger_dir"], output_json=output_json))


@cli.command()
@click.option("--last", "last_n", type=int, default=None, help="Show only the last N events")
@click.option(
    "--type",
    "event_types",
    type=click.Choice(sorted(EVENT_TYPES)),
    multiple=True,
    help="Filter by event type. Repeatable.",
)
@json_option
@click.pass_context
def events(ctx: click.Context, last_n: int | None, event_types: tuple[str, ...], output_json: bool) -> None:
    """Show emitted domain events."""
    from .commands.query_cmd import run_events

    sys.exit(run_events(ctx.obj["ledger_dir"], last_n=last_n, event_types=list(event_types), output_json=output_json))


@cli.command()
@json_option
@click.pass_context
def verify(ctx: click.Context, output_json: bool) -> None:
    """Verify the journal hash chain."""
    from .commands.query_cmd import run_verify

    sys.exit(run_verify(ctx.obj["ledger_dir"], output_json=output_json))


if __name__ == "__main__":
    cli()
