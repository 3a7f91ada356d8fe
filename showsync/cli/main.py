"""CLI commands for showsync."""

import json
import logging
import sys
import uuid
from pathlib import Path
from typing import Any, NoReturn

import click
import structlog

from showsync import __version__
from showsync.errors import ShowsyncError
from showsync.observability.logging import bind_run_context, configure_logging
from showsync.runtime import Runtime
from showsync.settings.app import AppSettings, get_settings
from showsync.store.store import SqliteStore


logger = structlog.get_logger()

COMPONENT_CLI = "cli"


def _setup(json_logs: bool, verbose: bool, command: str) -> str:
    """Configure logging and bind a fresh run id.

    Returns:
        The run id.
    """
    run_id = str(uuid.uuid4())
    log_level = logging.DEBUG if verbose else logging.INFO
    configure_logging(level=log_level, json_format=json_logs)
    bind_run_context(run_id)
    logger.info("command_started", component=COMPONENT_CLI, command=command)
    return run_id


def _load_settings(db_path: Path | None) -> AppSettings:
    settings = get_settings()
    if db_path is not None:
        settings = settings.model_copy(update={"db_path": db_path})
    return settings


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, sort_keys=True))


def _fail(command: str, exc: ShowsyncError) -> NoReturn:
    logger.error(
        "command_failed",
        component=COMPONENT_CLI,
        command=command,
        error_class=exc.error_class.value,
        error=exc.message,
    )
    click.echo(json.dumps({"error": exc.to_dict()}, indent=2, default=str), err=True)
    sys.exit(1)


def _parse_args(pairs: tuple[str, ...]) -> dict[str, str]:
    args: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            msg = f"Expected key=value, got {pair!r}"
            raise click.BadParameter(msg, param_hint="--arg")
        args[key.strip()] = value
    return args


def common_options(func: Any) -> Any:
    """Attach the logging and database options shared by every command."""
    func = click.option(
        "--db-path",
        "db_path",
        type=click.Path(path_type=Path),
        default=None,
        help="Path to SQLite store (default: SHOWSYNC_DB_PATH).",
    )(func)
    func = click.option(
        "--verbose",
        "-v",
        is_flag=True,
        help="Enable verbose logging.",
    )(func)
    return click.option(
        "--json-logs/--no-json-logs",
        default=True,
        help="Use JSON format for logs (default: true).",
    )(func)


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """Catalog mirror sync, caching and rate limiting."""


@cli.command()
@common_options
def sync(json_logs: bool, verbose: bool, db_path: Path | None) -> None:
    """Run one sync pass over every subscribed show."""
    run_id = _setup(json_logs, verbose, "sync")
    runtime = Runtime.build(settings=_load_settings(db_path), run_id=run_id)
    try:
        summary = runtime.sync_engine(run_id=run_id).run()
    except ShowsyncError as exc:
        _fail("sync", exc)
    finally:
        runtime.close()

    _echo_json(summary.to_dict())
    if summary.collections_failed:
        sys.exit(2)


@cli.command("refresh-subscriptions")
@common_options
def refresh_subscriptions(json_logs: bool, verbose: bool, db_path: Path | None) -> None:
    """Copy current show details onto every subscription."""
    run_id = _setup(json_logs, verbose, "refresh-subscriptions")
    runtime = Runtime.build(settings=_load_settings(db_path), run_id=run_id)
    try:
        summary = runtime.subscription_refresher().run()
    except ShowsyncError as exc:
        _fail("refresh-subscriptions", exc)
    finally:
        runtime.close()

    _echo_json(summary.to_dict())


@cli.command()
@click.argument("operation")
@click.option(
    "--arg",
    "arg_pairs",
    multiple=True,
    help="Operation argument as key=value (repeatable).",
)
@click.option(
    "--identity",
    "identity_key",
    default=None,
    help="Caller identity (omit for anonymous).",
)
@common_options
def proxy(  # noqa: PLR0913
    operation: str,
    arg_pairs: tuple[str, ...],
    identity_key: str | None,
    json_logs: bool,
    verbose: bool,
    db_path: Path | None,
) -> None:
    """Serve one catalog OPERATION through the limiter and cache."""
    args = _parse_args(arg_pairs)
    run_id = _setup(json_logs, verbose, "proxy")
    runtime = Runtime.build(settings=_load_settings(db_path), run_id=run_id)
    try:
        result = runtime.proxy.proxy(operation, args, identity_key)
    except ShowsyncError as exc:
        _fail("proxy", exc)
    finally:
        runtime.close()

    _echo_json(result)


@cli.command("db-stats")
@click.option(
    "--db-path",
    "db_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to SQLite store (default: SHOWSYNC_DB_PATH).",
)
def db_stats(db_path: Path | None) -> None:
    """Display record counts by data type and the schema version."""
    configure_logging(json_format=False, level=logging.WARNING)

    with SqliteStore(db_path=_load_settings(db_path).db_path) as store:
        _echo_json(
            {
                "schema_version": store.get_schema_version(),
                "records": store.get_stats(),
            }
        )


if __name__ == "__main__":
    cli()
