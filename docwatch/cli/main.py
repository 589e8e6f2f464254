"""CLI commands for docwatch."""

import asyncio
import logging
import sys
import uuid
from pathlib import Path

import click
import structlog
from pydantic import ValidationError

from docwatch import __version__
from docwatch.config.constants import COMPONENT_CLI
from docwatch.config.loader import ConfigLoader
from docwatch.config.settings import WatchSettings
from docwatch.errors import ConfigValidationError, DocwatchError
from docwatch.observability.logging import (
    bind_session_context,
    clear_session_context,
    configure_logging,
)
from docwatch.observability.metrics import WatchMetrics
from docwatch.watcher.orchestrator import Orchestrator


logger = structlog.get_logger()


def _build_settings(**options: object) -> WatchSettings:
    """Create settings, letting explicitly passed CLI options win over the environment.

    Raises:
        ConfigValidationError: If an option or environment value is invalid.
    """
    overrides = {key: value for key, value in options.items() if value is not None}
    try:
        return WatchSettings(**overrides)
    except ValidationError as e:
        errors = [
            {
                "loc": ".".join(str(loc) for loc in err["loc"]),
                "msg": err["msg"],
                "type": err["type"],
            }
            for err in e.errors()
        ]
        raise ConfigValidationError(errors, "command line options") from e


def _setup_logging(
    settings: WatchSettings, command: str
) -> structlog.typing.FilteringBoundLogger:
    """Configure logging and return a logger bound to the session."""
    log_level = logging.DEBUG if settings.verbose else logging.INFO
    configure_logging(level=log_level, json_format=settings.json_logs)
    session_id = str(uuid.uuid4())
    bind_session_context(session_id, str(settings.root_path))
    return logger.bind(component=COMPONENT_CLI, command=command)


def _create_orchestrator(settings: WatchSettings) -> Orchestrator:
    project = ConfigLoader(settings.root_path).load()
    return Orchestrator(settings, project)


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """Render a directory of markdown documents to HTML and keep it in sync."""


@cli.command()
@click.argument(
    "root",
    required=False,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option("--host", default=None, help="Live-reload server bind address.")
@click.option("--port", type=int, default=None, help="Live-reload server port (default: 5000).")
@click.option(
    "--interval",
    "poll_interval_ms",
    type=int,
    default=None,
    help="Poll interval in milliseconds (default: 500).",
)
@click.option("--theme", default=None, help="Pygments style name or VS Code theme JSON.")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines.")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging.")
def watch(  # noqa: PLR0913
    root: Path | None,
    host: str | None,
    port: int | None,
    poll_interval_ms: int | None,
    theme: str | None,
    json_logs: bool,
    verbose: bool,
) -> None:
    """Watch ROOT, re-render changed documents and serve them with live reload."""
    log = logger.bind(component=COMPONENT_CLI, command="watch")
    try:
        settings = _build_settings(
            root=root,
            host=host,
            port=port,
            poll_interval_ms=poll_interval_ms,
            theme=theme,
            json_logs=json_logs or None,
            verbose=verbose or None,
        )
        log = _setup_logging(settings, "watch")
        orchestrator = _create_orchestrator(settings)
        asyncio.run(orchestrator.run())
    except ConfigValidationError as e:
        log.error("startup_failed", error=str(e), errors=e.errors)
        sys.exit(1)
    except DocwatchError as e:
        log.error("startup_failed", error=str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        log.info("watch_stopped", **WatchMetrics.get_instance().to_dict())
    finally:
        clear_session_context()


@cli.command()
@click.argument(
    "root",
    required=False,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option("--theme", default=None, help="Pygments style name or VS Code theme JSON.")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines.")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging.")
def build(
    root: Path | None,
    theme: str | None,
    json_logs: bool,
    verbose: bool,
) -> None:
    """Render every document in ROOT once and exit."""
    log = logger.bind(component=COMPONENT_CLI, command="build")
    try:
        settings = _build_settings(
            root=root,
            theme=theme,
            json_logs=json_logs or None,
            verbose=verbose or None,
        )
        log = _setup_logging(settings, "build")
        orchestrator = _create_orchestrator(settings)
        report = asyncio.run(orchestrator.build_once())
    except ConfigValidationError as e:
        log.error("startup_failed", error=str(e), errors=e.errors)
        sys.exit(1)
    except DocwatchError as e:
        log.error("startup_failed", error=str(e))
        sys.exit(1)

    for generated in report.generated:
        click.echo(f"Wrote {generated.path}")
    if not report.success:
        click.echo(f"Failed: {', '.join(report.failed)}", err=True)
        sys.exit(1)


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
