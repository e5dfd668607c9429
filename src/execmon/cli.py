"""Command line entry point for execmon."""

import os
from dataclasses import replace
from pathlib import Path

import click
import structlog

from execmon.config import DEFAULT_CONFIG
from execmon.logging import configure

log = structlog.get_logger(__name__)


@click.command()
@click.version_option(package_name="execmon")
@click.option(
    "--kill-timeout",
    type=click.FloatRange(min=0.0),
    default=DEFAULT_CONFIG.grace_period,
    show_default=True,
    help="Seconds to wait after SIGTERM before sending SIGKILL.",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write JSON logs to this file.",
)
@click.option("--debug", is_flag=True, help="Log at debug level.")
def main(kill_timeout: float, log_file: Path | None, debug: bool) -> None:
    """Watch process creation live and inspect or kill new processes."""
    configure(log_file, debug)

    # Attaching kernel probes needs root
    if os.geteuid() != 0:
        raise click.ClickException("execmon must be run as root")

    from execmon.app import ExecMonApp
    from execmon.source import BccExecSource, EventSourceError

    try:
        source = BccExecSource()
    except EventSourceError as exc:
        log.error("event_source_failed", error=str(exc))
        raise click.ClickException(str(exc)) from exc

    config = replace(DEFAULT_CONFIG, grace_period=kill_timeout)
    app = ExecMonApp(source=source, config=config)
    try:
        app.run()
    finally:
        source.close()
    log.info("execmon_stopped")


if __name__ == "__main__":
    main()
