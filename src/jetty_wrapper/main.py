"""Main CLI entry point for jetty-wrapper.

This module provides the command-line interface for starting, stopping and
checking a Jetty server, and for running a command against a live instance.
"""

import json
import subprocess
import sys
import traceback
from functools import wraps
from typing import Any, Dict, Optional

import click
from pydantic import ValidationError

from .__version__ import __version__
from .config import ConfigurationError, JettyConfig, Settings, configure_logging, get_logger
from .management import Supervisor, SupervisorError, get_supervisor

logger = get_logger(__name__)

# Parameter names used by older rake-style configuration files
CONFIG_ALIASES = {
    "jetty_home": "home",
    "jetty_port": "port",
}


class CLIError(Exception):
    """Base CLI error with user-friendly messages."""

    def __init__(self, message: str, suggestion: Optional[str] = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)


class CLIContext:
    """Global CLI context management."""

    def __init__(
        self,
        verbose: bool = False,
        quiet: bool = False,
        config_file: Optional[str] = None,
    ):
        self.verbose = verbose
        self.quiet = quiet
        self.config_file = config_file
        self.config = self.load_config()

    def load_config(self) -> Dict[str, Any]:
        """Load Jetty parameters from the configuration file, if any."""
        if not self.config_file:
            return {}

        raw = self._load_config_file(self.config_file)
        if not isinstance(raw, dict):
            raise CLIError(
                "Invalid configuration file: expected a mapping of settings",
                "Use 'key: value' pairs such as 'home: /path/to/jetty'",
            )

        return {CONFIG_ALIASES.get(key, key): value for key, value in raw.items()}

    def _load_config_file(self, config_path: str) -> Any:
        """Load configuration from YAML file."""
        import yaml

        try:
            with open(config_path, "r") as f:
                return yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise CLIError(
                f"Invalid configuration file: {e}",
                "Check YAML syntax and file format",
            )

    def build_jetty_config(self, **options: Any) -> JettyConfig:
        """Merge file settings with command-line options.

        Options left unset on the command line fall back to the file, then
        to ``JETTY_*`` environment variables, then to defaults.
        """
        values = dict(self.config)
        values.update({key: value for key, value in options.items() if value is not None})

        try:
            return JettyConfig(**values)
        except ValidationError as e:
            raise CLIError(
                f"Invalid Jetty configuration: {e}",
                "Check the values passed on the command line or in the config file",
            )


def handle_cli_error(error: Exception, ctx: Optional[click.Context] = None):
    """Global CLI error handler."""
    if isinstance(error, (CLIError, SupervisorError)):
        click.echo(f"❌ {error.message}", err=True)
        if error.suggestion:
            click.echo(f"💡 {error.suggestion}", err=True)
    elif isinstance(error, ConfigurationError):
        click.echo(f"❌ {error}", err=True)
        if error.suggestion:
            click.echo(f"💡 {error.suggestion}, or pass --jetty-home", err=True)
    elif isinstance(error, click.ClickException):
        error.show()
    else:
        logger.error("Unexpected CLI error", error=str(error), error_type=type(error).__name__)
        verbose = False
        if ctx and ctx.obj:
            verbose = ctx.obj.get("verbose", False)

        click.echo(f"Unexpected error: {str(error)}", err=True)
        if verbose:
            click.echo(traceback.format_exc(), err=True)
        else:
            click.echo("Run with --verbose for detailed error information", err=True)

    sys.exit(1)


def jetty_options(f):
    """Options describing which Jetty to act on."""
    options = [
        click.option(
            "--jetty-home", "-j", "home",
            type=click.Path(file_okay=False),
            help="Directory containing Jetty's start.jar",
        ),
        click.option("--port", "-p", type=int, help="Port Jetty listens on (default: 8888)"),
        click.option(
            "--startup-wait", type=float,
            help="Seconds to wait for Jetty to come up (default: 5)",
        ),
        click.option("--solr-home", type=click.Path(), help="Solr home (default: <jetty-home>/solr)"),
        click.option(
            "--fedora-home", type=click.Path(),
            help="Fedora home (default: <jetty-home>/fedora/default)",
        ),
        click.option("--base-path", type=click.Path(), help="Root for tmp and pid files"),
        click.option("--pid-file", type=str, help="PID file name (default: derived from Jetty home)"),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def pass_supervisor(f):
    """Resolve the Jetty configuration and hand the command a configured supervisor."""

    @click.pass_context
    @wraps(f)
    def wrapper(ctx: click.Context, *args, **kwargs):
        cli_context: CLIContext = ctx.obj["cli_context"]
        jetty_keys = ("home", "port", "startup_wait", "solr_home", "fedora_home", "base_path", "pid_file")
        jetty_values = {key: kwargs.pop(key, None) for key in jetty_keys}
        output = kwargs.pop("jetty_output", None)
        if output is not None:
            jetty_values["quiet"] = not output

        try:
            config = cli_context.build_jetty_config(**jetty_values)
            supervisor = get_supervisor().configure(config)
            return f(cli_context, supervisor, *args, **kwargs)
        except Exception as error:
            handle_cli_error(error, ctx)

    return wrapper


@click.group()
@click.version_option(version=__version__, prog_name="jetty-wrapper")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output with detailed logging",
)
@click.option(
    "--quiet", "-q", is_flag=True, help="Enable quiet mode with minimal output"
)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Configuration file path (YAML format)",
)
@click.option("--log-file", type=click.Path(), help="Also write logs to this file")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    config: Optional[str],
    log_file: Optional[str],
):
    """Start, stop and check a Jetty server for test runs.

    The PID of a started Jetty is written to a file named after its home
    directory, so a later 'stop' finds the server started by an earlier
    'start', even from another shell.

    \b
    Examples:
      jetty-wrapper start --jetty-home ./jetty --port 8983
      jetty-wrapper status --jetty-home ./jetty
      jetty-wrapper stop --jetty-home ./jetty
      jetty-wrapper wrap --jetty-home ./jetty --startup-wait 30 -- pytest tests/
    """
    if verbose and quiet:
        raise click.BadParameter("Cannot use both --verbose and --quiet options")

    ctx.ensure_object(dict)
    try:
        cli_context = CLIContext(verbose=verbose, quiet=quiet, config_file=config)
    except CLIError as error:
        handle_cli_error(error, ctx)

    ctx.obj["cli_context"] = cli_context
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    settings = Settings()
    if verbose:
        level = "DEBUG"
    elif quiet:
        level = "ERROR"
    else:
        level = settings.logging.level

    configure_logging(
        level=level,
        log_file=log_file or settings.get_log_file_path(),
        json_logs=settings.logging.json_format,
    )


@cli.command()
@jetty_options
@click.option(
    "--jetty-output/--no-jetty-output", default=None,
    help="Show Jetty's own output (default: discard it)",
)
@click.option(
    "--wait/--no-wait", default=False,
    help="Sleep for the startup wait before returning",
)
@pass_supervisor
def start(cli_context: CLIContext, supervisor: Supervisor, wait: bool):
    """Start Jetty in the background.

    Fails if a live Jetty is already recorded for this home or if something
    already listens on the port. A stale PID file is removed first.
    """
    if not cli_context.quiet:
        click.echo(f"🚀 Starting Jetty on port {supervisor.config.port}")

    pid = supervisor.start()

    if wait:
        supervisor.wait_for_startup()

    click.echo("✅ Jetty started")
    click.echo(f"   Process ID: {pid}")
    click.echo(f"   PID file: {supervisor.pid_path}")
    if not wait and not cli_context.quiet:
        click.echo(f"   Allow about {supervisor.config.startup_wait:g}s before connecting")


@cli.command()
@jetty_options
@pass_supervisor
def stop(cli_context: CLIContext, supervisor: Supervisor):
    """Stop the Jetty recorded for this home.

    Stopping a Jetty that is not running is not an error.
    """
    pid = supervisor.pid
    if pid is None:
        if not cli_context.quiet:
            click.echo("ℹ️  No running Jetty recorded")
        return

    if not cli_context.quiet:
        click.echo(f"🛑 Stopping Jetty (PID {pid})")

    if supervisor.stop():
        click.echo("✅ Jetty stopped")
    else:
        click.echo(f"⚠️  Could not confirm that process {pid} exited", err=True)


@cli.command()
@jetty_options
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format for status information",
)
@pass_supervisor
def status(cli_context: CLIContext, supervisor: Supervisor, output_format: str):
    """Show whether the Jetty for this home is running."""
    pid = supervisor.pid
    running = supervisor.is_running()
    port_open = supervisor.is_port_open(supervisor.config.port)

    if output_format == "json":
        click.echo(json.dumps({
            "home": str(supervisor.config.home),
            "running": running,
            "pid": pid,
            "port": supervisor.config.port,
            "port_open": port_open,
            "pid_path": str(supervisor.pid_path),
        }, indent=2))
        return

    state = "🟢 running" if running else "🔴 stopped"
    click.echo(f"Jetty:     {state}")
    click.echo(f"Home:      {supervisor.config.home}")
    click.echo(f"PID:       {pid if pid is not None else '-'}")
    click.echo(f"Port:      {supervisor.config.port} ({'open' if port_open else 'closed'})")
    click.echo(f"PID file:  {supervisor.pid_path}")
    if pid is not None and not running:
        click.echo("⚠️  PID file is stale; it will be removed on the next start")


@cli.command(context_settings={"ignore_unknown_options": True})
@jetty_options
@click.option(
    "--jetty-output/--no-jetty-output", default=None,
    help="Show Jetty's own output (default: discard it)",
)
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@pass_supervisor
def wrap(cli_context: CLIContext, supervisor: Supervisor, command):
    """Run COMMAND against a freshly started Jetty.

    Starts Jetty, waits for the startup wait, runs COMMAND, then stops Jetty
    even if COMMAND failed. Exits with COMMAND's own status if it failed,
    or 1 if Jetty could not be started.

    \b
    Example:
      jetty-wrapper wrap --jetty-home ./jetty --port 8983 -- pytest tests/
    """

    def run_command():
        subprocess.run(list(command), check=True)

    if not cli_context.quiet:
        click.echo(f"🚀 Starting Jetty on port {supervisor.config.port} for: {' '.join(command)}")

    error = supervisor.wrap(supervisor.config, run_command)

    if error is not None:
        click.echo(f"❌ Test failures: {error}", err=True)
        if isinstance(error, subprocess.CalledProcessError) and error.returncode > 0:
            sys.exit(error.returncode)
        sys.exit(1)

    if not cli_context.quiet:
        click.echo("✅ Command succeeded, Jetty stopped")


if __name__ == "__main__":
    cli()
