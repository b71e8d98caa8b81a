"""Typer application and CLI entry point for peento.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs a SIGINT handler, invokes the Typer app, and
maps :class:`~peento.exceptions.PeentoError` to its exit code so that a
plugin failing at startup stops the process before anything is served.

Commands:

* ``peento serve`` -- load the configured plugins, start, and listen.
* ``peento plugins`` -- attach and initialise the configured plugins, then
  list them without serving.
"""

from __future__ import annotations

import logging
import signal
import sys
from typing import Any, List, Optional

import typer
from rich.logging import RichHandler

from peento import __version__
from peento.exceptions import PeentoError
from peento.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="peento",
    help="Run a peento application composed from plugins.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"peento {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    from peento.output import get_output

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=get_output().console, show_path=False)],
        force=True,
    )


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Config file (YAML or JSON)."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~peento.output.OutputManager`, configures
    logging, and stores shared options in ``ctx.obj``.
    """
    from peento.output import OutputManager, set_output

    set_output(OutputManager(no_color=no_color, quiet=quiet, verbose=verbose))
    _configure_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose


def _build_application(
    ctx: typer.Context,
    plugins: Optional[List[str]],
    port: Optional[int] = None,
    debug: Optional[bool] = None,
) -> Any:
    from peento.application import Application
    from peento.config import resolve_config

    config = resolve_config(
        cli_config=ctx.obj.get("config"),
        cli_port=port,
        cli_debug=debug,
        cli_plugins=plugins,
    )
    application = Application(config)
    for spec in config.plugins:
        application.use(spec)
    return application


@app.command()
def serve(
    ctx: typer.Context,
    plugin: Optional[List[str]] = typer.Option(
        None, "--plugin", "-P", help="Plugin to load (path, package, or entry point). Repeatable."
    ),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to listen on."),
    debug: Optional[bool] = typer.Option(
        None, "--debug/--no-debug", help="Development mode (no template caching, live view lookup)."
    ),
) -> None:
    """Start the application and serve HTTP requests."""
    from peento import output

    try:
        application = _build_application(ctx, plugin, port, debug)
        application.start()
    except PeentoError as exc:
        output.error(str(exc))
        raise typer.Exit(exc.exit_code)
    output.info(f"peento listening on http://{application.config.host}:{application.config.port}")
    application.listen()


@app.command("plugins")
def list_plugins(
    ctx: typer.Context,
    plugin: Optional[List[str]] = typer.Option(
        None, "--plugin", "-P", help="Additional plugin to load. Repeatable."
    ),
) -> None:
    """Load the configured plugins and list them."""
    from peento import output

    try:
        application = _build_application(ctx, plugin)
        application.start()
    except PeentoError as exc:
        output.error(str(exc))
        raise typer.Exit(exc.exit_code)
    rows = [[p["name"], p["state"], p["directory"]] for p in application.plugins.list_plugins()]
    output.print_table(["Name", "State", "Directory"], rows, title="Plugins")
    calls = application.registries.calls.names()
    if calls:
        output.info("Calls: " + ", ".join(sorted(calls)))


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nStopped.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``peento`` console script.

    Unhandled :class:`~peento.exceptions.PeentoError` instances cause a
    clean exit with the error's ``exit_code``; anything else is reported as
    an unexpected error with a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nStopped.\n")
        sys.exit(130)
    except Exception as exc:
        from peento.output import error

        if isinstance(exc, PeentoError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
