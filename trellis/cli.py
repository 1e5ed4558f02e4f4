"""Trellis CLI - Main Entry Point.

Commands:
    serve   - Run an application with uvicorn
    routes  - Print the mounted route table
"""

import importlib
import os
import sys
from typing import Optional

import click

from . import __version__
from .app import Application
from .config import Config
from .di import DIError
from .faults import Fault


def load_app(app_path: str) -> Application:
    """
    Import ``module:attribute`` and return a booted Application.

    The attribute defaults to ``app``. The current directory is importable
    so ``trellis serve main:app`` works from a project root.
    """
    module_name, _, attr = app_path.partition(":")
    attr = attr or "app"

    cwd = os.getcwd()
    if cwd not in sys.path:
        sys.path.insert(0, cwd)

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"Cannot import module '{module_name}': {e}", param_hint="APP")

    app = getattr(module, attr, None)
    if not isinstance(app, Application):
        raise click.BadParameter(
            f"'{module_name}:{attr}' is not a trellis Application", param_hint="APP"
        )

    if app.router is None:
        app.build()
    return app


def _boot(app_path: str) -> Application:
    try:
        return load_app(app_path)
    except (Fault, DIError) as e:
        click.secho(f"✗ Boot failed: {e}", fg="red", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="trellis")
def cli():
    """Trellis - metadata-driven controllers on ASGI."""


@cli.command("serve")
@click.argument("app_path", metavar="APP")
@click.option("--host", type=str, default=None, help="Bind host (default: HOST or localhost)")
@click.option("--port", type=int, default=None, help="Bind port (default: PORT or 3000)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
@click.option("--env-file", type=click.Path(dir_okay=False), default=".env", help="Dotenv file to load")
def serve(app_path: str, host: Optional[str], port: Optional[int], reload: bool, env_file: str):
    """
    Serve APP (``module:attribute``) with uvicorn.

    Examples:
      trellis serve main:app
      trellis serve main:app --port=8080 --reload
    """
    import uvicorn

    try:
        config = Config.from_env(env_file)
    except Fault as e:
        click.secho(f"✗ Invalid configuration: {e}", fg="red", err=True)
        sys.exit(1)

    host = host or config.server.host
    port = port or config.server.port
    log_level = config.logger.level.lower()

    click.secho(f"Starting {app_path} on http://{host}:{port}", fg="green")

    if reload:
        # uvicorn re-imports the application in the worker process
        uvicorn.run(app_path, host=host, port=port, reload=True, log_level=log_level)
        return

    app = _boot(app_path)
    uvicorn.run(app, host=host, port=port, log_level=log_level)


@cli.command("routes")
@click.argument("app_path", metavar="APP")
def routes(app_path: str):
    """
    Print the routes of APP in match order.

    Examples:
      trellis routes main:app
    """
    app = _boot(app_path)
    table = app.routes()
    if not table:
        click.echo("No routes mounted")
        return

    width = max(len(r["path"]) for r in table)
    for r in table:
        click.echo(f"{r['method']:<7} {r['path']:<{width}}  {r['controller']}.{r['handler']}")


def main():
    cli()


if __name__ == "__main__":
    main()
