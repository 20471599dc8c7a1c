"""CLI entry point for the screenshot review server."""

from __future__ import annotations

import logging
import sys
import threading
import webbrowser
from pathlib import Path
from typing import Optional, Tuple

import click
import uvicorn
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from shotreview.config import DEFAULT_HOSTNAME, DEFAULT_OPTIPNG, DEFAULT_PORT, ReviewSettings
from shotreview.errors import ShotReviewError
from shotreview.services.review_app import ReviewApp, set_review_app

console = Console(stderr=True)
LOGGER = logging.getLogger("shotreview.cli")


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def build_app(settings: ReviewSettings) -> ReviewApp:
    review_app = ReviewApp(settings)
    review_app.initialize()
    return review_app


@click.command()
@click.argument("test_files", nargs=-1, type=click.Path())
@click.option("--config", "-c", "config_file", type=click.Path(dir_okay=False), help="Test engine config file")
@click.option("--engine", envvar="SHOTREVIEW_ENGINE", required=True, help="Engine class as module:ClassName")
@click.option("--browser", "-b", "browsers", multiple=True, help="Restrict the run to a browser id (repeatable)")
@click.option("--grep", "-g", default=None, help="Only load tests whose name matches this pattern")
@click.option("--hostname", default=DEFAULT_HOSTNAME, show_default=True, help="Interface to bind")
@click.option("--port", "-p", default=DEFAULT_PORT, show_default=True, type=int, help="Port to listen on")
@click.option("--auto-run", "-a", is_flag=True, help="Start a run as soon as the server is up")
@click.option("--open", "-o", "open_browser", is_flag=True, help="Open the viewer in a web browser")
@click.option("--optipng", "optipng_bin", envvar="SHOTREVIEW_OPTIPNG", default=DEFAULT_OPTIPNG, show_default=True, help="PNG optimizer executable")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(
    test_files: Tuple[str, ...],
    config_file: Optional[str],
    engine: str,
    browsers: Tuple[str, ...],
    grep: Optional[str],
    hostname: str,
    port: int,
    auto_run: bool,
    open_browser: bool,
    optipng_bin: str,
    verbose: bool,
) -> None:
    """Review screenshot test failures and accept new reference images."""
    setup_logging(verbose)
    try:
        settings = ReviewSettings(
            config_file=Path(config_file) if config_file else None,
            engine=engine,
            test_files=list(test_files),
            grep=grep,
            browsers=list(browsers),
            optipng_bin=optipng_bin,
            hostname=hostname,
            port=port,
            auto_run=auto_run,
            open_browser=open_browser,
        )
    except ValidationError as exc:
        raise click.BadParameter(str(exc)) from exc

    try:
        review_app = build_app(settings)
    except ShotReviewError as exc:
        console.print(str(exc), style="red", markup=False)
        sys.exit(1)
    except Exception:
        LOGGER.exception("Failed to initialize the review server")
        sys.exit(1)

    set_review_app(review_app)
    try:
        serve(review_app)
    finally:
        review_app.close()
        set_review_app(None)


def serve(review_app: ReviewApp) -> None:
    settings = review_app.settings
    if settings.auto_run:
        review_app.run_in_background()
    if settings.open_browser:
        threading.Timer(1.0, webbrowser.open, args=(settings.base_url,)).start()
    console.print(f"[bold green]Review server:[/bold green] {settings.base_url}")
    uvicorn.run("shotreview.main:app", host=settings.hostname, port=settings.port, log_level="info")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
