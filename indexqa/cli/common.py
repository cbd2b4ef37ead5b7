"""Helpers shared by the CLI commands."""

import logging

import typer
from rich.console import Console

from config.settings import get_settings
from indexqa.exceptions import ConfigurationError
from indexqa.service import QAService, build_service

console = Console()


def configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.INFO)
    else:
        logging.basicConfig(level=logging.WARNING)


def load_service() -> QAService:
    """Build the service from settings, exiting with a message on bad config."""
    try:
        return build_service(get_settings())
    except ConfigurationError as e:
        console.print(
            f"[bold red]{e}[/bold red]\n"
            "Set the API key for the configured provider, e.g. "
            "export ANTHROPIC_API_KEY='sk-ant-...'"
        )
        raise typer.Exit(1)
