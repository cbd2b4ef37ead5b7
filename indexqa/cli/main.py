"""indexqa CLI entry point."""

import typer

from indexqa.cli.ask import ask
from indexqa.cli.delete import delete
from indexqa.cli.ingest import ingest, reprocess

app = typer.Typer(
    name="indexqa",
    help="Ask cited questions over your own document collections, with web search as a fallback.",
)

app.command(name="ingest")(ingest)
app.command(name="ask")(ask)
app.command(name="delete")(delete)
app.command(name="reprocess")(reprocess)


if __name__ == "__main__":
    app()
