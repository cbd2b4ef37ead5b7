"""CLI command for removing a document's vectors."""

from typing import Annotated

import typer

from indexqa.cli.common import configure_logging, console, load_service

app = typer.Typer()


@app.command()
def delete(
    document_id: Annotated[
        str,
        typer.Argument(help="Id of the document whose vectors should be removed"),
    ],
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging"),
    ] = False,
):
    """Delete a document's vectors from the index."""
    configure_logging(verbose)
    service = load_service()
    store = service.document_store

    record = store.get_document(document_id)
    if record is None:
        console.print(f"[bold red]Document not found: {document_id}[/bold red]")
        raise typer.Exit(1)

    if not service.delete_document_vectors(document_id, record.chunk_count):
        console.print("[bold red]Vector deletion failed.[/bold red] See the log for details.")
        raise typer.Exit(1)

    store.update_document(document_id, chunk_count=0, token_count=0)
    console.print(
        f"[bold green]Deleted {record.chunk_count} vectors[/bold green] for {record.title}"
    )
