"""CLI commands for document ingestion."""

import uuid
from pathlib import Path
from typing import Annotated

import typer
from rich.progress import Progress, SpinnerColumn, TextColumn

from indexqa.cli.common import configure_logging, console, load_service
from indexqa.exceptions import InputValidationError
from indexqa.models.document import DocumentInfo, ProcessDocumentResult
from indexqa.models.enums import SourceType

app = typer.Typer()


def _print_result(result: ProcessDocumentResult, document_id: str) -> None:
    console.print()
    if not result.success:
        console.print(f"[bold red]Ingestion failed:[/bold red] {result.error}")
        raise typer.Exit(1)

    console.print("[bold green]Ingestion complete![/bold green]")
    console.print(f"  Document: {document_id}")
    console.print(f"  Chunks stored: {result.chunk_count}")
    console.print(f"  Tokens (approx.): {result.token_count}")
    if result.summary:
        console.print(f"  Summary: {result.summary}")
    if result.topics:
        console.print(f"  Topics: {', '.join(result.topics)}")


@app.command()
def ingest(
    collection: Annotated[
        str,
        typer.Option("--collection", "-c", help="Collection to add the document to"),
    ],
    file: Annotated[
        Path | None,
        typer.Option("--file", "-f", help="Markdown/text or PDF file to ingest", exists=True, dir_okay=False),
    ] = None,
    url: Annotated[
        str | None,
        typer.Option("--url", "-u", help="Web page to fetch and ingest"),
    ] = None,
    title: Annotated[
        str | None,
        typer.Option("--title", "-t", help="Document title (defaults to the file name or URL)"),
    ] = None,
    document_id: Annotated[
        str | None,
        typer.Option("--id", help="Document id (generated when omitted)"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging"),
    ] = False,
):
    """Chunk, embed and index one document into a collection."""
    configure_logging(verbose)

    if (file is None) == (url is None):
        console.print("[bold red]Pass exactly one of --file or --url.[/bold red]")
        raise typer.Exit(1)

    service = load_service()
    store = service.document_store
    target = store.get_collection(collection)
    if target is None:
        target = service.create_collection(collection, title=collection)
        console.print(f"Created collection [bold]{collection}[/bold]")

    doc_id = document_id or f"doc-{uuid.uuid4().hex[:12]}"
    if url:
        doc = DocumentInfo(
            id=doc_id,
            collection_id=target.id,
            namespace=target.namespace,
            title=title or url,
            source_type=SourceType.URL,
            source_url=url,
        )
    elif file.suffix.lower() == ".pdf":
        doc = DocumentInfo(
            id=doc_id,
            collection_id=target.id,
            namespace=target.namespace,
            title=title or file.stem,
            source_type=SourceType.PDF,
            file_bytes=file.read_bytes(),
        )
    else:
        doc = DocumentInfo(
            id=doc_id,
            collection_id=target.id,
            namespace=target.namespace,
            title=title or file.stem,
            source_type=SourceType.MARKDOWN,
            content=file.read_text(encoding="utf-8"),
        )

    console.print("[bold]indexqa Ingestion[/bold]")
    console.print(f"Collection: {target.id} (namespace {target.namespace})")
    console.print(f"Source: {url or file}")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Processing document...", total=None)
        result = service.ingest_document(doc)
        progress.update(task, completed=True)

    _print_result(result, doc_id)


@app.command()
def reprocess(
    document_id: Annotated[
        str,
        typer.Argument(help="Id of the stored document to ingest again"),
    ],
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging"),
    ] = False,
):
    """Delete a document's vectors and ingest it again."""
    configure_logging(verbose)
    service = load_service()

    with console.status("[bold green]Reprocessing..."):
        try:
            result = service.reprocess_document(document_id)
        except InputValidationError as e:
            console.print(f"[bold red]{e}[/bold red]")
            raise typer.Exit(1)

    _print_result(result, document_id)
