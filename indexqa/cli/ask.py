"""CLI command for asking questions about a collection."""

import logging
from typing import Annotated

import typer
from rich.panel import Panel
from rich.text import Text

from indexqa.cli.common import configure_logging, console, load_service
from indexqa.exceptions import InputValidationError, UpstreamError
from indexqa.models.citation import Citation
from indexqa.models.enums import AnswerSource

app = typer.Typer()

logger = logging.getLogger(__name__)

SOURCE_COLORS = {
    AnswerSource.ARCHIVE: "green",
    AnswerSource.WEB: "yellow",
}


def _format_sources(citations: list[Citation]) -> str:
    lines = []
    for c in citations:
        page = f", p. {c.page}" if c.page else ""
        lines.append(f"  [{c.source_index}] {c.document_title}{page}")
    return "\n".join(lines)


def _header(source: AnswerSource) -> Text:
    header = Text()
    header.append("indexqa", style="bold")
    header.append("  Source: ", style="dim")
    header.append(source.value, style=f"bold {SOURCE_COLORS[source]}")
    return header


@app.command()
def ask(
    question: Annotated[
        str,
        typer.Argument(help="Your question"),
    ],
    collection: Annotated[
        str,
        typer.Option("--collection", "-c", help="Collection to search"),
    ],
    documents: Annotated[
        list[str] | None,
        typer.Option("--doc", "-d", help="Restrict the search to these document ids"),
    ] = None,
    stream: Annotated[
        bool,
        typer.Option("--stream", "-s", help="Print the answer as it is generated"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging"),
    ] = False,
):
    """Ask a question about the documents in a collection."""
    configure_logging(verbose)
    service = load_service()

    try:
        if stream:
            source, answer_stream = service.stream_answer(collection, question, documents)
            console.print(_header(source))
            console.print()
            try:
                for fragment in answer_stream:
                    console.print(fragment, end="", markup=False, highlight=False)
            except KeyboardInterrupt:
                answer_stream.close()
                console.print("\n[dim]Interrupted.[/dim]")
                raise typer.Exit(130)
            console.print()
            citations = answer_stream.citations
            if citations:
                console.print(f"\nSources:\n{_format_sources(citations)}", markup=False)
            return

        with console.status("[bold green]Thinking..."):
            answer = service.answer_question(collection, question, documents)
    except InputValidationError as e:
        console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(1)
    except UpstreamError as e:
        logger.debug("Upstream failure detail: %s", e.detail)
        console.print(f"[bold red]Upstream service failed:[/bold red] {e}")
        raise typer.Exit(1)

    body = answer.answer
    if answer.citations:
        body = f"{body}\n\nSources:\n{_format_sources(answer.citations)}"

    console.print()
    console.print(
        Panel(
            Text(body),
            title=_header(answer.source),
            border_style=SOURCE_COLORS[answer.source],
            padding=(1, 2),
        )
    )
