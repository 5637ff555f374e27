"""CLI interface for cmsrag.

Typer-based command-line interface with Rich output formatting.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from cmsrag import __version__
from cmsrag.chunk import SectionChunker
from cmsrag.config import default_config, load_config
from cmsrag.exceptions import CmsragError
from cmsrag.ingest import get_parser, make_doc_id
from cmsrag.manifest import compute_hash, load_manifest, make_entry, save_manifest
from cmsrag.pipeline import Pipeline
from cmsrag.project import ProjectManager
from cmsrag.registry import default_registry
from cmsrag.retrieve import CATEGORY_QUERIES, Retriever
from cmsrag.store import ChromaStore
from cmsrag.tokens import count_tokens

__all__ = ["app"]

app = typer.Typer(
    name="cmsrag",
    help="Chunk, index and search Medicare policy manuals for compliance checks.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 60


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _require_project() -> ProjectManager:
    pm = ProjectManager()
    if not pm.is_initialized:
        console.print(
            "[yellow]No cmsrag project found.[/yellow] Run [bold]cmsrag init[/bold] first."
        )
        raise typer.Exit(code=1)
    return pm


def _open_store(pm: ProjectManager, collection_name: str) -> ChromaStore:
    return ChromaStore(persist_path=pm.index_path, collection_name=collection_name)


@app.command()
def version() -> None:
    """Show cmsrag version."""
    console.print(f"cmsrag {__version__}")


@app.command()
def init(
    name: Annotated[
        str,
        typer.Option("--name", "-n", help="Project name"),
    ] = "",
    provider: Annotated[
        str,
        typer.Option("--provider", "-p", help="Embedding provider (openai, ollama, chromadb)"),
    ] = "",
) -> None:
    """Initialize a new cmsrag project in the current directory."""
    if provider and not default_registry.has_provider("embedding", provider):
        available = ", ".join(default_registry.list_providers("embedding"))
        console.print(f"[red]Unknown embedding provider:[/red] {provider} (available: {available})")
        raise typer.Exit(code=1)

    pm = ProjectManager()
    try:
        rag_dir = pm.init(name=name, provider=provider)
    except CmsragError as e:
        console.print(f"[red]Failed to initialize project:[/red] {e}")
        raise typer.Exit(code=1) from e

    console.print(f"[green]Initialized cmsrag project[/green] at {rag_dir}")

    console.print("\nCreated:")
    console.print(f"  {pm.config_path}")
    console.print(f"  {pm.manifest_path}")

    console.print("\nNext steps:")
    console.print("  cmsrag add <manual.pdf>   Index a policy manual")
    console.print("  cmsrag search <query>     Search the indexed manual")


@app.command()
def status() -> None:
    """Show project status: indexed documents, pages, chunks, config."""
    pm = ProjectManager()
    try:
        st = pm.status()
    except CmsragError as e:
        console.print(f"[red]Failed to read project:[/red] {e}")
        raise typer.Exit(code=1) from e

    if not st.initialized:
        console.print(
            "[yellow]No cmsrag project found.[/yellow] Run [bold]cmsrag init[/bold] first."
        )
        raise typer.Exit(code=1)

    console.print(f"[bold]cmsrag project:[/bold] {st.config.project.name if st.config else ''}")

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("metric", style="dim")
    table.add_column("value", style="bold")
    table.add_row("Documents", str(st.document_count))
    table.add_row("Pages", str(st.page_count))
    table.add_row("Chunks", str(st.chunk_count))
    if st.config:
        table.add_row("Embedding", f"{st.config.embedding.provider}/{st.config.embedding.model}")
        table.add_row("Collection", st.config.store.collection_name)
    console.print(table)

    if st.document_count == 0:
        console.print(
            "\n[dim]No documents indexed yet. Run [bold]cmsrag add <file>[/bold] to start.[/dim]"
        )


@app.command()
def add(
    paths: Annotated[
        list[str] | None,
        typer.Argument(help="File path(s) to add"),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Re-index even if the file is unchanged"),
    ] = False,
) -> None:
    """Add document(s) to the index."""
    pm = _require_project()

    if not paths:
        console.print(
            "[yellow]No file paths provided.[/yellow] Usage: cmsrag add <file> [file ...]"
        )
        raise typer.Exit(code=1)

    try:
        config = load_config(pm.config_path)
        manifest = load_manifest(pm.manifest_path)
        chunker = SectionChunker()
        embedder = default_registry.create("embedding", config.embedding.provider, config)
        store = _open_store(pm, config.store.collection_name)
    except CmsragError as e:
        console.print(f"[red]Failed to initialize pipeline:[/red] {e}")
        raise typer.Exit(code=1) from e

    added_count = 0
    skipped_count = 0
    failed_count = 0
    total_chunks = 0

    for path_str in paths:
        file_path = Path(path_str).resolve()

        if not file_path.exists():
            console.print(f"  [red]File not found:[/red] {path_str}")
            failed_count += 1
            continue

        try:
            parser = get_parser(file_path)
            doc_id = make_doc_id(file_path)
            file_hash = compute_hash(file_path)
        except CmsragError as e:
            console.print(f"  [yellow]Skipped {file_path.name}:[/yellow] {e}")
            failed_count += 1
            continue

        if not force and not manifest.is_changed(doc_id, file_hash):
            console.print(f"  [dim]Skipped {file_path.name} (unchanged)[/dim]")
            skipped_count += 1
            continue

        console.print(f"Processing [bold]{file_path.name}[/bold] ...")

        # Stale chunks from a previous version of this document
        if manifest.get_document(doc_id) is not None:
            try:
                store.delete(doc_id)
            except CmsragError as e:
                logger.warning("Failed to remove old chunks for %s: %s", doc_id, e)

        pipeline = Pipeline(
            parser=parser,
            chunker=chunker,
            embedder=embedder,
            store=store,
            config=config,
        )
        try:
            stats = pipeline.process(path=file_path, doc_id=doc_id)
        except CmsragError as e:
            console.print(f"  [red]Error processing {file_path.name}:[/red] {e}")
            logger.error("Failed to process %s: %s", file_path, e)
            failed_count += 1
            continue

        entry = make_entry(
            file_path,
            doc_type=file_path.suffix.lstrip(".").lower() or "unknown",
            chunks=stats.chunks,
            pages=stats.pages,
            file_hash=file_hash,
        )
        manifest.add_document(entry)
        save_manifest(manifest, pm.manifest_path)

        console.print(
            f"  [green]Added {file_path.name}[/green] ({stats.pages} pages, {stats.chunks} chunks)"
        )
        added_count += 1
        total_chunks += stats.chunks

    if added_count > 0:
        console.print(
            f"\n[green]Added {added_count} document(s)[/green] ({total_chunks} chunks total)"
        )
    elif skipped_count > 0:
        console.print("\n[dim]No new documents to add.[/dim]")

    if failed_count > 0 and added_count == 0 and skipped_count == 0:
        raise typer.Exit(code=1)


@app.command()
def remove(
    doc_id: Annotated[str, typer.Argument(help="Document ID or path to remove")],
) -> None:
    """Remove a document from the index."""
    pm = _require_project()

    try:
        config = load_config(pm.config_path)
        manifest = load_manifest(pm.manifest_path)
    except CmsragError as e:
        console.print(f"[red]Failed to read project:[/red] {e}")
        raise typer.Exit(code=1) from e

    # Accept a file path as well as a document ID
    if manifest.get_document(doc_id) is None:
        doc_id = make_doc_id(Path(doc_id))

    if manifest.get_document(doc_id) is None:
        console.print(f"[yellow]Document not found:[/yellow] {doc_id}")
        raise typer.Exit(code=1)

    try:
        count = _open_store(pm, config.store.collection_name).delete(doc_id)
    except CmsragError as e:
        console.print(f"[red]Failed to remove {doc_id}:[/red] {e}")
        raise typer.Exit(code=1) from e

    manifest.remove_document(doc_id)
    save_manifest(manifest, pm.manifest_path)

    console.print(f"[green]Removed {doc_id}[/green] ({count} chunks)")


@app.command()
def chunks(
    path: Annotated[str, typer.Argument(help="Document to chunk")],
    limit: Annotated[
        int,
        typer.Option("--limit", "-l", help="Maximum rows to show (0 for all)"),
    ] = 20,
) -> None:
    """Preview how a document is chunked, without embedding or storing it."""
    pm = ProjectManager()
    file_path = Path(path).resolve()
    if not file_path.exists():
        console.print(f"[red]File not found:[/red] {path}")
        raise typer.Exit(code=1)

    try:
        config = load_config(pm.config_path) if pm.is_initialized else default_config()
        document = get_parser(file_path).parse(file_path, config)
        result = SectionChunker().chunk(document.pages, config)
    except CmsragError as e:
        console.print(f"[red]Failed to chunk {path}:[/red] {e}")
        raise typer.Exit(code=1) from e

    table = Table(title=f"{file_path.name}: {len(document.pages)} pages, {len(result)} chunks")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Page", justify="right")
    table.add_column("Section")
    table.add_column("Subsection")
    table.add_column("Chars", justify="right")
    table.add_column("Tokens", justify="right")

    shown = result if limit <= 0 else result[:limit]
    for chunk in shown:
        table.add_row(
            chunk.chunk_id,
            str(chunk.page_number),
            chunk.section or "-",
            chunk.subsection or "-",
            str(len(chunk.text)),
            str(count_tokens(chunk.text)),
        )
    console.print(table)

    if len(shown) < len(result):
        console.print(f"[dim]... {len(result) - len(shown)} more chunks not shown[/dim]")


@app.command()
def search(
    query: Annotated[
        str | None,
        typer.Argument(help="Search query"),
    ] = None,
    top_k: Annotated[
        int | None,
        typer.Option("--top-k", "-k", help="Number of results"),
    ] = None,
    threshold: Annotated[
        float | None,
        typer.Option("--threshold", "-t", help="Minimum similarity score"),
    ] = None,
    category: Annotated[
        str | None,
        typer.Option(
            "--category",
            "-c",
            help=f"Canned compliance query ({', '.join(CATEGORY_QUERIES)})",
        ),
    ] = None,
) -> None:
    """Search the indexed manual."""
    if (query is None) == (category is None):
        console.print("[yellow]Provide either a query or --category.[/yellow]")
        raise typer.Exit(code=1)

    pm = _require_project()

    try:
        config = load_config(pm.config_path)
        embedder = default_registry.create("embedding", config.embedding.provider, config)
        retriever = Retriever(embedder, _open_store(pm, config.store.collection_name), config)
        if category is not None:
            results = retriever.retrieve_for_category(
                category, top_k=top_k, score_threshold=threshold
            )
        else:
            results = retriever.retrieve(query or "", top_k=top_k, score_threshold=threshold)
    except CmsragError as e:
        console.print(f"[red]Search failed:[/red] {e}")
        raise typer.Exit(code=1) from e

    if not results:
        console.print("[dim]No results above the score threshold.[/dim]")
        return

    table = Table(title=f"{len(results)} result(s)")
    table.add_column("#", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Page", justify="right")
    table.add_column("Section")
    table.add_column("Text")

    for rank, result in enumerate(results, start=1):
        preview = " ".join(result.text.split())
        if len(preview) > _PREVIEW_CHARS:
            preview = preview[:_PREVIEW_CHARS] + "..."
        table.add_row(
            str(rank),
            f"{result.score:.3f}",
            str(result.page_number),
            result.subsection or result.section or "-",
            preview,
        )
    console.print(table)
