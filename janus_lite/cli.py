"""Janus Lite CLI with Rich output.

Provides commands for:
- Inspecting nodes, tags and the available graph backends
- Creating nodes, versions, INCLUDES edges and tags
- Rendering a node's latest version into final prompt text
- Re-indexing the file-backed store

Usage:
    janus nodes                                  # List content nodes
    janus create greeting -d "Says hello"        # Create a node
    janus add-version greeting -c "Hello {{name}}"
    janus link greeting user-name -o insert -k name
    janus render greeting --set name=Alice       # Print resolved text
    janus reindex                                # Repair the file index
"""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from janus_lite.config import Config
from janus_lite.errors import JanusError, ValidationError
from janus_lite.log_config import get_logger
from janus_lite.models import ResolveOptions
from janus_lite.persistence import ContentStore
from janus_lite.service import ContentService

log = get_logger("cli")

app = typer.Typer(
    name="janus",
    help="Janus Lite - versioned, composable prompt content",
    rich_markup_mode="rich",
    no_args_is_help=True,
)
console = Console()


@contextmanager
def _open_service() -> Iterator[ContentService]:
    """Open the configured store for one command; domain errors exit with code 1."""
    from janus_lite.factory import create_store

    store: ContentStore | None = None
    try:
        config = Config()
        store = create_store(config)
        yield ContentService(store, resolve_timeout=config.resolve_timeout)
    except JanusError as e:
        log.debug(f"Command failed: {e!r}")
        console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
        raise typer.Exit(1)
    finally:
        if store is not None:
            store.close()


def _parse_assignments(values: list[str]) -> dict[str, str]:
    context = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise ValidationError(f"Expected KEY=VALUE, got {item!r}", field="set")
        context[key] = value
    return context


@app.command()
def reindex():
    """Reconcile the file index with the markdown files on disk."""
    from janus_lite.store import FilePersistence

    with _open_service() as service:
        if not isinstance(service.store, FilePersistence):
            console.print(f"[yellow]{service.store.store_name} store has no file index[/yellow]")
            return
        report = service.store.reconcile()
        if not report.changed:
            console.print("[dim]Index already up to date[/dim]")
            return
        console.print(
            f"[green]Index updated:[/green] {len(report.nodes_added)} nodes added, "
            f"{len(report.tags_created)} tags created, "
            f"+{report.memberships_added}/-{report.memberships_removed} memberships"
        )
        for name in report.nodes_added:
            console.print(f"  [cyan]+[/cyan] {name}")


@app.command()
def nodes():
    """List content nodes."""
    with _open_service() as service:
        items = service.store.list_nodes()
        table = Table(title=f"Content Nodes ({service.store.store_name})", box=box.ROUNDED)
        table.add_column("Name", style="cyan")
        table.add_column("ID", style="dim")
        table.add_column("Description")
        for node in items:
            table.add_row(node.name, node.id, node.description)
        console.print(table)


@app.command()
def tags():
    """List tags."""
    with _open_service() as service:
        items = service.store.list_tags()
        table = Table(title="Tags", box=box.ROUNDED)
        table.add_column("Name", style="cyan")
        table.add_column("ID", style="dim")
        table.add_column("Description")
        for tag in items:
            table.add_row(tag.name, tag.id, tag.description)
        console.print(table)


@app.command()
def show(name: str = typer.Argument(..., help="Node name")):
    """Show a node, its tags and its latest version."""
    with _open_service() as service:
        details = service.details(name)
        node = details.node
        console.print(f"[bold cyan]{node.name}[/bold cyan] [dim]{node.id}[/dim]")
        if node.description:
            console.print(node.description, markup=False)
        console.print(f"[bold]Tags:[/bold] {', '.join(details.tags) or '-'}")
        if details.latest is None:
            console.print("[yellow]No versions[/yellow]")
            return
        latest = details.latest
        console.print(
            Panel(
                Text(latest.content or ""),
                title=f"{latest.id} ({latest.created_at.isoformat()})",
                subtitle=latest.commit_message or None,
                border_style="cyan",
                box=box.ROUNDED,
            )
        )


@app.command()
def history(name: str = typer.Argument(..., help="Node name")):
    """List a node's versions, newest first."""
    with _open_service() as service:
        versions = service.history(name)
        table = Table(title=f"History of {name}", box=box.ROUNDED)
        table.add_column("ID", style="dim")
        table.add_column("Created")
        table.add_column("Message", style="cyan", no_wrap=True)
        for entry in versions:
            table.add_row(entry.id, entry.created_at.isoformat(), entry.commit_message)
        console.print(table)


@app.command()
def render(
    name: str = typer.Argument(..., help="Node name"),
    set_values: Optional[list[str]] = typer.Option(None, "--set", "-s", help="Insert value KEY=VALUE (repeatable)"),
    exclude: Optional[list[str]] = typer.Option(None, "--exclude", "-x", help="Version id to leave out (repeatable)"),
    tag: Optional[list[str]] = typer.Option(None, "--tag", "-t", help="Tag hint passed to resolution (repeatable)"),
):
    """Resolve the latest version of a node and print the text."""
    with _open_service() as service:
        context = _parse_assignments(set_values or [])
        options = ResolveOptions(exclude_version_ids=exclude or (), include_tags=tag or ())
        typer.echo(service.render(name, context, options))


@app.command()
def create(
    name: str = typer.Argument(..., help="Node name (slug)"),
    description: str = typer.Option("", "--description", "-d", help="Node description"),
):
    """Create a content node."""
    with _open_service() as service:
        node = service.create_node(name, description)
        console.print(f"[green]Created[/green] {node.name} [dim]{node.id}[/dim]")


@app.command("add-version")
def add_version(
    name: str = typer.Argument(..., help="Node name"),
    content: Optional[str] = typer.Option(None, "--content", "-c", help="Version text"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="Read version text from a file"),
    message: str = typer.Option("", "--message", "-m", help="Commit message"),
):
    """Append a version to a node."""
    if (content is None) == (file is None):
        console.print("[red]Error:[/red] pass exactly one of --content or --file")
        raise typer.Exit(1)
    if file is not None:
        try:
            content = file.read_text(encoding="utf-8")
        except OSError as e:
            console.print(f"[red]Error:[/red] cannot read {file}: {e}")
            raise typer.Exit(1)

    with _open_service() as service:
        version = service.add_version(name, content, message)
        console.print(f"[green]Added version[/green] {version.id} to {name}")


@app.command()
def link(
    parent: str = typer.Argument(..., help="Parent node name"),
    child: str = typer.Argument(..., help="Child node name"),
    operation: str = typer.Option(..., "--operation", "-o", help="insert or concatenate"),
    key: Optional[str] = typer.Option(None, "--key", "-k", help="Placeholder key for insert edges"),
):
    """Include the latest version of CHILD in the latest version of PARENT."""
    with _open_service() as service:
        edge = service.link(parent, child, operation, key)
        suffix = f" as {{{{{edge.key}}}}}" if edge.key else ""
        console.print(f"[green]Linked[/green] {parent} -> {child} ({edge.operation.value}){suffix}", highlight=False)


@app.command("tag")
def tag_node(
    node: str = typer.Argument(..., help="Node name"),
    tag: str = typer.Argument(..., help="Tag name (created if missing)"),
):
    """Attach a tag to a node."""
    with _open_service() as service:
        applied = service.tag(node, tag)
        console.print(f"[green]Tagged[/green] {node} with {applied.name}")


@app.command()
def backends():
    """Show graph backend availability."""
    from janus_lite.db.graph_factory import get_backend_info

    config = Config()
    info = get_backend_info(config.bolt_host, config.bolt_port, config.falkor_host, config.falkor_port)

    table = Table(title="Graph Backend Status", box=box.ROUNDED)
    table.add_column("Backend", style="cyan")
    table.add_column("Installed", justify="center")
    table.add_column("Available", justify="center")
    table.add_column("Error", style="dim")

    for backend in ["bolt", "falkordb", "kuzu"]:
        bi = info[backend]
        installed = "[green]Yes[/green]" if bi["installed"] else "[red]No[/red]"
        available = "[green]Yes[/green]" if bi["available"] else "[yellow]No[/yellow]"
        error = bi.get("error") or "-"
        table.add_row(backend.upper(), installed, available, error[:40])

    console.print(table)

    active = info.get("active")
    if active:
        console.print(f"\n[bold]Auto-detected backend:[/bold] [green]{active}[/green]")
    else:
        console.print("\n[bold red]No graph backend available![/bold red]")

    if info.get("env_override"):
        console.print(f"[dim]Override: JANUS_LITE_GRAPH_BACKEND={info['env_override']}[/dim]")


@app.command()
def version():
    """Show Janus Lite version."""
    from janus_lite import __version__

    console.print(f"Janus Lite [cyan]{__version__}[/cyan]")


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
