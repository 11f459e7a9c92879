import json
from pathlib import Path
import typer
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from pageflow.models.graph import LaidOutGraph
from pageflow.services.graph_service import GraphService

cli_app = typer.Typer()
console = Console()

def _read_source(path: Path):
    """Loads a graph source (test case list or node/edge record) from a JSON file."""
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        console.print(f"[bold red]Error:[/bold red] File not found: {path}")
        raise typer.Exit(code=1)
    except OSError as exc:
        console.print(f"[bold red]Error:[/bold red] Cannot read file: {path} ({exc.strerror or exc})")
        raise typer.Exit(code=1)
    except UnicodeDecodeError:
        console.print(f"[bold red]Error:[/bold red] Not UTF-8 text: {path}")
        raise typer.Exit(code=1)
    except json.JSONDecodeError as exc:
        console.print(f"[bold red]Error:[/bold red] Invalid JSON in {path}: {exc}")
        raise typer.Exit(code=1)

def _print_layout(laid_out: LaidOutGraph, as_json: bool) -> None:
    if as_json:
        console.print(Syntax(laid_out.model_dump_json(by_alias=True, indent=2), "json", theme="solarized-dark"))
        return

    layout = laid_out.layout
    table = Table(title=f"{len(laid_out.graph.nodes)} nodes, {len(laid_out.graph.edges)} edges")
    table.add_column("Node")
    table.add_column("Rank", justify="right")
    table.add_column("Order", justify="right")
    table.add_column("x", justify="right")
    table.add_column("y", justify="right")
    for node in laid_out.graph.nodes:
        position = layout.positions[node.id]
        name = f"[bold green]{escape(node.label)}[/bold green]" if node.is_start else escape(node.label)
        table.add_row(
            name,
            str(layout.ranks[node.id]),
            str(layout.orders[node.id]),
            f"{position.x:g}",
            f"{position.y:g}",
        )
    console.print(table)

    back_edges = [route.id for route in layout.routes if route.reversed]
    if back_edges:
        console.print(f"[yellow]Back-references:[/yellow] {', '.join(back_edges)}")

@cli_app.command()
def layout(
    file: Path = typer.Argument(..., help="JSON file holding test cases or a {nodes, edges} record."),
    as_json: bool = typer.Option(False, "--json", help="Print the full graph and layout as JSON."),
):
    """
    Builds the graph for a source file and prints the computed layout.
    """
    _print_layout(GraphService().load(_read_source(file)), as_json)

@cli_app.command()
def highlight(
    file: Path = typer.Argument(..., help="JSON file holding test cases or a {nodes, edges} record."),
    path: str = typer.Option(..., "--path", "-p", help="Comma-separated node ids, in traversal order."),
):
    """
    Prints the nodes and edges a traversal highlights.
    """
    node_path = [node_id.strip() for node_id in path.split(",") if node_id.strip()]
    highlight_set, _ = GraphService().highlight(_read_source(file), node_path)

    if highlight_set.is_empty:
        console.print("[yellow]Nothing to highlight for this path.[/yellow]")
        return
    console.print("[bold green]Nodes:[/bold green] " + ", ".join(sorted(highlight_set.node_ids)))
    console.print("[bold green]Edges:[/bold green] " + ", ".join(sorted(highlight_set.edge_ids)))

@cli_app.command()
def sample(
    as_json: bool = typer.Option(False, "--json", help="Print the full graph and layout as JSON."),
):
    """
    Lays out the bundled demo test cases.
    """
    _print_layout(GraphService().sample(), as_json)


if __name__ == "__main__":
    cli_app()
