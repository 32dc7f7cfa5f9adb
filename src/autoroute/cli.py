"""Command-line front end for the autoroute proxy."""

import asyncio
import logging
from dataclasses import replace
from pathlib import Path

import httpx
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from autoroute import __version__
from autoroute.config import ProxyConfig, get_config_path, load_config
from autoroute.errors import AutorouteError

app = typer.Typer(
    name="autoroute",
    help="Cost-tiered model routing proxy for OpenAI-compatible clients",
    no_args_is_help=True,
)

console = Console()

TIER_COLORS = {
    "SIMPLE": "green",
    "MEDIUM": "yellow",
    "COMPLEX": "red",
    "REASONING": "magenta",
}


def _load(config_path: Path | None) -> ProxyConfig:
    try:
        return load_config(config_path)
    except AutorouteError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _tier_table(config: ProxyConfig) -> Table:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Tier", style="bold")
    table.add_column("Model")
    for tier, model in config.tier_models.to_dict().items():
        color = TIER_COLORS.get(tier, "white")
        table.add_row(f"[{color}]{tier}[/{color}]", model)
    return table


@app.command()
def start(
    config_path: Path = typer.Option(
        None, "--config", "-c", help="Config file (default: ~/.autoroute/config.yaml)"),
    port: int = typer.Option(None, "--port", "-p", help="Override the listening port"),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level"),
) -> None:
    """Start the routing proxy in the foreground.

    Requests with model "auto" are classified and rewritten; everything
    else goes to the upstream untouched. Press Ctrl+C to stop.
    """
    from autoroute.proxy import start_proxy

    _setup_logging(log_level)
    config = _load(config_path)
    if port is not None:
        config = replace(config, port=port)

    def on_ready(bound_port: int) -> None:
        console.print(Panel(
            f"[bold cyan]autoroute proxy[/bold cyan]\n\n"
            f"URL: http://{config.host}:{bound_port}\n"
            f"Upstream: {config.upstream_url}\n\n"
            "[dim]Routing requests with model \"auto\". Press Ctrl+C to stop[/dim]",
            border_style="cyan",
        ))
        console.print(_tier_table(config))

    async def run() -> None:
        handle = await start_proxy(config, on_ready=on_ready)
        if handle.reused:
            console.print(
                f"[yellow]ℹ Using existing proxy instance at {handle.base_url}[/yellow]")
            return
        try:
            await handle.wait()
        finally:
            await handle.close()

    try:
        asyncio.run(run())
    except AutorouteError as e:
        console.print(f"[red]✗ Failed to start proxy: {e}[/red]")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        pass
    console.print("[dim]Proxy stopped.[/dim]")


@app.command()
def status(
    config_path: Path = typer.Option(
        None, "--config", "-c", help="Config file (default: ~/.autoroute/config.yaml)"),
) -> None:
    """Show configuration and whether the proxy is running."""
    config = _load(config_path)

    console.print()
    console.print(f"[bold]autoroute status[/bold]  [dim]({config_path or get_config_path()})[/dim]")
    console.print()
    console.print(f"[cyan]Upstream:[/cyan]    {config.upstream_url or '[red]not set[/red]'}")
    console.print(f"[cyan]Router port:[/cyan] {config.port}")
    console.print()
    console.print("[dim]Tier models:[/dim]")
    console.print(_tier_table(config))
    console.print()

    url = f"http://{config.host}:{config.port}/health"
    try:
        resp = httpx.get(url, timeout=2.0)
        data = resp.json()
        healthy = resp.status_code == 200 and isinstance(data, dict) and data.get("status") == "ok"
    except (httpx.HTTPError, ValueError):
        console.print("[yellow]⚠ Proxy is not running[/yellow]")
        console.print("[dim]Start with: autoroute start[/dim]")
        return

    if healthy:
        console.print("[green]✓ Proxy is running[/green]")
    else:
        console.print("[yellow]⚠ Proxy returned error[/yellow]")


@app.command("test")
def test_routing(
    message: str = typer.Argument(..., help="Message to classify"),
    config_path: Path = typer.Option(
        None, "--config", "-c", help="Config file (default: ~/.autoroute/config.yaml)"),
) -> None:
    """Show how a message would be routed, without sending it.

    Examples:
        autoroute test "What is 2+2?"
        autoroute test "Prove sqrt(2) is irrational step by step"
    """
    from autoroute.routing import DimensionScorer, WeightedClassifier
    from autoroute.usage import DEFAULT_BASELINE_MODEL, estimate_savings

    config = _load(config_path)
    decision = WeightedClassifier(config.tier_models).classify(message)
    savings = estimate_savings(decision.model)

    preview = message[:80] + ("..." if len(message) > 80 else "")
    color = TIER_COLORS.get(decision.tier.value, "white")

    console.print()
    console.print("[bold]Routing Decision[/bold]")
    console.print()
    console.print(f"[cyan]Input:[/cyan] \"{escape(preview)}\"")
    console.print()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Tier", f"[{color}]{decision.tier.value}[/{color}]")
    table.add_row("Model", decision.model)
    table.add_row("Confidence", f"{decision.confidence * 100:.1f}%")
    table.add_row("Method", decision.method.value)
    table.add_row("Savings", f"{savings * 100:.0f}% vs {DEFAULT_BASELINE_MODEL}")
    console.print(table)

    top = DimensionScorer.top_dimensions(decision.scores)
    if top:
        console.print()
        console.print("[dim]Dimension Scores:[/dim]")
        for dim, score in top:
            console.print(f"  {dim}: {score * 100:.0f}%")
    console.print()


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"autoroute version {__version__}")


if __name__ == "__main__":
    app()
