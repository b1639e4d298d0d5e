# genroute/cli.py
"""
CLI entry point for genroute.

Available commands:
  genroute status   [--config genroute.yaml] [--watch] [--interval N]
  genroute reset    [--config genroute.yaml]
  genroute generate PROMPT [--tier ID] [--feature NAME] [--skip-cache] [--json]

Exhaustion state is only visible across invocations when a persistent
store is configured (state_dir or redis_url).

Requires: pip install "genroute[cli]"
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Optional

import httpx

try:
    import typer
    from rich.console import Console
    from rich.live import Live
    from rich.logging import RichHandler
    from rich.markup import escape
    from rich.table import Table
except ImportError as exc:  # pragma: no cover
    raise ImportError(
        "CLI dependencies missing. Install with: pip install 'genroute[cli]'"
    ) from exc

from .client import GenerationClient
from .engine.extractor import extract_json
from .exceptions import AllBackendsExhausted, GenRouteError

app = typer.Typer(
    name="genroute",
    help="Rate-limit-aware, cascading text generation across upstream tiers.",
    add_completion=False,
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show routing decisions"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _build_table(status: dict) -> Table:
    """Render tier status as a Rich table."""
    table = Table(title="genroute — Tier Status", show_lines=True)
    table.add_column("Tier", style="bold cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Prio", justify="right")
    table.add_column("RPM", justify="right")
    table.add_column("Interval", justify="right")
    table.add_column("State")
    table.add_column("Queue", justify="right")
    table.add_column("Requests", justify="right")
    table.add_column("Latency", justify="right")
    table.add_column("Cost", justify="right")

    for tier_id, info in status.items():
        if info["exhausted"]:
            state = "[red]EXHAUSTED ✗[/red]"
        elif info["ready"]:
            state = "[green]READY ✓[/green]"
        else:
            state = "[yellow]BUSY[/yellow]"
        latency = info["avg_latency_ms"]
        table.add_row(
            tier_id,
            info["name"],
            str(info["priority"]),
            str(info["rpm_limit"]),
            f"{info['min_interval_ms']}ms",
            state,
            str(info["pending"]),
            f"{info['requests']} ({info['failures']} failed)",
            f"{latency}ms" if latency is not None else "—",
            f"${info['cost_usd']:.6f}",
        )
    return table


def _load_client(config_path: Optional[str]) -> GenerationClient:
    if config_path:
        return GenerationClient.from_yaml(config_path)
    return GenerationClient.from_env()


async def _fetch_status(config_path: Optional[str]) -> dict:
    async with _load_client(config_path) as client:
        return await client.status()


async def _reset(config_path: Optional[str]) -> None:
    async with _load_client(config_path) as client:
        await client.reset_exhaustion()


async def _generate(
    config_path: Optional[str],
    prompt: str,
    tier: Optional[str],
    feature: str,
    skip_cache: bool,
) -> str:
    async with _load_client(config_path) as client:
        return await client.request(prompt, tier, skip_cache=skip_cache, feature=feature)


@app.command()
def status(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to genroute.yaml"),
    watch: bool = typer.Option(False, "--watch", "-w", help="Keep refreshing until Ctrl-C"),
    interval: int = typer.Option(3, "--interval", "-i", help="Seconds between refreshes"),
) -> None:
    """Show tier priority, spacing, exhaustion state, queue depth and usage."""
    if not watch:
        console.print(_build_table(asyncio.run(_fetch_status(config))))
        return

    # A fresh client per refresh re-reads state persisted by other processes.
    with Live(console=console, refresh_per_second=1) as live:
        try:
            while True:
                live.update(_build_table(asyncio.run(_fetch_status(config))))
                time.sleep(interval)
        except KeyboardInterrupt:
            pass


@app.command()
def reset(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to genroute.yaml"),
) -> None:
    """Clear the persisted exhaustion registry so every tier is eligible again."""
    asyncio.run(_reset(config))
    console.print("[green]Exhaustion state cleared.[/green]")


@app.command()
def generate(
    prompt: str = typer.Argument(..., help="Prompt text"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to genroute.yaml"),
    tier: Optional[str] = typer.Option(None, "--tier", "-t", help="Preferred tier id"),
    feature: str = typer.Option("cli", "--feature", "-f", help="Feature label for usage records"),
    skip_cache: bool = typer.Option(False, "--skip-cache", help="Force a fresh upstream call"),
    as_json: bool = typer.Option(False, "--json", help="Extract and pretty-print JSON from the reply"),
) -> None:
    """Send PROMPT through the router and print the reply."""
    try:
        text = asyncio.run(_generate(config, prompt, tier, feature, skip_cache))
    except AllBackendsExhausted:
        console.print("[yellow]Service temporarily saturated. Retry later.[/yellow]")
        raise typer.Exit(2)
    except GenRouteError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)
    except httpx.HTTPError as exc:
        detail = escape(f"{type(exc).__name__}: {exc}")
        console.print(f"[red]Connection error:[/red] {detail}")
        raise typer.Exit(1)

    if as_json:
        value = extract_json(text)
        if value is None:
            console.print("[red]No JSON found in reply.[/red]")
            console.print(text, markup=False)
            raise typer.Exit(1)
        console.print_json(json.dumps(value))
    else:
        console.print(text, markup=False)


if __name__ == "__main__":  # pragma: no cover
    app()
