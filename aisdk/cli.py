"""aisdk CLI: Typer + Rich terminal interface.

Commands: generate, stream, schema, config.
"""

from __future__ import annotations

import asyncio
import importlib
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from aisdk import __version__
from aisdk.config import SDKConfig, load_config
from aisdk.context import AIContext
from aisdk.errors import AIError
from aisdk.schema.derive import derive
from aisdk.schemas.results import TextResult, Usage

console = Console()

app = typer.Typer(
    name="aisdk",
    help="Generate text and structured output across AI providers.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ───────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"aisdk {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log SDK activity."),
    config: str = typer.Option(
        "", "--config", "-c", help="User TOML laid over the packaged defaults."
    ),
) -> None:
    """aisdk: one interface for text, objects, streaming and tools."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )
    ctx.obj = {"config_path": Path(config) if config else None}


# ── Helpers ──────────────────────────────────────────────────────


def _load_config(ctx: typer.Context) -> SDKConfig:
    """Load SDK config, exit on error."""
    path = (ctx.obj or {}).get("config_path")
    try:
        return load_config(path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from None


def _build_context(config: SDKConfig) -> AIContext:
    return AIContext.from_config(config)


def _usage_line(usage: Usage) -> str:
    return (
        f"[dim]tokens: {usage.prompt_tokens} in / {usage.completion_tokens} out "
        f"({usage.total_tokens} total)[/dim]"
    )


# ── Commands ─────────────────────────────────────────────────────


@app.command()
def generate(
    ctx: typer.Context,
    prompt: str = typer.Argument(..., help="Prompt to send"),
    model: str = typer.Option("", "--model", "-m", help="provider/model"),
    system: str = typer.Option("", "--system", "-s", help="System prompt"),
    max_tokens: int = typer.Option(0, "--max-tokens", help="Output token cap (0 = provider default)"),
) -> None:
    """Generate a completion and print it."""
    context = _build_context(_load_config(ctx))
    try:
        result: TextResult = asyncio.run(
            context.generate_text(
                model=model or None,
                prompt=prompt,
                system=system or None,
                max_tokens=max_tokens or None,
            )
        )
    except AIError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    console.print(Panel(result.text or "[dim](empty)[/dim]", title="Response", border_style="cyan"))
    finish = result.finish_reason.value if result.finish_reason else "unknown"
    console.print(f"{_usage_line(result.usage)} [dim]finish: {finish}[/dim]")


@app.command()
def stream(
    ctx: typer.Context,
    prompt: str = typer.Argument(..., help="Prompt to send"),
    model: str = typer.Option("", "--model", "-m", help="provider/model"),
    system: str = typer.Option("", "--system", "-s", help="System prompt"),
) -> None:
    """Stream a completion to the terminal as it arrives."""
    context = _build_context(_load_config(ctx))

    async def _run() -> Usage | None:
        usage = None
        async for chunk in context.stream_text(
            model=model or None, prompt=prompt, system=system or None
        ):
            console.print(chunk.delta, end="", markup=False, highlight=False)
            if chunk.is_complete:
                usage = chunk.usage
        console.print()
        return usage

    try:
        usage = asyncio.run(_run())
    except AIError as e:
        console.print(f"\n[red]Error:[/red] {e}")
        raise typer.Exit(1) from None
    if usage is not None:
        console.print(_usage_line(usage))


@app.command()
def schema(
    target: str = typer.Argument(..., help="Class to derive from, as module:Class"),
) -> None:
    """Print the wire schema derived from a dataclass or pydantic model."""
    module_name, sep, class_name = target.partition(":")
    if not sep or not module_name or not class_name:
        console.print("[red]Error:[/red] expected module:Class")
        raise typer.Exit(2)
    try:
        cls = getattr(importlib.import_module(module_name), class_name)
    except (ImportError, AttributeError) as e:
        console.print(f"[red]Error:[/red] cannot load {target}: {e}")
        raise typer.Exit(1) from None
    try:
        derived = derive(cls)
    except AIError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None
    console.print_json(data=derived.to_wire_schema())


@app.command("config")
def config_show(ctx: typer.Context) -> None:
    """Show the resolved SDK configuration."""
    config = _load_config(ctx)

    table = Table(title="SDK Configuration", show_header=False, show_lines=True)
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    table.add_row("Default Model", config.default_model or "(none)")
    table.add_row("Timeout", f"{config.timeout:g}s")
    table.add_row("Max Tool Roundtrips", str(config.max_tool_roundtrips))
    table.add_row("Max Messages", str(config.max_messages))
    console.print(table)

    if config.providers:
        providers = Table(title="Providers")
        providers.add_column("Provider", style="cyan")
        providers.add_column("Key Env")
        providers.add_column("API Base")
        providers.add_column("Status")
        for name, settings in sorted(config.providers.items()):
            status = "[green]key set[/green]" if settings.api_key else "[red]no key[/red]"
            providers.add_row(name, settings.api_key_env or "-", settings.api_base or "-", status)
        console.print()
        console.print(providers)
