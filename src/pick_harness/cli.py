"""CLI for pick-harness: ask the model to pick objects, or run the bench."""

from __future__ import annotations

import asyncio
import logging

import click
from rich.console import Console
from rich.table import Table

from pick_harness.algorithms import ALGORITHMS, create_algorithm
from pick_harness.bench import DEFAULT_CASES, DEFAULT_ROOM, CaseResult, run_bench
from pick_harness.config import HarnessConfig, load_config
from pick_harness.events import WILDCARD, EventBus
from pick_harness.llm import AsyncOllamaClient, ChatEngine
from pick_harness.types import ChatEvent, EventType

console = Console()


class StreamingDisplay:
    """Renders chat events to the terminal as they happen."""

    def __init__(self, con: Console, show_chunks: bool = True):
        self.con = con
        self.show_chunks = show_chunks
        self._streaming = False

    def handle(self, event: ChatEvent):
        if event.type is EventType.CHAT_CHUNK:
            if not self.show_chunks:
                return
            if not self._streaming:
                self._streaming = True
                self.con.print("[dim]model:[/dim] ", end="")
            self.con.print(event.data["chunk"], end="", highlight=False, markup=False)

        elif event.type is EventType.CHAT_ABORTED:
            self._flush()
            self.con.print(f"[dim]stream aborted ({event.data['reason']})[/dim]")

        elif event.type is EventType.CHAT_RETRY:
            self._flush()
            self.con.print(f"[magenta]~ retry: {event.data['error']}[/magenta]")

        elif event.type is EventType.CHAT_FAILED:
            self._flush()
            self.con.print(f"[red]failed ({event.data['kind']}): {event.data['error']}[/red]")

        elif event.type is EventType.CHAT_DONE:
            self._flush()

    def _flush(self):
        if self._streaming:
            self.con.print()
            self._streaming = False


def _build_engine(config: HarnessConfig, bus: EventBus) -> tuple[AsyncOllamaClient, ChatEngine]:
    client = AsyncOllamaClient(config.service.url, timeout=config.service.timeout)
    engine = ChatEngine(
        client,
        default_model=config.chat.model,
        default_retries=config.chat.retries,
        events=bus,
    )
    return client, engine


@click.group()
@click.option("--config", "-c", "config_path", default=None,
              help="Path to pick_harness.yaml (auto-detected from CWD or ~/.config/pick-harness/)")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool):
    """pick-harness - pick objects from natural-language prompts with a local LLM."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)
    ctx.obj = load_config(config_path)


@main.command()
@click.argument("prompt")
@click.option("--model", "-m", default=None, help="Override the configured model")
@click.option("--retries", "-r", type=click.IntRange(min=0), default=None, help="Retry budget")
@click.option("--algorithm", "-a", type=click.Choice(sorted(ALGORITHMS)), default=None)
@click.pass_obj
def ask(config: HarnessConfig, prompt: str, model: str | None,
        retries: int | None, algorithm: str | None):
    """Pick objects from the default room for PROMPT."""
    if model:
        config.chat.model = model
    if retries is not None:
        config.chat.retries = retries
    name = algorithm or config.algorithm

    async def _run():
        bus = EventBus()
        bus.subscribe(WILDCARD, StreamingDisplay(console).handle)
        client, engine = _build_engine(config, bus)
        async with client:
            return await create_algorithm(name, engine).run(DEFAULT_ROOM, prompt)

    console.print(f"[dim]Model: {config.chat.model} @ {config.service.url}[/dim]")
    result = asyncio.run(_run())
    if not result.ok:
        raise click.ClickException(result.error)
    if not result.value:
        console.print("[yellow]Nothing to pick up.[/yellow]")
        return
    for obj in result.value:
        console.print(f"[green]- {obj.label}[/green]")


@main.command()
@click.option("--runs", "-n", type=click.IntRange(min=1), default=None, help="Repetitions per case")
@click.option("--algorithm", "-a", type=click.Choice(sorted(ALGORITHMS)), default=None)
@click.option("--stream/--no-stream", default=False, help="Show model output while running")
@click.pass_obj
def bench(config: HarnessConfig, runs: int | None, algorithm: str | None, stream: bool):
    """Score the algorithm against the built-in catalog of prompts."""
    if runs is None:
        runs = config.runs
    name = algorithm or config.algorithm

    table = Table(title=f"Bench: {name}", show_lines=False, border_style="dim")
    table.add_column("Prompt")
    table.add_column("Run", justify="right")
    table.add_column("Picked")
    table.add_column("Score", justify="right")
    table.add_column("ms", justify="right")

    def _on_result(r: CaseResult):
        if r.picked is None:
            picked = f"[red]{r.error}[/red]"
        else:
            picked = ", ".join(obj.label for obj in r.picked) or "[dim](none)[/dim]"
        table.add_row(r.prompt, str(r.run), picked, f"{r.score:.2f}", f"{r.latency_ms:.0f}")

    async def _run():
        bus = EventBus()
        bus.subscribe(WILDCARD, StreamingDisplay(console, show_chunks=stream).handle)
        client, engine = _build_engine(config, bus)
        async with client:
            alg = create_algorithm(name, engine)
            return await run_bench(alg, DEFAULT_ROOM, DEFAULT_CASES, runs=runs,
                                   on_result=_on_result)

    report = asyncio.run(_run())
    console.print(table)
    console.print(f"[bold]Mean score: {report.mean_score:.2f}[/bold]")


if __name__ == "__main__":
    main()
