"""CLI commands for chatbudget."""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from chatbudget import __logo__, __version__

app = typer.Typer(
    name="chatbudget",
    help=f"{__logo__} chatbudget - Context budget tools for chat histories",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} chatbudget v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """chatbudget - Context budget tools for chat histories."""
    pass


def _fail(message: str) -> None:
    console.print(f"[red]Error: {message}[/red]")
    raise typer.Exit(1)


def _load_session(session_id: str):
    from chatbudget.session.manager import SessionManager

    session = SessionManager().get(session_id)
    if session is None:
        _fail(f"Session '{session_id}' not found")
    return session


# ============================================================================
# Compaction
# ============================================================================


@app.command()
def compact(
    session_id: str = typer.Argument(..., help="Session to compact"),
    preset: str = typer.Option(None, "--preset", "-p", help="Compression preset override"),
    show: bool = typer.Option(False, "--show", help="Print the encoded context"),
):
    """Build the optimized context for a stored session."""
    from chatbudget.agent.compactor import Compactor
    from chatbudget.agent.summary import SummaryCoordinator
    from chatbudget.config.loader import load_config
    from chatbudget.config.schema import CompressionConfig
    from chatbudget.providers.litellm_provider import LiteLLMProvider
    from chatbudget.providers.summarizer import LLMSummarizer
    from chatbudget.session.stores import FileMetricsStore, FileSummaryStore

    config = load_config()
    if preset:
        try:
            compression = CompressionConfig.preset(preset)
        except ValueError as e:
            _fail(str(e))
    else:
        compression = config.compression.resolve()

    session = _load_session(session_id)

    defaults = config.agents.defaults
    provider = LiteLLMProvider(
        api_key=config.get_api_key(),
        api_base=config.get_api_base(),
        default_model=defaults.model,
    )
    coordinator = SummaryCoordinator(
        summarizer=LLMSummarizer(provider, model=defaults.model, temperature=defaults.temperature),
        store=FileSummaryStore(),
        summary_max_tokens=compression.summary_max_tokens,
    )
    compactor = Compactor(coordinator, FileMetricsStore(), compression)

    context = asyncio.run(compactor.compact(session_id, session.messages))

    console.print(f"{__logo__} {context.describe()}")
    if show and context.encoded:
        console.print(context.encoded, markup=False, highlight=False)


# ============================================================================
# Splitting
# ============================================================================


@app.command()
def split(
    file: Path = typer.Argument(..., help="Text file to split"),
    limit: int = typer.Option(None, "--limit", "-l", help="Characters per part"),
):
    """Split a long message into transmission-safe parts."""
    from chatbudget.channels.split import MessageSplitter
    from chatbudget.config.loader import load_config

    if not file.exists():
        _fail(f"File not found: {file}")

    limit = limit or load_config().split.limit
    if limit < 1:
        _fail("--limit must be positive")

    result = MessageSplitter().split(file.read_text(encoding="utf-8"), limit)

    console.print(f"[dim]{result.batch_id}[/dim] {result.total_parts} part(s)")
    for part in result.parts:
        console.print(f"\n[bold cyan]── {part.progress_indicator} ──[/bold cyan]")
        console.print(part.content, markup=False, highlight=False)


# ============================================================================
# Usage
# ============================================================================


@app.command()
def stats(
    session_id: str = typer.Argument(..., help="Session to inspect"),
    input_text: str = typer.Option("", "--input", "-i", help="Pending input text"),
):
    """Show token usage for a session."""
    from chatbudget.agent.usage import calculate_token_stats, format_token_count, warning_message
    from chatbudget.config.loader import load_config

    context_limit = load_config().usage.context_limit
    session = _load_session(session_id)
    token_stats = calculate_token_stats(input_text, session.messages)

    table = Table(title=f"Token usage: {session_id}")
    table.add_column("Metric", style="cyan")
    table.add_column("Tokens", justify="right")

    table.add_row("Input", format_token_count(token_stats.input_tokens))
    table.add_row("History", format_token_count(token_stats.history_tokens))
    table.add_row("Last response", format_token_count(token_stats.last_response_tokens))
    table.add_row("Total", format_token_count(token_stats.total_tokens))
    table.add_row(
        "Used",
        f"{token_stats.usage_percentage(context_limit):.1f}% of {format_token_count(context_limit)}",
    )

    console.print(table)

    warning = warning_message(token_stats, context_limit)
    if warning:
        color = "red" if token_stats.is_critical_level(context_limit) else "yellow"
        console.print(f"[{color}]{warning}[/{color}]")


@app.command()
def metrics(
    session_id: str = typer.Argument(None, help="Session to report (all when omitted)"),
):
    """Show recorded compaction metrics."""
    from chatbudget.session.stores import FileMetricsStore

    store = FileMetricsStore()
    records = store.for_session(session_id) if session_id else store.all()
    if not records:
        console.print("No metrics recorded.")
        return

    table = Table(title="Compaction metrics")
    table.add_column("Session", style="cyan")
    table.add_column("Strategy")
    table.add_column("Before", justify="right")
    table.add_column("After", justify="right")
    table.add_column("Saved", justify="right", style="green")

    for m in records:
        table.add_row(
            m.session_id,
            m.strategy.value,
            str(m.tokens_before),
            str(m.tokens_after),
            f"{m.savings_percentage:.1f}%",
        )

    console.print(table)
    console.print(
        f"{store.count(session_id)} run(s), {store.total_saved(session_id)} tokens saved"
    )


@app.command()
def savings(
    session_id: str = typer.Argument(..., help="Session to measure"),
):
    """Compare the compact encoding against plain JSON for a session."""
    from chatbudget.agent.encoder import calculate_savings

    session = _load_session(session_id)
    result = calculate_savings(session.messages)

    console.print(f"JSON:    {result.json_tokens} tokens")
    console.print(f"Compact: {result.compact_tokens} tokens")
    console.print(
        f"[green]Saved:   {result.saved_tokens} tokens ({result.savings_percentage:.1f}%)[/green]"
    )


if __name__ == "__main__":
    app()
