# tabchat/cli.py
"""
TABCHAT CLI -- Click commands with a rich terminal UI.

Provides the ``tabchat`` console entry-point declared in pyproject.toml as
``tabchat.cli:cli``:

- summary:  load a CSV/JSON source and print its column profile
- tool:     run one declared tool locally and print the JSON result
- chat:     ask questions; the model calls tools against the loaded data
- config:   effective TabchatConfig display
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import click
from rich import box
from rich.console import Console
from rich.markup import escape as _esc
from rich.padding import Padding
from rich.panel import Panel
from rich.prompt import Prompt

from . import __version__
from . import cli_theme as theme
from .config import get_config

console = Console()


def _print_version(
    ctx: click.Context,
    _param: click.Parameter,
    value: bool,
) -> None:
    if not value or ctx.resilient_parsing:
        return
    theme.print_version(__version__, console)
    ctx.exit()


def _check_api_key() -> None:
    """Fast preflight check before any model call."""
    cfg = get_config()
    if not cfg.api_key:
        raise click.ClickException(
            "No API key configured. Set TABCHAT_API_KEY or add it to your .env file."
        )


def _open_session(source: Path):
    from .sdk import load

    try:
        return load(source)
    except (FileNotFoundError, ValueError) as exc:
        raise click.ClickException(str(exc))


def _print_catalog(session: Any) -> None:
    table = theme.make_clean_table()
    table.add_column("Name", style=f"bold {theme.TEAL}", no_wrap=True)
    table.add_column("Format")
    table.add_column("Rows", justify="right")
    table.add_column("Cols", justify="right")
    table.add_column("Size", justify="right")
    for src in session.catalog:
        table.add_row(_esc(src.name), src.format, str(src.rows), str(src.columns), f"{src.size:,} B")
    console.print(Padding(table, (0, 0, 0, 2)))


# ---------------------------------------------------------------------------
# Main CLI group
# ---------------------------------------------------------------------------


@click.group(invoke_without_command=True)
@click.option(
    "--version",
    is_flag=True,
    callback=_print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """TABCHAT -- ask questions about CSV and JSON data."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ---------------------------------------------------------------------------
# summary
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("source", type=click.Path(path_type=Path))
def summary(source: Path) -> None:
    """Load SOURCE and print its column profile.

    \b
    Examples:
      tabchat summary tweets.csv
    """
    session = _open_session(source)
    theme.section("Source", console, "01")
    _print_catalog(session)

    theme.section("Columns", console, "02")
    if session.summary:
        console.print(Padding(_esc(session.summary), (0, 0, 0, 2)))
    else:
        console.print(theme.warn("No rows found in source"))
    session.close()


# ---------------------------------------------------------------------------
# tool
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("source", type=click.Path(path_type=Path))
@click.argument("name")
@click.option("--args", "raw_args", type=str, default="{}", show_default=True, help="Tool arguments as a JSON object.")
def tool(source: Path, name: str, raw_args: str) -> None:
    """Run tool NAME against SOURCE without a model.

    \b
    Examples:
      tabchat tool tweets.csv compute_column_stats --args '{"column": "Favorite Count"}'
      tabchat tool videos.json plot_metric_vs_time --args '{"metric": "view_count"}'
    """
    try:
        args = json.loads(raw_args)
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"--args is not valid JSON: {exc}")
    if not isinstance(args, dict):
        raise click.ClickException("--args must be a JSON object")

    session = _open_session(source)
    result = session.executor().execute(name, args)
    session.close()
    click.echo(json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False))
    if result.kind == "error":
        raise SystemExit(1)


# ---------------------------------------------------------------------------
# chat
# ---------------------------------------------------------------------------


def _render_outcome(outcome: Any) -> None:
    if outcome.tool_calls:
        table = theme.make_clean_table()
        table.add_column("#", justify="right", style=theme.MUTED)
        table.add_column("Tool", style=f"bold {theme.TEAL}", no_wrap=True)
        table.add_column("Args")
        table.add_column("Result", no_wrap=True)
        for i, call in enumerate(outcome.tool_calls, 1):
            table.add_row(
                str(i),
                _esc(call.name),
                _esc(json.dumps(call.args, ensure_ascii=False)),
                call.result.kind,
            )
        console.print(Padding(table, (0, 0, 0, 2)))

    for chart in outcome.charts:
        console.print(theme.info(f"Chart: {chart.metric_column} over time ({len(chart.data)} points)"))

    if outcome.round_limit_hit:
        console.print(theme.warn(f"Stopped after {outcome.rounds} tool rounds"))

    console.print(
        Padding(
            Panel(
                _esc(outcome.text or "(no answer)"),
                title=f"[bold {theme.TEAL}]Answer[/bold {theme.TEAL}]",
                border_style=theme.SAND,
                box=box.ROUNDED,
            ),
            (1, 2, 0, 2),
        )
    )


@cli.command()
@click.argument("source", type=click.Path(path_type=Path))
@click.option("--question", "-q", type=str, default=None, help="Ask a single question (non-interactive).")
@click.option("--max-rounds", type=click.IntRange(min=1), default=None, help="Tool round cap per question.")
@click.option("--save", type=click.Path(path_type=Path), default=None, help="Append exchange records to this JSONL file.")
@click.option("--record", is_flag=True, help="Append exchange records under the configured records_dir.")
def chat(
    source: Path,
    question: Optional[str],
    max_rounds: Optional[int],
    save: Optional[Path],
    record: bool,
) -> None:
    """Chat about SOURCE; the model calls tools on the loaded rows.

    \b
    Examples:
      tabchat chat tweets.csv -q "Which tweets got the most engagement?"
      tabchat chat videos.json --save answers.jsonl
      tabchat chat tweets.csv --record
    """
    from .llm import ModelClientError

    _check_api_key()
    session = _open_session(source)

    theme.section("Source", console, "01")
    _print_catalog(session)
    theme.section("Chat", console, "02")

    def _ask_once(q: str) -> None:
        try:
            with theme.spinner("Thinking...", console):
                outcome = session.ask(q, max_rounds=max_rounds)
        except ModelClientError as exc:
            raise click.ClickException(str(exc))
        _render_outcome(outcome)

    if question is not None:
        _ask_once(question)
    else:
        console.print(theme.info("Chat mode active. Type /exit to finish."))
        while True:
            try:
                prompt_text = Prompt.ask(f"  [bold {theme.TEAL}]You[/bold {theme.TEAL}]", console=console)
            except (EOFError, KeyboardInterrupt):
                console.print()
                break
            q = prompt_text.strip()
            if not q:
                continue
            if q.lower() in {"/exit", "exit", "quit", ":q"}:
                break
            _ask_once(q)

    if save is None and record:
        save = get_config().records_file(source)
    if save is not None:
        from .records import JsonlRecordStore

        count = JsonlRecordStore(save).extend(session.records)
        console.print(theme.ok(f"Saved {count} record(s) to {save}"))
    session.close()


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


def _mask(secret: str) -> str:
    if not secret:
        return "[dim]not set[/dim]"
    return secret[:4] + "···" + secret[-4:] if len(secret) > 8 else "***"


@cli.command()
def config() -> None:
    """Show the effective configuration."""
    cfg = get_config()

    theme.section("Models", console, "01")
    t = theme.make_kv_table()
    t.add_row("lm", cfg.lm)
    t.add_row("api_base", cfg.api_base)
    t.add_row("lm_temperature", str(cfg.lm_temperature))
    t.add_row("api_key", _mask(cfg.api_key))
    t.add_row("image_model", cfg.image_model)
    console.print(t)

    theme.section("Tool dispatch", console, "02")
    t = theme.make_kv_table()
    t.add_row("max_tool_rounds", str(cfg.max_tool_rounds))
    t.add_row("max_chart_points", str(cfg.max_chart_points))
    t.add_row("history_turns", str(cfg.history_turns))
    t.add_row("history_chars", str(cfg.history_chars))
    t.add_row("default_top_n", str(cfg.default_top_n))
    t.add_row("text_preview_chars", str(cfg.text_preview_chars))
    t.add_row("numeric_ratio", str(cfg.numeric_ratio))
    t.add_row("include_slim_csv", str(cfg.include_slim_csv))
    console.print(t)

    theme.section("Paths", console, "03")
    t = theme.make_kv_table()
    t.add_row("home_dir", str(cfg.home_dir))
    t.add_row("log_dir", str(cfg.log_dir))
    t.add_row("records_dir", str(cfg.records_dir))
    t.add_row("system_prompt_file", str(cfg.system_prompt_file) if cfg.system_prompt_file else "[dim]not set[/dim]")
    console.print(t)
    console.print()
