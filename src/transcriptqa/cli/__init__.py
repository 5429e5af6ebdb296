"""Command-line interface for TranscriptQA."""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Callable
from pathlib import Path

import questionary
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table
from rich.theme import Theme

from transcriptqa import SearchQuery, SearchServiceResult, TranscriptQAConfig, TranscriptQAService

TRANSCRIPTQA_THEME = Theme(
    {
        "info": "bold cyan",
        "success": "bold green",
        "warning": "bold yellow",
        "error": "bold red",
        "highlight": "bold magenta",
        "dim": "grey50",
    }
)

QUESTIONARY_STYLE = questionary.Style(
    [
        ("qmark", "fg:#00ffff bold"),
        ("question", "bold"),
        ("answer", "fg:#00ff00 bold"),
        ("pointer", "fg:#00ffff bold"),
        ("highlighted", "fg:#00ffff bold bg:default noreverse"),
        ("selected", "fg:default bg:default noreverse"),
        ("choice", "fg:default bg:default noreverse"),
    ]
)

ENV_PREFIX = "TRANSCRIPTQA_"

console = Console(theme=TRANSCRIPTQA_THEME)


def validate_api_key(provider: str) -> Callable[[str], bool | str]:
    """Return a validation function for a specific provider."""
    prefixes = {"openai": "sk-", "anthropic": "sk-ant-"}

    def validator(text: str) -> bool | str:
        if not text:
            return f"{provider.upper()} API key cannot be empty"
        prefix = prefixes.get(provider.lower())
        if prefix and not text.startswith(prefix):
            return f"{provider.upper()} keys must start with '{prefix}'"
        if len(text) < 20:
            return f"{provider.upper()} key is too short"
        return True

    return validator


def merge_env_lines(existing: list[str], settings: dict[str, str]) -> list[str]:
    """Replace every TRANSCRIPTQA_ line of an .env file with ``settings``."""
    kept = [
        line
        for line in existing
        if not line.strip() or line.strip().startswith("#") or not line.startswith(ENV_PREFIX)
    ]
    if kept and not kept[-1].endswith("\n"):
        kept.append("\n")
    header = "# TranscriptQA Configuration\n"
    if kept:
        header = "\n# Updated TranscriptQA Configuration\n"
    return [*kept, header, *(f"{key}={value}\n" for key, value in settings.items())]


async def setup_cmd() -> None:
    """Interactively write provider settings to .env."""
    console.print(Panel("TranscriptQA Configuration Setup", style="info", expand=False))
    console.print("This utility will generate a .env file for your providers.\n", style="dim")

    settings: dict[str, str] = {}

    completion = await questionary.select(
        "Select Completion Provider:", choices=["openai", "anthropic"], style=QUESTIONARY_STYLE
    ).ask_async()
    if completion is None:
        return
    settings[f"{ENV_PREFIX}COMPLETION_PROVIDER"] = completion

    store = await questionary.select(
        "Select Vector Store:", choices=["memory", "chromadb"], style=QUESTIONARY_STYLE
    ).ask_async()
    if store is None:
        return
    settings[f"{ENV_PREFIX}VECTOR_STORE_PROVIDER"] = store

    # Embeddings always come from OpenAI
    for provider in dict.fromkeys(["openai", completion]):
        key = await questionary.password(
            f"Enter {provider.upper()} API Key:",
            validate=validate_api_key(provider),
            style=QUESTIONARY_STYLE,
        ).ask_async()
        if key is None:
            return
        settings[f"{ENV_PREFIX}{provider.upper()}_API_KEY"] = key

    directory = await questionary.path(
        "Transcripts directory for startup ingestion (blank to skip):",
        only_directories=True,
        style=QUESTIONARY_STYLE,
    ).ask_async()
    if directory:
        settings[f"{ENV_PREFIX}TRANSCRIPTS_DIRECTORY"] = directory

    env_path = Path(".env")
    existing = env_path.read_text().splitlines(keepends=True) if env_path.exists() else []
    env_path.write_text("".join(merge_env_lines(existing, settings)))
    console.print("\n[success]Configuration updated in .env[/]")


async def ingest_cmd(paths: list[str]) -> None:
    service = TranscriptQAService(TranscriptQAConfig())
    files = [Path(p) for p in paths]

    with Progress(
        SpinnerColumn(spinner_name="dots"),
        TextColumn("[info]{task.description}"),
        BarColumn(bar_width=40),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        overall = progress.add_task(description="Ingesting", total=len(files))
        for idx, file_path in enumerate(files, 1):
            try:
                result = await service.ingest_document(file_path.read_bytes(), file_path.name)
            except Exception as e:
                console.print(f"[error]Failed ({idx}/{len(files)}):[/] {file_path} - {e}")
                progress.update(overall, advance=1)
                continue
            style = "success" if not result.failed else "warning"
            console.print(
                f"[{style}]Ingested ({idx}/{len(files)}):[/] {file_path.name} "
                f"{result.successful_count}/{result.total_processed} chunks"
            )
            for outcome in result.failed:
                console.print(f"  [dim]{outcome.chunk_id or '-'}[/] {outcome.error_message}")
            progress.update(overall, advance=1)


def render_results(result: SearchServiceResult, title: str) -> None:
    if not result.success or result.response is None:
        console.print(f"[error]Search failed:[/] {result.error_message}")
        sys.exit(1)
    if not result.response.results:
        console.print("[warning]No matching transcript chunks.[/]")
        return

    table = Table(
        box=None,
        show_header=True,
        header_style="highlight",
        title=title,
        title_justify="left",
        title_style="dim",
        pad_edge=False,
    )
    table.add_column("Episode", style="dim")
    table.add_column("Text", ratio=4)
    table.add_column("Timestamp", justify="right", ratio=1)
    table.add_column("Relevance", justify="right", style="success", ratio=1)
    for hit in result.response.results:
        table.add_row(
            f"{hit.episode_number} {hit.episode_title}".strip(),
            hit.text,
            f"{hit.start_time:.1f}s - {hit.end_time:.1f}s",
            f"{hit.relevance_score:.2f}",
        )
    console.print(table)
    console.print(f"[dim]{result.response.total_results} total matches[/]")


async def search_cmd(text: str, episode: int | None, topic: str | None, max_results: int) -> None:
    service = TranscriptQAService(TranscriptQAConfig())
    with console.status("[info]Searching index...", spinner="dots"):
        result = await service.search(
            SearchQuery(
                query_text=text, episode_number=episode, topic=topic, max_results=max_results
            )
        )
    render_results(result, "Search Results")


async def ask_cmd(text: str) -> None:
    service = TranscriptQAService(TranscriptQAConfig())
    with console.status("[info]Interpreting question...", spinner="dots"):
        result = await service.search_with_intent(text)
    render_results(result, "Best Matches")


async def questions_cmd(count: int, topic: str | None) -> None:
    service = TranscriptQAService(TranscriptQAConfig())
    with console.status("[info]Loading suggested questions...", spinner="dots"):
        question_sets = await service.get_random_questions(count, topic)
    if not question_sets:
        console.print("[warning]No suggested questions available.[/]")
        return
    for question_set in question_sets:
        console.print(
            Panel(
                "\n".join(f"- {q}" for q in question_set.questions),
                title=f"Episode {question_set.source_episode_number}",
                subtitle=", ".join(question_set.topics) or None,
                title_align="left",
                border_style="success",
                padding=(1, 2),
            )
        )


async def serve_cmd() -> None:
    """Run startup ingestion and the generation scheduler until interrupted."""
    config = TranscriptQAConfig()
    service = TranscriptQAService(config)
    console.print(
        Panel(
            f"Transcripts: {config.transcripts_directory or '(none)'}\n"
            f"First periodic pass after {config.scheduler_initial_delay_seconds:.0f}s, "
            f"then every {config.scheduler_interval_seconds:.0f}s",
            title="TranscriptQA Scheduler",
            style="info",
            expand=False,
        )
    )
    async with service:
        await asyncio.Event().wait()


def main() -> None:
    """Entry point with clean help documentation."""
    parser = argparse.ArgumentParser(
        description="TranscriptQA: semantic search and suggested questions for transcripts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  transcriptqa setup
  transcriptqa ingest transcripts/episode-510.json
  transcriptqa search "jazz" --episode 510
  transcriptqa ask "what did they say about jazz in episode 510?"
  transcriptqa questions --count 3

Note: Use "transcriptqa [command] --help" for more details on a specific command.
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("setup", help="Initialize provider configuration")

    ingest_parser = subparsers.add_parser("ingest", help="Ingest transcript JSON documents")
    ingest_parser.add_argument("files", nargs="+", help="Transcript files to ingest")

    search_parser = subparsers.add_parser("search", help="Filtered similarity search")
    search_parser.add_argument("text", help="Query text")
    search_parser.add_argument("--episode", type=int, help="Restrict to an episode number")
    search_parser.add_argument("--topic", help="Restrict to chunks tagged with a topic")
    search_parser.add_argument("--max", type=int, default=10, help="Maximum results")

    ask_parser = subparsers.add_parser("ask", help="Search using filters inferred from the text")
    ask_parser.add_argument("text", help="Natural-language question")

    questions_parser = subparsers.add_parser("questions", help="Show suggested questions")
    questions_parser.add_argument("--count", type=int, default=3, help="Question sets to show")
    questions_parser.add_argument("--topic", help="Only sets tagged with this topic")

    subparsers.add_parser("serve", help="Run startup ingestion and scheduled generation")

    args = parser.parse_args()

    try:
        if args.command == "setup":
            asyncio.run(setup_cmd())
        elif args.command == "ingest":
            asyncio.run(ingest_cmd(args.files))
        elif args.command == "search":
            asyncio.run(search_cmd(args.text, args.episode, args.topic, args.max))
        elif args.command == "ask":
            asyncio.run(ask_cmd(args.text))
        elif args.command == "questions":
            asyncio.run(questions_cmd(args.count, args.topic))
        elif args.command == "serve":
            asyncio.run(serve_cmd())
        else:
            parser.print_help()
    except KeyboardInterrupt:
        console.print("\n[warning]Operation cancelled by user.[/]")
        sys.exit(0)


if __name__ == "__main__":
    main()
