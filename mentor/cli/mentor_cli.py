"""
Mentor CLI - interactive mastery sessions from the terminal.

Usage:
    mentor learn lesson.json            # Run the mastery loop on a lesson file
    mentor learn lesson.json -m 3       # Escalate after 3 failed attempts
    mentor demo                         # Built-in photosynthesis lesson
    mentor search "photosynthesis"      # Inspect web research results

A lesson file is the lesson generator's JSON document:
    {"title": "...", "content": "...", "mastery_criteria": ["...", "..."]}
"""

from __future__ import annotations

import asyncio
import json
import random
import sys
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from config import get_settings
from mentor.core.errors import MentorError
from mentor.core.generation_client import GenerationClient
from mentor.mastery import (
    AnswerSet,
    ExerciseBattery,
    LessonContext,
    MasteryLoop,
    MasteryState,
    Verdict,
)
from mentor.search import WebSearchClient

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="mentor",
    help="Mentor CLI - closed-loop mastery checks for personalized lessons",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

DONT_KNOW_INPUTS = {"?", "idk", "dk", "don't know", "dont know"}

DEMO_LESSON = LessonContext(
    title="Introduction to Photosynthesis",
    content_text=(
        "Photosynthesis is the process by which plants use sunlight, water, and carbon "
        "dioxide to create oxygen and energy in the form of sugar. It takes place in the "
        "chloroplasts, which contain chlorophyll."
    ),
    mastery_criteria=(
        "Define the inputs and outputs of photosynthesis",
        "Identify where photosynthesis occurs in the cell",
    ),
)


def _configure_logging(verbose: bool) -> None:
    level = "DEBUG" if verbose else get_settings().log_level
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )


# =============================================================================
# Exercise prompts
# =============================================================================


def _is_dont_know(value: str) -> bool:
    return value.strip().lower() in DONT_KNOW_INPUTS


def _ask_index(label: str, count: int) -> int | None:
    """Ask for a 1-based choice; returns a 0-based index or None for "don't know"."""
    while True:
        raw = Prompt.ask(f"{label} [dim](1-{count}, '?' to skip)[/dim]")
        if _is_dont_know(raw):
            return None
        if raw.strip().isdigit() and 1 <= int(raw) <= count:
            return int(raw) - 1
        console.print(f"[red]Enter a number between 1 and {count}[/red]")


def _ask_text(label: str) -> str | None:
    raw = Prompt.ask(label)
    return None if _is_dont_know(raw) or not raw.strip() else raw


def _collect_answers(battery: ExerciseBattery) -> AnswerSet:
    """Play every exercise slot in the battery and gather the answers."""
    answers: dict = {}

    console.print(Panel("[bold]Quiz[/bold]", border_style="cyan"))
    choices: list[int | None] = []
    for number, item in enumerate(battery.multiple_choice, 1):
        console.print(f"\n[bold]Q{number}.[/bold] {item.question}")
        for i, option in enumerate(item.options, 1):
            console.print(f"  [{i}] {option}")
        choices.append(_ask_index("Your answer", len(item.options)))
    answers["multipleChoice"] = choices

    if battery.term_definition:
        console.print(Panel("[bold]Flash cards[/bold] - define each term", border_style="cyan"))
        answers["termDefinition"] = [
            _ask_text(f"[bold]{card.term}[/bold]") for card in battery.term_definition
        ]

    if battery.categorize:
        buckets = battery.categorize.buckets
        console.print(Panel("[bold]Sort it out[/bold]", border_style="cyan"))
        for i, bucket in enumerate(buckets, 1):
            console.print(f"  [{i}] {bucket}")
        answers["categorize"] = [
            _ask_index(f"Sort '{item.text}'", len(buckets)) for item in battery.categorize.items
        ]

    if battery.pairing:
        console.print(Panel("[bold]Match maker[/bold]", border_style="cyan"))
        order = random.sample(range(len(battery.pairing)), len(battery.pairing))
        table = Table(show_header=True, header_style="bold")
        table.add_column("#", justify="right")
        table.add_column("Match")
        for shown, original in enumerate(order, 1):
            table.add_row(str(shown), battery.pairing[original].right)
        console.print(table)
        picks: list[int | None] = []
        for pair in battery.pairing:
            shown = _ask_index(f"Match '{pair.left}'", len(order))
            picks.append(order[shown] if shown is not None else None)
        answers["pairing"] = picks

    if battery.cloze:
        console.print(Panel(battery.cloze.text, title="[bold]Fill the gap[/bold]", border_style="cyan"))
        filled = {}
        for blank in battery.cloze.blanks:
            value = _ask_text(f"Blank [{blank.id}]")
            if value is not None:
                filled[blank.id] = value
        answers["cloze"] = filled

    console.print(Panel(battery.explain.prompt, title="[bold]Explain it[/bold]", border_style="cyan"))
    answers["explain"] = _ask_text("Your explanation")

    return AnswerSet.model_validate(answers)


def _show_verdict(verdict: Verdict, attempt: int) -> None:
    if verdict.passed:
        console.print(Panel(
            f"[bold green]PASSED[/bold green] on attempt {attempt}",
            border_style="green",
        ))
        return
    gaps = "\n".join(f"- {gap}" for gap in verdict.gaps)
    console.print(Panel(
        f"[bold red]NOT YET[/bold red] (attempt {attempt})\n\n{gaps}",
        title="Gaps",
        border_style="red",
    ))


# =============================================================================
# Session runner
# =============================================================================


async def _run_session(lesson: LessonContext, max_attempts: int | None) -> MasteryState:
    console.print(Panel(Markdown(lesson.content_text), title=f"[bold]{lesson.title}[/bold]"))
    Prompt.ask("[dim]Press Enter when you are done reading[/dim]", default="", show_default=False)

    async with GenerationClient.from_settings() as client:
        loop = MasteryLoop.from_generator(client, max_attempts=max_attempts)

        with console.status("Generating exercises..."):
            session, battery = await loop.start_session(lesson)

        while True:
            answers = _collect_answers(battery)
            with console.status("Evaluating..."):
                verdict = await loop.submit_answers(session, answers)
            _show_verdict(verdict, session.attempt_count)

            if session.state == MasteryState.PASSED:
                break
            if session.state == MasteryState.ABORTED:
                console.print(f"[yellow]{session.abort_reason}[/yellow]")
                break

            remediation = loop.get_remediation(session)
            console.print(Panel(Markdown(remediation.text), title="[bold]Remedial lesson[/bold]"))

            if not Confirm.ask("Ready to try again?", default=True):
                loop.abort(session, "Learner stopped the session")
                break

            with console.status("Generating new exercises..."):
                battery = await loop.retry(session)

        return session.state


def _load_lesson(path: Path) -> LessonContext:
    if not path.exists():
        console.print(f"[red]Lesson file not found:[/red] {path}")
        raise typer.Exit(1)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid lesson JSON:[/red] {e}")
        raise typer.Exit(1)
    return LessonContext.from_dict(data)


def _run(lesson: LessonContext, max_attempts: int | None) -> None:
    if not get_settings().has_ai_configured():
        console.print("[red]OPENROUTER_API_KEY is not configured[/red]")
        raise typer.Exit(1)
    try:
        state = asyncio.run(_run_session(lesson, max_attempts))
    except MentorError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    if state != MasteryState.PASSED:
        raise typer.Exit(2)


# =============================================================================
# Commands
# =============================================================================


@app.command()
def learn(
    lesson_file: Annotated[Path, typer.Argument(help="Lesson JSON file")],
    max_attempts: Annotated[
        int | None,
        typer.Option("--max-attempts", "-m", help="Escalate after this many failed attempts"),
    ] = None,
) -> None:
    """Run the mastery loop on a lesson until it is mastered."""
    lesson = _load_lesson(lesson_file)
    _run(lesson, max_attempts or get_settings().mastery_max_attempts)


@app.command()
def demo(
    max_attempts: Annotated[
        int | None,
        typer.Option("--max-attempts", "-m", help="Escalate after this many failed attempts"),
    ] = None,
) -> None:
    """Run the mastery loop on the built-in photosynthesis lesson."""
    _run(DEMO_LESSON, max_attempts or get_settings().mastery_max_attempts)


@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Search query")],
    count: Annotated[int, typer.Option("--count", "-n", help="Number of results")] = 5,
) -> None:
    """Show web research results for a query."""

    async def _search() -> list:
        async with WebSearchClient.from_settings() as client:
            return await client.search(query, count)

    results = asyncio.run(_search())
    if not results:
        console.print("[yellow]No results[/yellow]")
        return

    table = Table(title=f"Results for '{query}'", show_lines=True)
    table.add_column("Title", style="bold")
    table.add_column("URL", style="cyan")
    table.add_column("Snippet")
    for result in results:
        snippet = result.snippets[0] if result.snippets else ""
        table.add_row(result.title, result.url, snippet[:200])
    console.print(table)


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """Mentor CLI - closed-loop mastery checks for personalized lessons."""
    _configure_logging(verbose)


def run() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()
