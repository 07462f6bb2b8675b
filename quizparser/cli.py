"""
CLI Interface
=============
Command-line interface for the quiz parser engine.

Usage:
    python -m quizparser canonicalize <source>
    python -m quizparser parse <source> [options]
    python -m quizparser import-key <source> <key.json> [--export out.json]
    python -m quizparser grade <source> --key <key.json> [--answers a.json]
    python -m quizparser serve [options]
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .answer_key import MalformedKeyDocument, dumps_answer_key
from .canonicalizer import canonicalize as canonicalize_text
from .engine import QuizConfig, QuizEngine
from .extractor import load_source_text
from .models import QuestionStatus

console = Console()

LOG_LEVELS = click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"])

STATUS_STYLES = {
    QuestionStatus.CORRECT: "[green]✓ correct[/]",
    QuestionStatus.WRONG: "[red]✗ wrong[/]",
    QuestionStatus.UNANSWERED_KEYED: "[dim]unanswered[/]",
    QuestionStatus.NOKEY: "[yellow]no key[/]",
    QuestionStatus.ANSWERED_NOKEY: "[yellow]answered, no key[/]",
    QuestionStatus.ANSWERED: "answered",
    QuestionStatus.UNANSWERED: "[dim]unanswered[/]",
}


@click.group()
@click.version_option(version=__version__, prog_name="quizparser")
def cli():
    """Quiz Parser — exam text to multiple-choice quiz, with answer-key grading."""
    pass


@cli.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
def canonicalize(source: str):
    """Print the canonical form of a PDF or text file."""
    try:
        click.echo(canonicalize_text(load_source_text(source)))
    except (FileNotFoundError, RuntimeError) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)


@cli.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output", "-o",
    default=None,
    help="Directory to save the parsed JSON document",
)
@click.option(
    "--log-level",
    default="INFO",
    type=LOG_LEVELS,
    help="Logging level",
)
@click.option(
    "--log-file",
    default=None,
    help="Path to log file",
)
@click.option(
    "--json-output",
    is_flag=True,
    default=False,
    help="Output only JSON result to stdout (for programmatic use)",
)
def parse(
    source: str,
    output: str,
    log_level: str,
    log_file: str,
    json_output: bool,
):
    """Parse a PDF or text file into questions and options."""

    if json_output:
        # Suppress console output for JSON mode
        log_level = "ERROR"

    config = QuizConfig(
        output_dir=output,
        log_level=log_level,
        log_file=log_file,
    )

    try:
        document = QuizEngine(config).parse_file(source)
    except (FileNotFoundError, RuntimeError) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    if json_output:
        click.echo(json.dumps(
            document.model_dump(mode="json"),
            indent=2,
            ensure_ascii=False,
        ))
        return

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]Quiz Parser v{__version__}[/]\n"
            f"[dim]Parsed: {document.source_name}[/]",
            border_style="cyan",
        )
    )
    _display_questions(document.questions)
    _display_validation_table(document.validation.model_dump())


@cli.command("import-key")
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.argument("key", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--export", "export_path",
    default=None,
    help="Write the normalized answer key to this JSON file",
)
@click.option("--log-level", default="WARNING", type=LOG_LEVELS)
def import_key(source: str, key: str, export_path: str, log_level: str):
    """Import an answer key against the questions of SOURCE."""
    engine = QuizEngine(QuizConfig(log_level=log_level))
    session = engine.new_session()

    try:
        session.load_document(Path(source).name, load_source_text(source))
        accepted = session.import_key(Path(key).read_bytes())
    except (FileNotFoundError, RuntimeError, MalformedKeyDocument) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    console.print(
        f"[green]Answer key imported:[/] {accepted} of "
        f"{len(session.questions)} questions keyed"
    )

    if export_path:
        Path(export_path).write_text(
            dumps_answer_key(session.export_key()), encoding="utf-8"
        )
        console.print(f"[dim]Exported to {export_path}[/]")


@cli.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--key", "-k", "key_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Answer key JSON file",
)
@click.option(
    "--answers", "-a", "answers_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help='Submitted answers JSON file, e.g. {"1": "A"}',
)
@click.option(
    "--session-dir",
    default=None,
    help="Directory for autosaved sessions (restores earlier answers)",
)
@click.option("--log-level", default="WARNING", type=LOG_LEVELS)
@click.option("--json-output", is_flag=True, default=False)
def grade(
    source: str,
    key_path: str,
    answers_path: str,
    session_dir: str,
    log_level: str,
    json_output: bool,
):
    """Grade submitted answers for SOURCE against an answer key."""

    if json_output:
        log_level = "ERROR"

    engine = QuizEngine(QuizConfig(session_dir=session_dir, log_level=log_level))
    session = engine.new_session()

    try:
        session.load_document(Path(source).name, load_source_text(source))
        if key_path:
            session.import_key(Path(key_path).read_bytes())
        if answers_path:
            with open(answers_path, "r", encoding="utf-8") as f:
                answers = json.load(f)
            if not isinstance(answers, dict):
                raise ValueError("answers file must be a JSON object")
            for qid, choice in answers.items():
                if choice is not None:
                    session.set_choice(str(qid), str(choice))
        session.submit()
    except (FileNotFoundError, RuntimeError, MalformedKeyDocument) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)
    except ValueError as e:
        console.print(f"[red]Invalid answers file:[/] {e}")
        sys.exit(1)

    report = session.report()

    if json_output:
        click.echo(json.dumps(
            report.model_dump(mode="json"),
            indent=2,
            ensure_ascii=False,
        ))
        return

    table = Table(title="Results", border_style="cyan")
    table.add_column("#", justify="right", style="bold")
    table.add_column("Selected", justify="center")
    table.add_column("Key", justify="center")
    table.add_column("Status")

    for idx, q in enumerate(session.questions, start=1):
        table.add_row(
            str(q.number if q.number is not None else idx),
            session.answers.get(q.id, "-"),
            session.answer_key.get(q.id, "-"),
            STATUS_STYLES[session.status_of(q)],
        )

    console.print()
    console.print(table)

    score = report.score
    if score is None:
        console.print("[yellow]No answer key loaded, nothing to score.[/]")
    else:
        console.print(
            f"[bold]Score:[/] {score.correct_count}/{score.total_keyed} correct, "
            f"{score.wrong_count} wrong, "
            f"{score.unanswered_keyed} unanswered"
        )
    console.print()


@cli.command()
@click.option("--host", default="0.0.0.0", help="Server host")
@click.option("--port", default=5000, type=int, help="Server port")
@click.option("--debug", is_flag=True, default=False, help="Debug mode")
def serve(host: str, port: int, debug: bool):
    """Start the HTTP API server."""
    from .server import run_server

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]Quiz Parser API[/]\n"
            f"[dim]Starting on {host}:{port}[/]",
            border_style="cyan",
        )
    )
    console.print()

    run_server(host=host, port=port, debug=debug)


# ─── Display Helpers ──────────────────────────────────────────────────────────


def _display_questions(questions):
    """Display parsed questions in a formatted table."""
    table = Table(title="Questions", border_style="cyan")
    table.add_column("#", justify="right", style="bold")
    table.add_column("Prompt")
    table.add_column("Options", justify="center")

    for q in questions:
        prompt = q.prompt if len(q.prompt) <= 70 else q.prompt[:67] + "..."
        keys = "".join(q.option_keys) or "[red]none[/]"
        table.add_row(str(q.number), prompt, keys)

    console.print()
    console.print(table)
    console.print()


def _display_validation_table(validation: dict):
    """Display validation report as a rich table."""
    table = Table(title="Validation Report", border_style="green")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Status", justify="center")

    total = validation.get("total_questions_detected", 0)
    success = validation.get("structured_successfully", 0)
    rate = validation.get("success_rate", 0)

    # Status icons
    def status_icon(count, threshold=0):
        if count <= threshold:
            return "[green]✓[/]"
        return "[red]✗[/]"

    table.add_row(
        "Total Questions Detected",
        str(total),
        "[green]✓[/]" if total > 0 else "[red]✗[/]",
    )
    table.add_row(
        "Structured Successfully",
        f"{success} ({rate}%)",
        "[green]✓[/]" if rate >= 90 else "[yellow]⚠[/]",
    )

    for label, field in [
        ("Questions Without Options", "questions_without_options"),
        ("Placeholder Prompts", "placeholder_prompts"),
        ("Missing Question Numbers", "missing_question_numbers"),
        ("Duplicate Question Numbers", "duplicate_question_numbers"),
        ("Repeated Option Letters", "repeated_option_keys"),
    ]:
        values = validation.get(field, [])
        table.add_row(label, str(len(values)), status_icon(len(values)))

    console.print(table)
    console.print()

    breakdown = validation.get("anomaly_breakdown", {})
    if breakdown:
        anomaly_table = Table(
            title="Anomaly Breakdown",
            border_style="yellow",
        )
        anomaly_table.add_column("Type", style="bold")
        anomaly_table.add_column("Count", justify="right")

        for atype, count in sorted(breakdown.items()):
            anomaly_table.add_row(atype, str(count))

        console.print(anomaly_table)
        console.print()


# ─── Entry point (for python -m quizparser.cli) ───────────────────────────────


if __name__ == "__main__":
    cli()
