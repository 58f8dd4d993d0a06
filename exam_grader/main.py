"""
Exam Grader CLI Application.

Administrative command-line interface for importing question sets and
submissions, grading a single submission, sweeping stuck submissions, and
checking the grading service.
"""

import json
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from exam_grader.config import Settings, get_settings
from exam_grader.errors import StoreError
from exam_grader.grading import CodeQualityGrader, GradingOrchestrator, RegradeSweeper, build_strategy
from exam_grader.grading.llm_client import LLMError
from exam_grader.importers import QuestionImportError, load_questions
from exam_grader.logging_setup import configure_logging
from exam_grader.models import Exam, GradingOutcome, GradingStatus, RegradeReport, Submission
from exam_grader.notify import build_notifier
from exam_grader.store import JsonFileStore

# Create Typer app
app = typer.Typer(
    name="exam-grader",
    help="Automated grading for the exam portal",
    add_completion=False,
)

console = Console()

StoreOption = Annotated[
    Optional[Path],
    typer.Option("--store", "-s", help="Path to the JSON data store"),
]


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
) -> None:
    """Automated grading for the exam portal."""
    level = "DEBUG" if verbose else get_settings().log_level
    configure_logging(level, console=console)


def _open_store(settings: Settings, store: Path | None) -> JsonFileStore:
    return JsonFileStore(store or settings.store_path)


def _build_orchestrator(
    settings: Settings, store: JsonFileStore, use_code_grader: bool | None = None
) -> GradingOrchestrator:
    return GradingOrchestrator(
        store,
        settings=settings,
        strategy=build_strategy(settings, use_code_grader=use_code_grader),
        notifier=build_notifier(settings),
    )


@app.command("import-exam")
def import_exam(
    questions_file: Annotated[Path, typer.Argument(help="Question bank file (.json, .csv, .xlsx)")],
    exam_id: Annotated[str, typer.Option("--exam-id", help="Exam identifier")],
    title: Annotated[str, typer.Option("--title", help="Exam title")] = "",
    store: StoreOption = None,
) -> None:
    """
    Import an exam's question set from a question bank file.
    """
    settings = get_settings()
    try:
        questions = load_questions(questions_file, exam_id=exam_id)
        exam = Exam(id=exam_id, title=title, questions=tuple(questions))
        _open_store(settings, store).save_exam(exam)
    except QuestionImportError as e:
        console.print(f"[red]Import Error:[/red] {e}")
        raise typer.Exit(1)
    except (StoreError, ValidationError) as e:
        console.print(f"[red]Store Error:[/red] {e}")
        raise typer.Exit(1)

    console.print(
        f"[green]Imported {len(exam.questions)} questions[/green] "
        f"({exam.total_marks} marks) into exam {exam.id}"
    )


@app.command("import-submissions")
def import_submissions(
    submissions_file: Annotated[Path, typer.Argument(help="JSON list of submissions")],
    store: StoreOption = None,
) -> None:
    """
    Import learner submissions from a JSON file.
    """
    settings = get_settings()
    if not submissions_file.exists():
        console.print(f"[red]Error:[/red] File not found: {submissions_file}")
        raise typer.Exit(1)

    try:
        raw = json.loads(submissions_file.read_text(encoding="utf-8"))
        if not isinstance(raw, list):
            raise ValueError("expected a JSON list of submissions")
        submissions = [Submission.model_validate(item) for item in raw]
    except (ValueError, ValidationError) as e:
        console.print(f"[red]Invalid submissions file:[/red] {e}")
        raise typer.Exit(1)

    data_store = _open_store(settings, store)
    added = 0
    for submission in submissions:
        try:
            data_store.add_submission(submission)
            added += 1
        except StoreError as e:
            console.print(f"[yellow]Skipped:[/yellow] {e}")

    console.print(f"[green]Imported {added} of {len(submissions)} submissions[/green]")


@app.command()
def grade(
    submission_id: Annotated[str, typer.Argument(help="Submission to grade")],
    code_grader: Annotated[
        Optional[bool],
        typer.Option("--code-grader/--no-code-grader", help="Use the LLM code grader"),
    ] = None,
    store: StoreOption = None,
) -> None:
    """
    Grade one submission and show the result.
    """
    settings = get_settings()
    data_store = _open_store(settings, store)
    orchestrator = _build_orchestrator(settings, data_store, use_code_grader=code_grader)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(f"Grading submission {submission_id}...", total=None)
        outcome = orchestrator.grade_submission(submission_id)

    _display_outcome(outcome)
    if outcome.status != GradingStatus.GRADED:
        raise typer.Exit(1)


@app.command()
def regrade(
    store: StoreOption = None,
) -> None:
    """
    Regrade stuck submissions.

    Finds every submission that is ungraded, stuck in processing, or failed
    and grades it again.
    """
    settings = get_settings()
    data_store = _open_store(settings, store)
    sweeper = RegradeSweeper(
        data_store, _build_orchestrator(settings, data_store), settings=settings
    )

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Finding stuck submissions...", total=None)

        def on_progress(index: int, total: int, submission_id: str) -> None:
            progress.update(task, description=f"Grading {index}/{total}: {submission_id}")

        try:
            report = sweeper.run(progress=on_progress)
        except StoreError as e:
            progress.stop()
            console.print(f"[red]Store Error:[/red] {e}")
            raise typer.Exit(1)

    _display_report(report)


@app.command()
def show(
    submission_id: Annotated[str, typer.Argument(help="Submission to show")],
    store: StoreOption = None,
) -> None:
    """
    Show a submission's result as the learner sees it.

    Failed submissions are flagged for the administrator instead.
    """
    settings = get_settings()
    try:
        submission = _open_store(settings, store).get_submission(submission_id)
    except StoreError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if submission.grading_status == GradingStatus.FAILED:
        console.print(
            Panel(
                "[red]Grading failed[/red]\n"
                "Learners see 'Grading in progress' until the submission is regraded.\n"
                "Run [bold]exam-grader regrade[/bold] to retry it.\n"
                "The regrade report lists the failure reason.",
                title=f"Submission {submission.id}",
            )
        )
        return

    if submission.grading_status != GradingStatus.GRADED:
        console.print(Panel("Grading in progress", title=f"Submission {submission.id}"))
        return

    total = submission.total_score or 0
    maximum = submission.max_score or 0
    percentage = round(total / maximum * 100) if maximum else 0
    console.print(
        Panel(
            f"[bold]{total} / {maximum}[/bold] ({percentage}%)",
            title=f"Submission {submission.id}",
        )
    )
    _display_details(submission.grade_details)


@app.command()
def health(
    store: StoreOption = None,
) -> None:
    """
    Check if the grading system is operational.

    Verifies configuration and, when enabled, code grader connectivity.
    """
    try:
        settings = get_settings()
        console.print("[bold]Exam Grader Health Check[/bold]\n")

        console.print("[dim]Checking configuration...[/dim]")
        console.print(f"  Store: {store or settings.store_path}")
        console.print(f"  Code grader enabled: {settings.code_grader_enabled}")
        console.print(f"  API Base URL: {settings.llm_base_url}")
        console.print(f"  Model: {settings.llm_model}")
        console.print(f"  Timeout: {settings.code_grader_timeout}s")
        console.print(f"  Fallback: {settings.code_grader_fallback.value}")

        if not settings.code_grader_enabled:
            console.print("\n[green]Heuristic grading only; nothing else to check[/green]")
            return

        console.print("\n[dim]Checking API connectivity...[/dim]")
        grader = CodeQualityGrader(settings)

        if grader.health_check():
            console.print("[green]✓ API is reachable[/green]")
        else:
            console.print("[red]✗ API is not reachable[/red]")
            raise typer.Exit(1)

        console.print("\n[green]All systems operational[/green]")

    except (LLMError, ValidationError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def _display_outcome(outcome: GradingOutcome) -> None:
    """Display a grading outcome."""
    if outcome.skipped:
        console.print(f"[yellow]Skipped:[/yellow] {outcome.error}")
        return

    if outcome.status != GradingStatus.GRADED:
        console.print(
            Panel(f"[red]{outcome.error or 'Grading failed'}[/red]", title="Grading Failed")
        )
        return

    score_color = "green" if outcome.percentage >= 70 else "yellow" if outcome.percentage >= 50 else "red"
    console.print(
        Panel(
            f"[{score_color}][bold]{outcome.total_score} / {outcome.max_score}[/bold] "
            f"({outcome.percentage}%)[/{score_color}]",
            title="Final Score",
        )
    )
    _display_details(outcome.grade_details)

    if outcome.study_recommendations:
        console.print(
            Panel("\n".join(f"• {r}" for r in outcome.study_recommendations), title="Study Recommendations")
        )


def _display_details(details: dict) -> None:
    table = Table(title="Question Breakdown")
    table.add_column("Question", style="cyan")
    table.add_column("Type")
    table.add_column("Score", justify="right")
    table.add_column("Feedback")

    for question_id, grade in details.items():
        table.add_row(
            question_id,
            grade.question_type,
            f"{grade.score}/{grade.max_score}",
            grade.feedback,
        )

    console.print(table)


def _display_report(report: RegradeReport) -> None:
    if report.total == 0:
        console.print("[green]No stuck submissions found![/green]")
        return

    table = Table(title="Regrade Results")
    table.add_column("Graded", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Skipped", justify="right", style="yellow")
    table.add_column("Total", justify="right")
    table.add_row(str(report.success), str(report.failed), str(report.skipped), str(report.total))
    console.print(table)

    for failure in report.failures:
        console.print(f"  [red]✗[/red] {failure.submission_id}: {failure.reason}")


if __name__ == "__main__":
    app()
