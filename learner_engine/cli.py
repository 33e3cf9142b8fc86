"""
Learner Engine CLI - inspect the models from the terminal.

Usage:
    learner-engine simulate --theta 1.0 --steps 20     # Simulated student session
    learner-engine simulate --bank bank.json           # ... over your own question bank
    learner-engine estimate responses.json --method mle
    learner-engine schedule 4,4,5,2,4 --algorithm fsrs # Preview review intervals
"""

from __future__ import annotations

import random
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Annotated, NoReturn

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from learner_engine.adaptive import irt
from learner_engine.adaptive.orchestrator import (
    AdaptiveOrchestrator,
    InteractionSession,
    Recommendation,
)
from learner_engine.config import get_settings
from learner_engine.core.exceptions import LearnerEngineError
from learner_engine.core.models import Attempt, ItemParameters, Question, StudentState
from learner_engine.log_config import configure_logging
from learner_engine.scheduling import get_scheduler
from learner_engine.schemas import QuestionBank, ResponseHistory

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="learner-engine",
    help="Adaptive learner modeling: IRT, knowledge tracing and spaced repetition",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()

SYNTHETIC_TOPICS = ("fractions", "equations", "functions")

RECOMMENDATION_STYLES = {
    Recommendation.CONTINUE_TOPIC: "cyan",
    Recommendation.SWITCH_TOPIC: "green",
    Recommendation.REVIEW_WEAK_TOPIC: "yellow",
    Recommendation.REMEDIATE_PREREQUISITE: "red",
}


def _fail(message: str) -> NoReturn:
    console.print(f"[red]Error:[/] {message}")
    raise typer.Exit(code=1)


def synthetic_bank(per_topic: int, rng: random.Random) -> list[Question]:
    """Random 2PL items spread over a few topics, later topics gated on earlier ones."""
    questions = []
    for index, topic_id in enumerate(SYNTHETIC_TOPICS):
        prerequisites = (SYNTHETIC_TOPICS[index - 1],) if index > 0 else ()
        for n in range(per_topic):
            questions.append(
                Question(
                    id=f"{topic_id}-{n + 1:02d}",
                    topic_id=topic_id,
                    item=ItemParameters(
                        difficulty=round(rng.uniform(-2.5, 2.5), 2),
                        discrimination=round(rng.uniform(0.7, 1.8), 2),
                    ),
                    prerequisites=prerequisites,
                )
            )
    return questions


def _load_bank(path: Path) -> list[Question]:
    try:
        return QuestionBank.model_validate_json(path.read_text(encoding="utf-8")).to_questions()
    except (OSError, ValidationError, LearnerEngineError) as e:
        _fail(f"Could not load question bank {path}: {e}")


# =============================================================================
# Commands
# =============================================================================


@app.command()
def simulate(
    theta: Annotated[
        float, typer.Option("--theta", "-t", help="True ability of the simulated student")
    ] = 0.0,
    steps: Annotated[
        int, typer.Option("--steps", "-n", min=1, help="Number of questions to answer")
    ] = 15,
    bank: Annotated[
        Path | None, typer.Option("--bank", "-b", help="JSON question bank ({\"questions\": [...]})")
    ] = None,
    algorithm: Annotated[
        str | None, typer.Option("--algorithm", "-a", help="Scheduler: sm2 or fsrs")
    ] = None,
    seed: Annotated[int, typer.Option("--seed", help="Random seed")] = 7,
) -> None:
    """
    Run a simulated student through an adaptive session.

    Answers are drawn from the 3PL model at the true ability, so the
    estimated theta should drift toward --theta.
    """
    rng = random.Random(seed)
    questions = _load_bank(bank) if bank else synthetic_bank(10, rng)

    settings = get_settings()
    try:
        scheduler = get_scheduler(algorithm, settings)
    except ValueError as e:
        _fail(str(e))
    engine = AdaptiveOrchestrator.from_settings(settings)
    engine.scheduler = scheduler

    session = InteractionSession(engine, StudentState())
    now = datetime.now(UTC)

    table = Table(title=f"Simulated session (true theta = {theta:+.2f}, {scheduler.name})")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Question", style="cyan")
    table.add_column("b", justify="right")
    table.add_column("Correct", justify="center")
    table.add_column("Theta", justify="right")
    table.add_column("SE", justify="right")
    table.add_column("Mastery", justify="right")
    table.add_column("Next review", justify="right")
    table.add_column("Recommendation")

    for step in range(1, steps + 1):
        question = session.select(questions, now=now)
        if question is None:
            console.print("[yellow]Question bank exhausted[/]")
            break

        is_correct = rng.random() < irt.probability_correct(theta, question.item)
        attempt = Attempt(
            is_correct=is_correct,
            timestamp=now,
            time_taken_ms=rng.uniform(0.4, 1.6) * question.expected_time_ms,
        )
        analysis = session.submit(attempt)
        session.commit()

        style = RECOMMENDATION_STYLES[analysis.recommendation]
        se = analysis.ability.standard_error
        table.add_row(
            str(step),
            question.id,
            f"{question.item.difficulty:+.2f}",
            "[green]✓[/]" if is_correct else "[red]✗[/]",
            f"{analysis.ability.theta:+.2f}",
            f"{se:.2f}" if se is not None else "-",
            f"{analysis.mastery:.2f}",
            f"{analysis.card.interval_days}d",
            f"[{style}]{analysis.recommendation.value}[/]",
        )
        now += timedelta(minutes=2)

    console.print(table)

    state = session.state
    summary = Table(title="Topic mastery")
    summary.add_column("Topic", style="cyan")
    summary.add_column("Mastery", justify="right")
    summary.add_column("Attempts", justify="right")
    summary.add_column("Status")
    for topic_id in sorted(state.mastery):
        status = engine.topic_status(state, topic_id)
        summary.add_row(
            topic_id,
            f"{state.mastery[topic_id]:.2f}",
            str(state.practice_count(topic_id)),
            f"[{status.color}]{status.display_name}[/]",
        )
    console.print(summary)

    console.print(
        Panel(
            f"True theta: {theta:+.2f}\n"
            f"Estimated theta: {state.ability.theta:+.2f}\n"
            f"Responses: {len(state.responses)}",
            title="Ability",
            border_style="cyan",
        )
    )


@app.command()
def estimate(
    path: Annotated[Path, typer.Argument(help="JSON response history ({\"responses\": [...]})")],
    method: Annotated[
        str, typer.Option("--method", "-m", help="Estimator: eap or mle")
    ] = "eap",
) -> None:
    """Estimate ability from a scored response history."""
    try:
        history = ResponseHistory.model_validate_json(path.read_text(encoding="utf-8"))
        responses = history.to_responses()
    except (OSError, ValidationError, LearnerEngineError) as e:
        _fail(f"Could not load responses {path}: {e}")

    settings = get_settings()
    items = [r.item for r in responses]

    if method == "eap":
        result = irt.update_ability_eap(
            responses,
            prior_mean=settings.irt_prior_mean,
            prior_sd=settings.irt_prior_sd,
            points=settings.irt_eap_points,
            theta_min=settings.irt_theta_min,
            theta_max=settings.irt_theta_max,
        )
        theta, se = result.ability, result.standard_error
    elif method == "mle":
        theta = irt.update_ability_mle(
            history.theta0,
            responses,
            max_iter=settings.irt_mle_max_iter,
            tol=settings.irt_mle_tolerance,
            theta_min=settings.irt_theta_min,
            theta_max=settings.irt_theta_max,
        )
        info = irt.total_information(theta, items)
        se = info**-0.5 if info > 0 else None
    else:
        _fail(f"Unknown method {method!r} (expected 'eap' or 'mle')")

    table = Table(title=f"Ability estimate ({method.upper()})")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Responses", str(len(responses)))
    table.add_row("Correct", str(sum(1 for r in responses if r.is_correct)))
    table.add_row("Theta", f"{theta:+.3f}")
    table.add_row("Standard error", f"{se:.3f}" if se is not None else "-")
    table.add_row("Reliability", f"{irt.reliability_at_ability(theta, items):.3f}")
    table.add_row("Author difficulty (1-10)", f"{max(1.0, min(10.0, irt.irt_to_difficulty(theta))):.1f}")
    console.print(table)


@app.command()
def schedule(
    ratings: Annotated[str, typer.Argument(help="Comma-separated ratings, e.g. 4,4,5,2,4")],
    algorithm: Annotated[
        str | None, typer.Option("--algorithm", "-a", help="Scheduler: sm2 (0-5) or fsrs (1-4)")
    ] = None,
    gap: Annotated[
        bool, typer.Option("--on-time/--same-day", help="Review each card on its due date")
    ] = True,
) -> None:
    """Preview the intervals a scheduler produces for a sequence of ratings."""
    try:
        grades = [int(r) for r in ratings.split(",") if r.strip()]
    except ValueError:
        _fail(f"Ratings must be integers, got {ratings!r}")

    try:
        scheduler = get_scheduler(algorithm)
    except ValueError as e:
        _fail(str(e))

    now = datetime.now(UTC).replace(microsecond=0)
    card = scheduler.new_card("preview")

    table = Table(title=f"{scheduler.name.upper()} schedule")
    table.add_column("Review", style="dim", justify="right")
    table.add_column("Rating", justify="center")
    table.add_column("Interval", justify="right")
    table.add_column("Ease / Stability", justify="right")
    table.add_column("State")
    table.add_column("Due", style="green")

    for n, grade in enumerate(grades, start=1):
        try:
            card = scheduler.schedule(card, grade, now)
        except LearnerEngineError as e:
            _fail(str(e))
        memory = f"{card.ease_factor:.2f}" if scheduler.name == "sm2" else f"{card.stability:.2f}"
        table.add_row(
            str(n),
            str(grade),
            f"{card.interval_days}d",
            memory,
            card.state.value,
            card.due_date.date().isoformat(),
        )
        if gap:
            now = card.due_date

    console.print(table)


# =============================================================================
# Entry Point
# =============================================================================


@app.callback()
def callback(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show engine decisions (INFO logs)")
    ] = False,
) -> None:
    """
    Adaptive learner modeling engine.

    \b
    Models:
      IRT   - ability (theta) estimation and item selection
      BKT   - per-topic mastery
      SM-2 / FSRS - review scheduling
    """
    configure_logging(level="INFO" if verbose else None)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
