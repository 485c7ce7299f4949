"""hsk CLI: root commands and subgroup registration."""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Annotated

import click
import typer

from hsk_trainer.application.config import resolve_config
from hsk_trainer.application.controller import ERROR, WARNING, PracticeEvent
from hsk_trainer.application.factory import (
    build_controller,
    get_stores,
    get_vocabulary_store,
    load_progress,
)
from hsk_trainer.application.quiz import QuizSession, generate_quiz_questions
from hsk_trainer.application.scheduler import review_status
from hsk_trainer.application.sequencer import SessionSequencer, progress
from hsk_trainer.domain.constants import DEFAULT_QUIZ_QUESTIONS, WRITE_TIMEOUT
from hsk_trainer.domain.errors import EmptySessionPool, TrainerError
from hsk_trainer.domain.models import (
    EmptySession,
    ExhaustionPolicy,
    Grade,
    Ordering,
    SessionComplete,
    SessionMode,
    VocabularyItem,
)
from hsk_trainer.interface._common import _fail_on, _resolve_with_overrides

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="hsk: Chinese vocabulary trainer with spaced repetition.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Register subgroups
# ---------------------------------------------------------------------------

from hsk_trainer.interface.matrix_commands import matrix  # noqa: E402
from hsk_trainer.interface.serve_commands import serve  # noqa: E402
from hsk_trainer.interface.stats_commands import stats_app  # noqa: E402
from hsk_trainer.interface.vocab_commands import vocab_app  # noqa: E402

app.add_typer(stats_app, name="stats")
app.add_typer(vocab_app, name="vocab")
app.command("matrix")(matrix)
app.command("serve")(serve)

config_app = typer.Typer(help="Manage hsk configuration.")
app.add_typer(config_app, name="config")


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Enable debug logging."
        ),
    ] = 0,
):
    """Global settings for hsk."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


# ---------------------------------------------------------------------------
# Shared options
# ---------------------------------------------------------------------------

DataDirOption = Annotated[
    Path | None, typer.Option("--data-dir", help="Directory holding progress files.")
]
VocabularyOption = Annotated[
    Path | None, typer.Option("--vocabulary", help="JSON or YAML word list.")
]
StorageOption = Annotated[
    str | None, typer.Option("--storage", help="Progress storage: json or memory.")
]
LevelOption = Annotated[
    int | None, typer.Option("--level", "-l", min=1, max=6, help="HSK level (default: all).")
]

GRADE_KEYS = {
    "1": Grade.AGAIN,
    "a": Grade.AGAIN,
    "again": Grade.AGAIN,
    "2": Grade.HARD,
    "h": Grade.HARD,
    "hard": Grade.HARD,
    "3": Grade.GOOD,
    "g": Grade.GOOD,
    "good": Grade.GOOD,
    "4": Grade.EASY,
    "e": Grade.EASY,
    "easy": Grade.EASY,
}
KNOWN_KEYS = {"y": Grade.GOOD, "yes": Grade.GOOD, "n": Grade.AGAIN, "no": Grade.AGAIN}


def format_question(item: VocabularyItem, direction: str) -> str:
    if direction == "meaning":
        return item.translation
    if direction == "pinyin":
        return item.pinyin
    return item.character


def format_answer(item: VocabularyItem) -> str:
    return f"{item.character}  {item.pinyin}  -  {item.translation}  (HSK {item.hsk_level})"


def _report_problems(event: PracticeEvent) -> None:
    if event.kind == WARNING:
        typer.secho(f"Warning: {event.error}", fg="yellow", err=True)
    elif event.kind == ERROR:
        typer.secho(f"Not allowed: {event.error}", fg="red", err=True)


def _ask_grade(simple: bool) -> Grade | None:
    keys = KNOWN_KEYS if simple else GRADE_KEYS
    prompt = (
        "Did you know it? [y/n, q to quit]"
        if simple
        else "Grade: [1] again [2] hard [3] good [4] easy (q to quit)"
    )
    while True:
        answer = typer.prompt(prompt).strip().lower()
        if answer == "q":
            return None
        if answer in keys:
            return keys[answer]
        typer.secho("Unrecognised answer.", fg="yellow")


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def practice(
    level: LevelOption = None,
    mode: Annotated[
        SessionMode | None, typer.Option(help="Practise all words or only those due.")
    ] = None,
    exhaustion: Annotated[
        ExhaustionPolicy | None,
        typer.Option(help="At the end of the queue: wrap around or finish."),
    ] = None,
    ordering: Annotated[Ordering | None, typer.Option(help="shuffle or priority.")] = None,
    direction: Annotated[
        str, typer.Option(help="Question side: char, pinyin or meaning.")
    ] = "char",
    simple: Annotated[
        bool, typer.Option("--simple", help="Know / don't know instead of four grades.")
    ] = False,
    limit: Annotated[int | None, typer.Option(min=1, help="Stop after this many cards.")] = None,
    data_dir: DataDirOption = None,
    vocabulary: VocabularyOption = None,
    storage: StorageOption = None,
):
    """[bold green]Practise[/bold green] flashcards with spaced repetition."""
    config = _resolve_with_overrides(
        level=level,
        session_mode=mode,
        exhaustion=exhaustion,
        ordering=ordering,
        data_dir=data_dir,
        vocabulary_path=vocabulary,
        storage=storage,
    )
    words = get_vocabulary_store(config).load()
    controller = build_controller(config)
    controller.subscribe(_report_problems)

    built = controller.start(words, mode=config.session_mode, filter_level=config.level)
    if isinstance(built, EmptySession):
        _fail_on(EmptySessionPool(built))

    graded = 0
    while controller.current_item is not None:
        item = controller.current_item
        done = int(progress(controller.queue) * len(controller.queue))
        typer.echo(f"\n[{done}/{len(controller.queue)}]  {format_question(item, direction)}")
        if typer.prompt("Enter to reveal, q to quit", default="", show_default=False) == "q":
            break

        controller.reveal()
        typer.echo(format_answer(item))
        grade = _ask_grade(simple)
        if grade is None:
            break
        controller.grade(grade)
        graded += 1
        if limit and graded >= limit:
            break
        controller.advance_to_next()

    if not controller.wait_for_writes(timeout=WRITE_TIMEOUT):
        typer.secho("Warning: progress is still being saved", fg="yellow", err=True)

    if isinstance(controller.outcome, SessionComplete):
        typer.secho("\nSession complete!", fg="green")

    s = controller.session_stats.snapshot()
    typer.echo(
        f"\nReviewed {s.total_studied} cards: {s.correct_answers} correct, "
        f"{s.wrong_answers} wrong, best streak {s.best_streak}."
    )


@app.command()
def quiz(
    level: LevelOption = None,
    questions: Annotated[
        int, typer.Option("--questions", "-n", min=1, help="Number of questions.")
    ] = DEFAULT_QUIZ_QUESTIONS,
    data_dir: DataDirOption = None,
    vocabulary: VocabularyOption = None,
    storage: StorageOption = None,
):
    """Take a multiple-choice [bold]quiz[/bold]."""
    config = _resolve_with_overrides(
        level=level, data_dir=data_dir, vocabulary_path=vocabulary, storage=storage
    )
    words = get_vocabulary_store(config).load()
    pool = [w for w in words if config.level is None or w.hsk_level == config.level]

    try:
        question_list = generate_quiz_questions(pool, questions)
    except TrainerError as e:
        _fail_on(e)

    stores = get_stores(config)
    stats, history = load_progress(config, stores)
    session = QuizSession(question_list, stats=stats, history=history)

    for number, question in enumerate(question_list, start=1):
        typer.echo(f"\nQuestion {number}/{len(question_list)}:  {question.prompt}")
        for i in range(len(question.options)):
            typer.echo(f"  {i + 1}. {question.option_label(i)}")
        choice = typer.prompt("Answer", type=click.IntRange(1, len(question.options)))
        session.select(choice - 1)
        if session.submit():
            typer.secho("Correct!", fg="green")
        else:
            right = question.option_label(question.correct_index)
            typer.secho(f"Wrong. Answer: {right}", fg="red")
        session.next_question()

    result = session.finish()
    typer.echo(f"\nScore: {result.score}/{result.total} ({result.percentage}%)")

    async def save():
        await stores.stats.save(stats.snapshot())
        await stores.history.save(history.entries)

    try:
        asyncio.run(save())
    except TrainerError as e:
        typer.secho(f"Warning: could not save progress: {e}", fg="yellow", err=True)


@app.command()
def due(
    level: LevelOption = None,
    show: Annotated[int, typer.Option(help="List at most this many words.")] = 20,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
    data_dir: DataDirOption = None,
    vocabulary: VocabularyOption = None,
    storage: StorageOption = None,
):
    """Show words that are due for review."""
    config = _resolve_with_overrides(
        level=level, data_dir=data_dir, vocabulary_path=vocabulary, storage=storage
    )
    words = get_vocabulary_store(config).load()
    pool = [w for w in words if config.level is None or w.hsk_level == config.level]
    stores = get_stores(config)
    sequencer = SessionSequencer(review_store=stores.reviews)
    due_words = sequencer.due_items(pool)

    rows = []
    for word in due_words:
        status = review_status(stores.reviews.get(word.id))
        rows.append(
            {
                "character": word.character,
                "pinyin": word.pinyin,
                "level": word.hsk_level,
                "new": status.is_new,
                "repetitions": status.repetitions,
            }
        )

    if json_output:
        typer.echo(json.dumps({"due": len(rows), "words": rows}, ensure_ascii=False, indent=2))
        return

    new_count = sum(1 for r in rows if r["new"])
    typer.echo(f"Due: {len(rows)} of {len(pool)} words ({new_count} new)")
    for row in rows[:show]:
        tag = "new" if row["new"] else f"x{row['repetitions']}"
        typer.echo(f"  {row['character']}  {row['pinyin']}  HSK {row['level']}  [{tag}]")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    d = config.model_dump(mode="json")
    typer.echo(json.dumps(d, indent=2))
