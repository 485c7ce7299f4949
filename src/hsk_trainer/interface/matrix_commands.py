"""hsk matrix: the timed character-matching game."""

import random
from pathlib import Path
from typing import Annotated

import click
import typer

from hsk_trainer.application.factory import get_score_repository, get_vocabulary_store
from hsk_trainer.application.leaderboard import ScoreBoard
from hsk_trainer.application.matrix_game import (
    DIFFICULTIES,
    Difficulty,
    MatrixGame,
    MatrixResult,
    MatrixRound,
)
from hsk_trainer.domain.constants import MATRIX_WRONG_PENALTY
from hsk_trainer.domain.errors import TrainerError
from hsk_trainer.interface._common import _fail_on, _resolve_with_overrides


def format_grid(current: MatrixRound, grid_size: int) -> str:
    """Numbered cells, one grid row per line."""
    width = len(str(len(current.cells)))
    rows = []
    for row in range(grid_size):
        cells = current.cells[row * grid_size : (row + 1) * grid_size]
        start = row * grid_size + 1
        rows.append(
            "  ".join(f"{start + i:>{width}}.{char}" for i, char in enumerate(cells))
        )
    return "\n".join(rows)


def _save_score(board: ScoreBoard, result: MatrixResult, user_name: str | None) -> None:
    previous = board.leaderboard(level=result.hsk_level, difficulty=result.difficulty.value, limit=1)
    try:
        board.submit(result.to_submission(user_id=user_name, user_name=user_name))
    except TrainerError as e:
        typer.secho(f"Warning: could not save score: {e}", fg="yellow", err=True)
        return
    if not previous or result.score > previous[0].score:
        typer.secho("New record!", fg="green", bold=True)


def matrix(
    level: Annotated[
        int, typer.Option("--level", "-l", min=1, max=6, help="HSK level.")
    ] = 1,
    difficulty: Annotated[
        Difficulty, typer.Option("--difficulty", "-d", help="Grid size and time limit.")
    ] = Difficulty.NORMAL,
    name: Annotated[
        str | None, typer.Option("--name", help="Player name for the leaderboard.")
    ] = None,
    seed: Annotated[
        int | None, typer.Option("--seed", help="Random seed, for reproducible grids.")
    ] = None,
    data_dir: Annotated[
        Path | None, typer.Option("--data-dir", help="Directory holding progress files.")
    ] = None,
    vocabulary: Annotated[
        Path | None, typer.Option("--vocabulary", help="JSON or YAML word list.")
    ] = None,
    storage: Annotated[
        str | None, typer.Option("--storage", help="Progress storage: json or memory.")
    ] = None,
):
    """Play the [bold]matrix[/bold] game: find the character for the pinyin shown."""
    config = _resolve_with_overrides(
        data_dir=data_dir, vocabulary_path=vocabulary, storage=storage
    )
    words = get_vocabulary_store(config).load()
    try:
        game = MatrixGame(
            words,
            level=level,
            difficulty=difficulty,
            rng=random.Random(seed) if seed is not None else None,
        )
    except TrainerError as e:
        _fail_on(e)

    settings = DIFFICULTIES[game.difficulty]
    typer.echo(
        f"HSK {level}, {game.difficulty.value}: {settings.grid_size}x{settings.grid_size} grid, "
        f"{settings.time_limit}s. Enter a cell number, 0 to stop."
    )

    current = game.start()
    while current is not None:
        typer.echo(
            f"\n{current.word.pinyin}  ({current.word.translation})"
            f"    score {game.score}, {game.time_remaining:.0f}s left"
        )
        typer.echo(format_grid(current, settings.grid_size))
        choice = typer.prompt("Cell", type=click.IntRange(0, len(current.cells)))
        if choice == 0:
            break
        if not game.is_playing:
            typer.secho("Time's up!", fg="yellow")
            break

        answer = game.answer(choice - 1)
        if answer.correct:
            typer.secho(f"Correct! +{answer.points}", fg="green")
        else:
            typer.secho(
                f"Wrong: {current.word.character} was cell {answer.correct_position + 1}. "
                f"-{MATRIX_WRONG_PENALTY}",
                fg="red",
            )
        current = game.round if game.is_playing else None

    result = game.finish()
    typer.echo(
        f"\nScore: {result.score}  ({result.correct_answers} correct, "
        f"{result.wrong_answers} wrong, best streak {result.max_streak}, "
        f"accuracy {result.accuracy}%)"
    )
    if result.score <= 0:
        typer.echo("No score to save.")
        return
    _save_score(ScoreBoard(get_score_repository(config)), result, name)
