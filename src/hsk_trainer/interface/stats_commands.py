"""`hsk stats` subgroup: show, reset, export and import progress."""

import asyncio
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Annotated

import typer

from hsk_trainer.application.factory import get_stores, get_vocabulary_store, load_progress
from hsk_trainer.application.stats import PracticeHistory, ProgressCalculator, StatsAggregator
from hsk_trainer.application.transfer import export_progress, import_progress
from hsk_trainer.domain.errors import TrainerError
from hsk_trainer.interface._common import _fail, _fail_on, _resolve_with_overrides

logger = logging.getLogger(__name__)

stats_app = typer.Typer(help="Learning statistics and progress files.", no_args_is_help=True)

DataDirOption = Annotated[
    Path | None, typer.Option("--data-dir", help="Directory holding progress files.")
]


def _save(stores, stats: StatsAggregator, history: PracticeHistory) -> None:
    async def run():
        await stores.stats.save(stats.snapshot())
        await stores.history.save(history.entries)

    try:
        asyncio.run(run())
    except TrainerError as e:
        _fail_on(e)


@stats_app.command("show")
def stats_show(
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
    data_dir: DataDirOption = None,
    vocabulary: Annotated[
        Path | None, typer.Option("--vocabulary", help="JSON or YAML word list.")
    ] = None,
):
    """Show totals, streaks and per-level progress."""
    config = _resolve_with_overrides(data_dir=data_dir, vocabulary_path=vocabulary)
    stores = get_stores(config)
    stats, history = load_progress(config, stores)
    words = get_vocabulary_store(config).load()
    report = ProgressCalculator().report(stats.snapshot(), history, words)
    s = report.stats

    if json_output:
        payload = {
            "stats": s.to_dict(),
            "accuracy": s.accuracy,
            "uniqueWords": report.unique_words,
            "studyTime": report.study_time,
            "levels": [asdict(lp) | {"percent": lp.percent} for lp in report.levels],
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    typer.echo(f"Studied:        {s.total_studied}")
    typer.echo(f"Correct:        {s.correct_answers}")
    typer.echo(f"Wrong:          {s.wrong_answers}")
    typer.echo(f"Accuracy:       {s.accuracy:.0%}")
    typer.echo(f"Current streak: {s.current_streak}")
    typer.echo(f"Best streak:    {s.best_streak}")
    typer.echo(f"Quizzes:        {s.quizzes_completed}")
    typer.echo(f"Unique words:   {report.unique_words}")
    typer.echo(f"Study time:     {report.study_time}")
    typer.echo("\nLevel progress:")
    for lp in report.levels:
        typer.echo(f"  HSK {lp.level}: {lp.known_words}/{lp.total_words} ({lp.percent:.0f}%)")


@stats_app.command("reset")
def stats_reset(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation.")] = False,
    data_dir: DataDirOption = None,
):
    """Reset statistics and practice history. Review schedules are kept."""
    if not yes and not typer.confirm("Reset all statistics and history?"):
        typer.echo("Aborted.")
        raise typer.Exit(1)

    config = _resolve_with_overrides(data_dir=data_dir)
    stores = get_stores(config)
    stats, history = load_progress(config, stores)
    stats.reset()
    history.clear()
    _save(stores, stats, history)
    typer.secho("Statistics reset.", fg="green")


@stats_app.command("export")
def stats_export(
    output: Annotated[Path, typer.Argument(help="File to write the export to.")],
    data_dir: DataDirOption = None,
):
    """Export statistics and practice history as JSON."""
    config = _resolve_with_overrides(data_dir=data_dir)
    stats, history = load_progress(config, get_stores(config))
    payload = export_progress(stats, history)
    try:
        output.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    except OSError as e:
        _fail(f"Could not write {output}: {e}")
    typer.secho(f"Exported {len(history)} history entries to {output}", fg="green")


@stats_app.command("import")
def stats_import(
    source: Annotated[Path, typer.Argument(help="Previously exported JSON file.")],
    data_dir: DataDirOption = None,
):
    """Replace statistics and practice history with an export file."""
    config = _resolve_with_overrides(data_dir=data_dir)
    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except OSError as e:
        _fail(f"Could not read {source}: {e}")
    except json.JSONDecodeError as e:
        _fail(f"Error importing data: {e}")

    try:
        stats, history = import_progress(payload, history_limit=config.history_limit)
    except TrainerError as e:
        _fail_on(e)

    _save(get_stores(config), stats, history)
    logger.info(f"Imported {len(history)} history entries from {source}")
    typer.secho("Data imported successfully!", fg="green")
