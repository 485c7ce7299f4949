"""`hsk vocab` subgroup."""

import json
from pathlib import Path
from typing import Annotated

import typer

from hsk_trainer.application.factory import get_stores, get_vocabulary_store
from hsk_trainer.application.scheduler import review_status
from hsk_trainer.infrastructure.vocabulary import search
from hsk_trainer.interface._common import _resolve_with_overrides

vocab_app = typer.Typer(help="Browse the vocabulary.", no_args_is_help=True)


@vocab_app.command("list")
def vocab_list(
    level: Annotated[
        int | None, typer.Option("--level", "-l", min=1, max=6, help="HSK level.")
    ] = None,
    search_term: Annotated[
        str | None, typer.Option("--search", "-s", help="Match character, pinyin or meaning.")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
    data_dir: Annotated[
        Path | None, typer.Option("--data-dir", help="Directory holding progress files.")
    ] = None,
    vocabulary: Annotated[
        Path | None, typer.Option("--vocabulary", help="JSON or YAML word list.")
    ] = None,
):
    """List words with their review status."""
    config = _resolve_with_overrides(level=level, data_dir=data_dir, vocabulary_path=vocabulary)
    words = get_vocabulary_store(config).load()
    if config.level is not None:
        words = [w for w in words if w.hsk_level == config.level]
    if search_term:
        words = search(words, search_term)

    reviews = get_stores(config).reviews
    rows = []
    for w in words:
        status = review_status(reviews.get(w.id))
        rows.append(
            {
                "id": w.id,
                "character": w.character,
                "pinyin": w.pinyin,
                "translation": w.translation,
                "level": w.hsk_level,
                "isNew": status.is_new,
                "isDue": status.is_due,
                "daysUntilDue": status.days_until_due,
            }
        )

    if json_output:
        typer.echo(json.dumps(rows, ensure_ascii=False, indent=2))
        return

    if not rows:
        typer.secho("No words found.", fg="yellow")
        return

    for r in rows:
        if r["isNew"]:
            status_text = "new"
        elif r["isDue"]:
            status_text = "due"
        else:
            status_text = f"in {r['daysUntilDue']}d"
        typer.echo(
            f"{r['character']:<6} {r['pinyin']:<14} HSK {r['level']}  "
            f"{r['translation']}  [{status_text}]"
        )
    typer.echo(f"\n{len(rows)} words")
