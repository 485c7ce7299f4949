"""Helpers shared by the CLI command modules."""

from typing import Any, NoReturn

import typer

from hsk_trainer.application.config import AppConfig, resolve_config
from hsk_trainer.domain.errors import TrainerError


def _resolve_with_overrides(**overrides: Any) -> AppConfig:
    """Resolve config, letting explicitly passed CLI options win."""
    try:
        return resolve_config(overrides)
    except ValueError as e:
        _fail(f"Invalid configuration: {e}", code=2)


def humanize_error(msg: str) -> str:
    """Translate parser errors from vocabulary files into friendlier hints."""
    if "expected <block end>" in msg:
        return (
            "Indentation Error: a YAML list item is indented inconsistently.\n"
            f"Original: {msg}"
        )
    if "scanner error" in msg or "did not find expected key" in msg:
        return f"Syntax Error: the YAML vocabulary file could not be parsed.\nOriginal: {msg}"
    if "Expecting value" in msg or "Expecting property name" in msg:
        return f"Syntax Error: the JSON vocabulary file could not be parsed.\nOriginal: {msg}"
    if "found duplicate key" in msg:
        return f"Duplicate Key: a word entry repeats a field.\nOriginal: {msg}"
    return msg


def _fail(message: str, code: int = 1) -> NoReturn:
    typer.secho(message, fg="red", err=True)
    raise typer.Exit(code)


def _fail_on(error: TrainerError) -> NoReturn:
    _fail(humanize_error(str(error)))
