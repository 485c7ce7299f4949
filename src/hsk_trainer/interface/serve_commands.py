"""`hsk serve`: run the HTTP API."""

from typing import Annotated

import typer

from hsk_trainer.interface._common import _resolve_with_overrides


def serve(
    port: Annotated[int | None, typer.Option(help="Port to bind the server to.")] = None,
    host: Annotated[str | None, typer.Option(help="Host to bind the server to.")] = None,
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Start the HTTP API (vocabulary, stats and matrix-game scores)."""
    import uvicorn

    config = _resolve_with_overrides(host=host, port=port)
    typer.secho(f"Serving on http://{config.host}:{config.port}", fg="green")
    uvicorn.run("hsk_trainer.server:app", host=config.host, port=config.port, reload=reload)
