"""TXSENSE command line interface."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

import typer
from rich.console import Console

from adapters.http_client import build_async_client
from adapters.json_exporter import export_explanation_json
from cli import doctor
from cli.ui_components import (
    build_package_panel,
    build_rate_limit_panel,
    build_transaction_panel,
    print_banner,
)
from core.config import AppSettings
from core.domain.errors import AdmissionDenied, CollaboratorError, InputError
from core.domain.models import PackageExplanation, TransactionExplanation
from core.services.explanation_pipeline import (
    Explanation,
    ExplanationPipeline,
    PipelineHooks,
    build_pipeline,
)

app = typer.Typer(no_args_is_help=True, help="Sui transactions and packages, decoded in plain english.")
app.add_typer(doctor.app, name="doctor")

_console = Console()

EXIT_FAILURE = 1
EXIT_RATE_LIMITED = 2


def _configure_logging(settings: AppSettings, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _run_pipeline(
    settings: AppSettings,
    action: Callable[[ExplanationPipeline, PipelineHooks], Awaitable[Explanation]],
) -> Explanation:
    with _console.status("Working...") as status:
        hooks = PipelineHooks(step=lambda message: status.update(message))
        async with build_async_client(settings) as client:
            pipeline = build_pipeline(settings=settings, client=client)
            return await action(pipeline, hooks)


def _execute(
    action: Callable[[ExplanationPipeline, PipelineHooks], Awaitable[Explanation]],
    *,
    json_path: Path | None,
    verbose: bool,
) -> None:
    settings = AppSettings()
    _configure_logging(settings, verbose)

    try:
        result = asyncio.run(_run_pipeline(settings, action))
    except InputError:
        _console.print("[red]Oops! That doesn't look right. Try a Sui link, digest or package id.[/red]")
        raise typer.Exit(code=EXIT_FAILURE)
    except AdmissionDenied as exc:
        _console.print(build_rate_limit_panel(exc.wait_seconds))
        raise typer.Exit(code=EXIT_RATE_LIMITED)
    except CollaboratorError as exc:
        _console.print(f"[red]Something went wrong:[/red] {exc}")
        raise typer.Exit(code=EXIT_FAILURE)

    if isinstance(result, TransactionExplanation):
        _console.print(build_transaction_panel(result, explorer_url=settings.explorer_url))
    elif isinstance(result, PackageExplanation):
        _console.print(build_package_panel(result))

    if json_path is not None:
        out = export_explanation_json(explanation=result, output_path=json_path)
        _console.print(f"[green]JSON saved to:[/green] {out}")


@app.command()
def explain(
    target: str = typer.Argument(..., help="Transaction digest, package id or explorer URL."),
    json_path: Optional[Path] = typer.Option(None, "--json", help="Also export the result as JSON."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
    banner: bool = typer.Option(True, "--banner/--no-banner", help="Show the welcome banner."),
) -> None:
    """Explain a transaction or package in plain english."""

    if banner:
        print_banner(_console)
    _execute(
        lambda pipeline, hooks: pipeline.explain(target, hooks=hooks),
        json_path=json_path,
        verbose=verbose,
    )


@app.command(name="random")
def random_transaction(
    json_path: Optional[Path] = typer.Option(None, "--json", help="Also export the result as JSON."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """Explain a random recent transaction."""

    _execute(
        lambda pipeline, hooks: pipeline.explain_random(hooks=hooks),
        json_path=json_path,
        verbose=verbose,
    )


def run() -> None:
    app()
