"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client
from adapters.rate_window_store import JsonTimestampStore
from adapters.sui_rpc import SuiRpcClient
from core.config import AppSettings, write_user_env_vars
from core.domain.errors import CollaboratorError
from core.services.admission import AdmissionController

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_rpc(settings: AppSettings) -> tuple[bool, str]:
    try:
        async with build_async_client(settings) as client:
            rpc = SuiRpcClient(client=client, url=settings.rpc_url)
            latest = await rpc.get_latest_checkpoint()
        return True, f"latest checkpoint {latest}"
    except CollaboratorError as exc:
        return False, str(exc)


def _check_rate_window(settings: AppSettings) -> tuple[str, str]:
    store = JsonTimestampStore(settings.resolved_rate_limit_path())
    status = AdmissionController(
        store,
        window_ms=settings.rate_limit_window_ms,
        max_requests=settings.rate_limit_max_requests,
    ).check()
    if status.allowed:
        return "OK", str(store.path)
    return "LIMITED", f"retry in {status.wait_seconds}s ({store.path})"


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="TXSENSE Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    if bool(settings.ai_api_key):
        table.add_row("AI key", "OK", "Remote AI enabled")
    else:
        table.add_row("AI key", "OPTIONAL", "No key set -> heuristic narrative fallback")
    table.add_row("AI base_url", "OK", settings.ai_base_url)
    table.add_row("AI model", "OK", settings.ai_model)

    # Connectivity (best-effort)
    ok_rpc, detail_rpc = asyncio.run(_check_rpc(settings))
    table.add_row("Sui RPC", "OK" if ok_rpc else "FAIL", f"{settings.rpc_url} ({detail_rpc})")

    rate_status, rate_detail = _check_rate_window(settings)
    table.add_row("Rate window", rate_status, rate_detail)

    _console.print(table)


@app.command(name="setup-ai")
def setup_ai() -> None:
    """Interactive AI setup (stores config in the user config .env)."""

    provider = typer.prompt(
        "AI provider",
        default="gemini",
        show_default=True,
    ).strip().lower()

    presets: dict[str, dict[str, str]] = {
        "gemini": {
            "TXSENSE_AI_BASE_URL": "https://generativelanguage.googleapis.com/v1beta/openai/",
            "TXSENSE_AI_MODEL": "gemini-2.5-flash",
        },
        "openai": {"TXSENSE_AI_BASE_URL": "https://api.openai.com/v1", "TXSENSE_AI_MODEL": "gpt-4o-mini"},
        "deepseek": {"TXSENSE_AI_BASE_URL": "https://api.deepseek.com", "TXSENSE_AI_MODEL": "deepseek-chat"},
        "groq": {"TXSENSE_AI_BASE_URL": "https://api.groq.com/openai/v1", "TXSENSE_AI_MODEL": "llama-3.1-8b-instant"},
        "ollama": {"TXSENSE_AI_BASE_URL": "http://localhost:11434/v1", "TXSENSE_AI_MODEL": "llama3"},
    }

    values = presets.get(provider, {}).copy()
    if not values:
        _console.print("[yellow]Unknown provider preset. You can still enter custom values.[/yellow]")

    base_url = typer.prompt("AI base URL", default=values.get("TXSENSE_AI_BASE_URL", ""), show_default=True).strip()
    model = typer.prompt("AI model", default=values.get("TXSENSE_AI_MODEL", ""), show_default=True).strip()
    api_key = typer.prompt("AI API key", hide_input=True, confirmation_prompt=False).strip()

    if not base_url or not model:
        raise typer.BadParameter("base_url and model are required")

    env_path = write_user_env_vars(
        {
            "TXSENSE_AI_BASE_URL": base_url,
            "TXSENSE_AI_MODEL": model,
            "TXSENSE_AI_API_KEY": api_key,
        }
    )

    _console.print(f"[green]Saved AI config to:[/green] {env_path}")
