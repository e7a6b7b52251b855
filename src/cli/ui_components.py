"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- El render es puro: recibe un resultado terminado y no hace I/O de red.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.catalog import known_package_name
from core.domain.coins import coin_display, format_amount, gas_used_mist, mist_to_sui, shorten_address
from core.domain.models import PackageExplanation, TransactionExplanation
from core.services.transaction_facts import balance_changes, owner_value


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida."""

    title = Text("TXSENSE", style="bold cyan")
    subtitle = Text("Blockchain interactions, decoded in plain english.", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_balance_table(result: TransactionExplanation) -> Table:
    table = Table(title="Balance Changes")
    table.add_column("Owner", style="cyan", no_wrap=True)
    table.add_column("Amount", style="white", justify="right")
    table.add_column("Token", style="magenta")

    names = result.names
    for change in balance_changes(result.raw):
        coin_type = str(change.get("coinType") or "")
        meta = result.coin_metadata.get(coin_type)
        symbol, name = coin_display(coin_type, meta)
        amount = format_amount(change.get("amount") or "0", meta.decimals if meta else None)
        owner = owner_value(change.get("owner"))
        owner_label = str(owner) if owner is not None else "-"
        if isinstance(owner, str):
            owner_label = names.get(owner) or shorten_address(owner)
        style = "green" if not amount.startswith("-") else "red"
        table.add_row(owner_label, Text(amount, style=style), f"{symbol} ({name})")
    return table


def build_parties_table(result: TransactionExplanation) -> Table:
    table = Table(title="Involved Parties")
    table.add_column("Role", style="cyan", no_wrap=True)
    table.add_column("Address", style="white")
    table.add_column("Label", style="yellow")
    for party in result.involved_parties:
        label = party.name or known_package_name(party.address) or party.label or ""
        table.add_row(party.role, shorten_address(party.address), label)
    return table


def build_transaction_panel(result: TransactionExplanation, *, explorer_url: str) -> Panel:
    """Panel principal del reporte de una transacción."""

    raw = result.raw
    status = ((raw.get("effects") or {}).get("status") or {}).get("status") or "unknown"
    digest = str(raw.get("digest") or "")
    sender = ((raw.get("transaction") or {}).get("data") or {}).get("sender")

    header = Text()
    header.append("✨ Verified" if status == "success" else "❌ Failed", style="bold")
    if result.protocol:
        header.append(f"   🏦 {result.protocol}", style="cyan")
    if result.action_type:
        header.append(f"   ⚡ {result.action_type}", style="magenta")
    if isinstance(sender, str):
        label = result.sender_name or shorten_address(sender)
        header.append(f"   👤 {label}")

    body = Text()
    body.append(result.summary.strip() + "\n\n", style="bold")
    body.append("Technical Breakdown\n", style="dim")
    body.append(result.technical_play_by_play.strip() + "\n")
    body.append(f"\n⛽ Gas: {mist_to_sui(gas_used_mist(raw))} SUI", style="dim")
    if digest:
        body.append(f"\n🔗 {explorer_url.rstrip('/')}/txblock/{digest}", style="dim")

    parts: list[object] = [header, Text(""), body]
    if balance_changes(raw):
        parts.append(build_balance_table(result))
    if result.involved_parties:
        parts.append(build_parties_table(result))
    if result.mermaid_code:
        parts.append(Panel(Text(result.mermaid_code), title="Flow (mermaid)", border_style="dim"))

    return Panel(Group(*parts), title=Text("TxSense Report", style="bold yellow"), border_style="yellow")


def build_package_panel(result: PackageExplanation) -> Panel:
    body = Text()
    body.append(f"📦 {result.package_id}\n\n", style="dim")
    body.append(result.summary.strip() + "\n")
    if result.modules:
        body.append("\nModules:\n", style="bold")
        for module in result.modules:
            body.append(f"- {module}\n")
    if result.capabilities:
        body.append("\nCapabilities:\n", style="bold")
        for capability in result.capabilities:
            body.append(f"- {capability}\n")
    return Panel(body, title=Text("Package Report", style="bold yellow"), border_style="yellow")


def build_rate_limit_panel(wait_seconds: int) -> Panel:
    body = Text()
    body.append("Whoa, slow down!\n\n", style="bold")
    body.append("You're sniffing the chain too fast. You can go again in ")
    body.append(f"{wait_seconds} seconds", style="bold magenta")
    body.append(".")
    return Panel(body, border_style="yellow")
