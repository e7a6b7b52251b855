"""Extracción de hechos de una respuesta cruda de `sui_getTransactionBlock`.

Por qué separado del pipeline:
- Son funciones puras sobre el JSON del RPC; el pipeline y el narrador las comparten.
"""

from __future__ import annotations

import re
from typing import Any

SUI_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{1,64}$")


def _tx_data(transaction: dict[str, Any]) -> dict[str, Any]:
    return (transaction.get("transaction") or {}).get("data") or {}


def owner_value(owner: Any) -> Any:
    """`{"AddressOwner": "0x.."}` -> "0x..", strings se devuelven tal cual."""

    if isinstance(owner, dict):
        values = list(owner.values())
        return values[0] if values else None
    return owner


def balance_changes(transaction: dict[str, Any]) -> list[dict[str, Any]]:
    changes = transaction.get("balanceChanges") or []
    return [c for c in changes if isinstance(c, dict)]


def collect_coin_types(transaction: dict[str, Any]) -> list[str]:
    seen: dict[str, None] = {}
    for change in balance_changes(transaction):
        coin_type = change.get("coinType")
        if isinstance(coin_type, str) and coin_type:
            seen.setdefault(coin_type, None)
    return list(seen)


def collect_addresses(transaction: dict[str, Any]) -> list[str]:
    """Sender, gas owner y owners de balance changes (solo direcciones Sui)."""

    data = _tx_data(transaction)
    candidates: list[Any] = [
        data.get("sender"),
        (data.get("gasData") or {}).get("owner"),
    ]
    candidates.extend(owner_value(c.get("owner")) for c in balance_changes(transaction))

    seen: dict[str, None] = {}
    for candidate in candidates:
        if isinstance(candidate, str) and SUI_ADDRESS_RE.match(candidate):
            seen.setdefault(candidate, None)
    return list(seen)


def prune_transaction(transaction: dict[str, Any]) -> dict[str, Any]:
    """Reduce el JSON del RPC a lo que importa para la narrativa.

    Se descartan bytecode, inputs y object changes: solo ruido para el modelo.
    """

    data = _tx_data(transaction)
    kind = data.get("transaction") or {}
    gas_data = data.get("gasData") or {}
    effects = transaction.get("effects") or {}

    commands: Any = kind.get("kind")
    if kind.get("kind") == "ProgrammableTransaction":
        commands = []
        for command in (kind.get("transactions") or [])[:15]:
            if not isinstance(command, dict) or not command:
                continue
            command_type = next(iter(command))
            move_call = command.get("MoveCall")
            call = None
            if isinstance(move_call, dict):
                call = {
                    "package": move_call.get("package"),
                    "module": move_call.get("module"),
                    "function": move_call.get("function"),
                }
            commands.append({"type": command_type, "call": call})

    events = []
    for event in (transaction.get("events") or [])[:10]:
        if not isinstance(event, dict):
            continue
        events.append(
            {
                "type": str(event.get("type") or "").split("::")[-1],
                "parsed": event.get("parsedJson"),
            }
        )

    return {
        "digest": transaction.get("digest"),
        "sender": data.get("sender"),
        "gasPayer": gas_data.get("owner"),
        "gasBudget": gas_data.get("budget"),
        "gasUsed": effects.get("gasUsed"),
        "commands": commands,
        "balanceChanges": [
            {
                "coinType": c.get("coinType"),
                "amount": c.get("amount"),
                "owner": owner_value(c.get("owner")),
            }
            for c in balance_changes(transaction)[:12]
        ],
        "events": events,
        "status": (effects.get("status") or {}).get("status"),
    }
