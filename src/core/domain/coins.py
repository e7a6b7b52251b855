"""Helpers de presentación para coins y direcciones.

Viven en el dominio porque tanto la CLI como el prompt de IA necesitan el mismo
formato (símbolos derivados, cantidades con decimales, direcciones abreviadas).
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from core.domain.models import CoinMetadata

# Decimales asumidos cuando ninguna fuente resolvió el coin (SUI usa 9).
DEFAULT_DECIMALS = 9
MIST_PER_SUI = 10**9


def shorten_address(address: str) -> str:
    if len(address) <= 12:
        return address
    return f"{address[:6]}...{address[-4:]}"


def symbol_from_coin_type(coin_type: str) -> str:
    """'0x2::sui::SUI' -> 'SUI' (fallback cuando no hay metadata)."""

    last = coin_type.split("::")[-1].strip()
    # Tipos genéricos: '0x..::lp::LP<0x2::sui::SUI, ...>' -> 'LP'
    return last.split("<", 1)[0] or "COIN"


def coin_display(coin_type: str, meta: CoinMetadata | None) -> tuple[str, str]:
    """Devuelve (símbolo, nombre) para mostrar un coin, resuelto o no."""

    if meta is not None and meta.symbol:
        return meta.symbol, meta.name
    return symbol_from_coin_type(coin_type), "Unregistered Asset"


def format_amount(raw_amount: str | int, decimals: int | None = None) -> str:
    """Convierte una cantidad cruda (entero en unidades mínimas) a texto decimal."""

    places = DEFAULT_DECIMALS if decimals is None else decimals
    try:
        value = Decimal(str(raw_amount))
    except (InvalidOperation, ValueError):
        return str(raw_amount)
    scaled = value.scaleb(-places)
    text = format(scaled.normalize(), "f") if scaled != 0 else "0"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def gas_used_mist(transaction: dict[str, Any]) -> int:
    """Gas neto en MIST: computation + storage - rebate."""

    effects = transaction.get("effects") or {}
    gas = effects.get("gasUsed") or {}
    try:
        return (
            int(gas.get("computationCost") or 0)
            + int(gas.get("storageCost") or 0)
            - int(gas.get("storageRebate") or 0)
        )
    except (TypeError, ValueError):
        return 0


def mist_to_sui(mist: int) -> str:
    return format_amount(mist, 9)
