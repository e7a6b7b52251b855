"""Reverse lookup SuiNS (dirección -> nombre por defecto)."""

from __future__ import annotations

from adapters.sui_rpc import SuiRpcClient


class SuinsNameLookup:
    def __init__(self, rpc: SuiRpcClient) -> None:
        self._rpc = rpc

    async def reverse_lookup(self, address: str) -> str | None:
        names = await self._rpc.resolve_name_service_names(address, limit=1)
        return names[0] if names else None
