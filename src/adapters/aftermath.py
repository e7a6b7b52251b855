"""Fuente primaria de metadata de coins: API batch de Aftermath.

Contrato:
- POST `{"coins": [...]}` con todos los coin types de una vez.
- La respuesta es un array en el mismo orden que el request; un elemento
  null/ausente significa que Aftermath no conoce ese coin.
"""

from __future__ import annotations

from typing import Any, Sequence

import httpx

from adapters.http_client import post_json


class AftermathMetadataSource:
    name = "aftermath"

    def __init__(self, *, client: httpx.AsyncClient, url: str) -> None:
        self._client = client
        self._url = url

    async def fetch_batch(self, coin_types: Sequence[str]) -> list[dict[str, Any] | None]:
        data = await post_json(self._client, self._url, {"coins": list(coin_types)})
        if not isinstance(data, list):
            raise ValueError("Aftermath metadata response is not a list")

        out: list[dict[str, Any] | None] = []
        for item in data:
            if not isinstance(item, dict):
                out.append(None)
                continue
            out.append(
                {
                    "name": item.get("name"),
                    "symbol": item.get("symbol"),
                    "decimals": item.get("decimals"),
                    "iconUrl": item.get("iconUrl") or None,
                }
            )
        return out
