"""Resolución de nombres SuiNS (dirección -> nombre) con cache permanente."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from core.interfaces.cache import KeyedCache
from core.interfaces.sources import NameLookup

logger = logging.getLogger(__name__)


class NameResolver:
    def __init__(self, *, lookup: NameLookup, cache: KeyedCache[str]) -> None:
        self._lookup = lookup
        self._cache = cache

    async def _resolve_one(self, address: str) -> str | None:
        try:
            name = await self._lookup.reverse_lookup(address)
        except Exception as exc:
            logger.warning("Name lookup failed for %s: %s", address, exc)
            name = None

        if name:
            self._cache.put(address, name)
        else:
            name = None
            self._cache.tombstone(address)
        return name

    async def resolve(self, addresses: Iterable[str]) -> dict[str, str | None]:
        unique = list(dict.fromkeys(a for a in addresses if a))
        results: dict[str, str | None] = {}

        pending: list[str] = []
        for address in unique:
            if address in self._cache:
                results[address] = self._cache.get(address)
            else:
                pending.append(address)

        if pending:
            names = await asyncio.gather(*(self._resolve_one(a) for a in pending))
            results.update(zip(pending, names))

        return {address: results[address] for address in unique}
