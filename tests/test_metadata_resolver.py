"""
Tests for the two-source coin metadata resolver (batching, tombstones, merge).
"""

from __future__ import annotations

import pytest

from adapters.memory_cache import MemoryCache
from core.domain.catalog import FALLBACK_COIN_ICONS
from core.services.metadata_resolver import MetadataResolver
from tests.conftest import SUI, USDC, FakeMetadataSource

COIN_A = "0xaaa::alpha::ALPHA"
COIN_B = "0xbbb::beta::BETA"

ALPHA_PRIMARY = {"name": "Alpha", "symbol": "ALPHA", "decimals": 6, "iconUrl": "https://icons/alpha.png"}
ALPHA_SECONDARY = {"name": "Alpha (rpc)", "symbol": "ALP", "decimals": 8, "iconUrl": None}
BETA_SECONDARY = {"name": "Beta", "symbol": "BETA", "decimals": 9, "iconUrl": "https://icons/beta.png", "description": "b"}


def _resolver(primary, secondary=None, **kwargs) -> MetadataResolver:
    return MetadataResolver(
        primary=primary,
        primary_cache=MemoryCache(),
        secondary=secondary,
        secondary_cache=MemoryCache() if secondary is not None else None,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_single_batch_call_for_all_uncached_keys():
    primary = FakeMetadataSource("primary", {COIN_A: ALPHA_PRIMARY})
    resolver = _resolver(primary)

    result = await resolver.resolve([COIN_A, COIN_B, COIN_A])

    assert primary.calls == [[COIN_A, COIN_B]]
    assert set(result) == {COIN_A}


@pytest.mark.asyncio
async def test_second_resolve_hits_cache_including_tombstones():
    primary = FakeMetadataSource("primary", {COIN_A: ALPHA_PRIMARY})
    secondary = FakeMetadataSource("secondary", {})
    resolver = _resolver(primary, secondary)

    await resolver.resolve([COIN_A, COIN_B])
    again = await resolver.resolve([COIN_A, COIN_B])

    assert len(primary.calls) == 1
    assert len(secondary.calls) == 1
    assert secondary.calls[0] == [COIN_B]
    assert set(again) == {COIN_A}


@pytest.mark.asyncio
async def test_primary_wins_and_secondary_fills_gaps():
    """A comes verbatim from primary, B verbatim from secondary."""
    primary = FakeMetadataSource("primary", {COIN_A: ALPHA_PRIMARY})
    secondary = FakeMetadataSource("secondary", {COIN_A: ALPHA_SECONDARY, COIN_B: BETA_SECONDARY})
    resolver = _resolver(primary, secondary)

    result = await resolver.resolve([COIN_A, COIN_B])

    assert secondary.calls == [[COIN_B]]
    a, b = result[COIN_A], result[COIN_B]
    assert (a.id, a.name, a.symbol, a.decimals, a.icon_url) == (
        COIN_A,
        "Alpha",
        "ALPHA",
        6,
        "https://icons/alpha.png",
    )
    assert (b.id, b.name, b.symbol, b.decimals, b.icon_url, b.description) == (
        COIN_B,
        "Beta",
        "BETA",
        9,
        "https://icons/beta.png",
        "b",
    )


@pytest.mark.asyncio
async def test_failed_primary_batch_is_tombstoned_and_secondary_used():
    primary = FakeMetadataSource("primary", {COIN_A: ALPHA_PRIMARY}, fail=True)
    secondary = FakeMetadataSource("secondary", {COIN_A: ALPHA_SECONDARY})
    resolver = _resolver(primary, secondary)

    result = await resolver.resolve([COIN_A, COIN_B])
    assert result[COIN_A].symbol == "ALP"
    assert COIN_B not in result

    # Failed batch is not retried within the process.
    primary.fail = False
    await resolver.resolve([COIN_A, COIN_B])
    assert len(primary.calls) == 1


@pytest.mark.asyncio
async def test_both_sources_failing_returns_empty_map():
    resolver = _resolver(
        FakeMetadataSource("primary", {}, fail=True),
        FakeMetadataSource("secondary", {}, fail=True),
    )
    assert await resolver.resolve([COIN_A]) == {}


@pytest.mark.asyncio
async def test_invalid_entries_are_tombstoned():
    primary = FakeMetadataSource(
        "primary",
        {
            COIN_A: {"name": "Alpha", "symbol": "ALPHA", "decimals": -1},
            COIN_B: {"name": "Beta"},
        },
    )
    resolver = _resolver(primary)
    assert await resolver.resolve([COIN_A, COIN_B]) == {}
    assert await resolver.resolve([COIN_A, COIN_B]) == {}
    assert len(primary.calls) == 1


@pytest.mark.asyncio
async def test_short_response_tombstones_trailing_keys():
    class ShortSource(FakeMetadataSource):
        async def fetch_batch(self, coin_types):
            self.calls.append(list(coin_types))
            return [ALPHA_PRIMARY]

    primary = ShortSource("primary", {})
    result = await _resolver(primary).resolve([COIN_A, COIN_B])
    assert set(result) == {COIN_A}


@pytest.mark.asyncio
async def test_fallback_icon_only_fills_missing_icon():
    primary = FakeMetadataSource(
        "primary",
        {
            SUI: {"name": "Sui", "symbol": "SUI", "decimals": 9, "iconUrl": None},
            USDC: {"name": "USDC", "symbol": "USDC", "decimals": 6, "iconUrl": "https://own/usdc.png"},
        },
    )
    icons = {SUI: "https://fallback/sui.png", USDC: "https://fallback/usdc.png", COIN_A: "https://fallback/a.png"}
    resolver = _resolver(primary, fallback_icons=icons)

    result = await resolver.resolve([SUI, USDC, COIN_A])

    assert result[SUI].icon_url == "https://fallback/sui.png"
    assert result[USDC].icon_url == "https://own/usdc.png"
    # The icon table never creates metadata on its own.
    assert COIN_A not in result


@pytest.mark.asyncio
async def test_empty_input_makes_no_calls():
    primary = FakeMetadataSource("primary", {})
    assert await _resolver(primary).resolve([]) == {}
    assert primary.calls == []


@pytest.mark.asyncio
async def test_default_icon_table_fills_sui_icon():
    primary = FakeMetadataSource("primary", {SUI: {"name": "Sui", "symbol": "SUI", "decimals": 9, "iconUrl": None}})

    result = await _resolver(primary).resolve([SUI])

    assert result[SUI].icon_url == FALLBACK_COIN_ICONS[SUI]
    assert all(url.startswith("https://") for url in FALLBACK_COIN_ICONS.values())
