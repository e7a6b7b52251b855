"""
Pytest fixtures for TXSENSE tests.

Collaborators are faked in memory; the rate window uses a temporary JSON file.
"""

from __future__ import annotations

from typing import Any, Sequence

import pytest

from adapters.rate_window_store import JsonTimestampStore

VALID_DIGEST = "8Bq9KxkUzhG8eW7zUv7R5mCkN3dJbT1yqFqWwzPp3sA4"
SENDER = "0x" + "a1" * 32
RECEIVER = "0x" + "b2" * 32
USDC = "0xdba34672e30cb065b1f93e3ab55318768fd6fef66c15942c9f7cb846e2f900e7::usdc::USDC"
SUI = "0x2::sui::SUI"


class FakeClock:
    """Millisecond clock controlled by the test."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


class FakeMetadataSource:
    """Positional batch source backed by a dict; records every batch call."""

    def __init__(self, name: str, data: dict[str, dict[str, Any]], *, fail: bool = False) -> None:
        self.name = name
        self.data = data
        self.fail = fail
        self.calls: list[list[str]] = []

    async def fetch_batch(self, coin_types: Sequence[str]) -> list[dict[str, Any] | None]:
        self.calls.append(list(coin_types))
        if self.fail:
            raise ConnectionError(f"{self.name} is down")
        return [self.data.get(c) for c in coin_types]


class FakeNameLookup:
    def __init__(self, names: dict[str, str], *, failing: set[str] | None = None) -> None:
        self.names = names
        self.failing = failing or set()
        self.calls: list[str] = []

    async def reverse_lookup(self, address: str) -> str | None:
        self.calls.append(address)
        if address in self.failing:
            raise ConnectionError("suins timeout")
        return self.names.get(address)


def make_transaction(*, digest: str = VALID_DIGEST, status: str = "success") -> dict[str, Any]:
    """Minimal `sui_getTransactionBlock` response with a USDC transfer."""

    return {
        "digest": digest,
        "transaction": {
            "data": {
                "sender": SENDER,
                "gasData": {"owner": SENDER, "budget": "5000000", "price": "750", "payment": []},
                "transaction": {
                    "kind": "ProgrammableTransaction",
                    "inputs": [],
                    "transactions": [
                        {"SplitCoins": ["GasCoin", [{"Input": 0}]]},
                        {"TransferObjects": [[{"Result": 0}], {"Input": 1}]},
                    ],
                },
            }
        },
        "effects": {
            "status": {"status": status},
            "gasUsed": {
                "computationCost": "1000000",
                "storageCost": "2000000",
                "storageRebate": "978120",
                "nonRefundableStorageFee": "9880",
            },
        },
        "balanceChanges": [
            {"owner": {"AddressOwner": SENDER}, "coinType": SUI, "amount": "-2021880"},
            {"owner": {"AddressOwner": SENDER}, "coinType": USDC, "amount": "-900000"},
            {"owner": {"AddressOwner": RECEIVER}, "coinType": USDC, "amount": "900000"},
            {"owner": {"ObjectOwner": "0x" + "c3" * 32}, "coinType": SUI, "amount": "0"},
        ],
        "events": [],
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rate_store(tmp_path) -> JsonTimestampStore:
    return JsonTimestampStore(tmp_path / "rate_limit.json")
