"""
Tests for the Sui JSON-RPC adapter, driven through httpx.MockTransport.
"""

from __future__ import annotations

import json
import random

import httpx
import pytest

from adapters.http_client import build_async_client
from adapters.sui_rpc import RpcCoinMetadataSource, SuiRpcClient
from adapters.suins import SuinsNameLookup
from core.config import AppSettings
from core.domain.errors import CollaboratorError
from tests.conftest import SENDER, SUI, USDC, VALID_DIGEST, make_transaction

RPC_URL = "https://rpc.test"


def _client(handler) -> httpx.AsyncClient:
    return build_async_client(AppSettings(), transport=httpx.MockTransport(handler))


def _rpc(handler, **kwargs) -> tuple[SuiRpcClient, httpx.AsyncClient]:
    client = _client(handler)
    return SuiRpcClient(client=client, url=RPC_URL, **kwargs), client


def _ok(request_id: int, result) -> dict:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


@pytest.mark.asyncio
async def test_get_transaction_block_sends_full_options():
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        return httpx.Response(200, json=_ok(body["id"], make_transaction()))

    rpc, client = _rpc(handler)
    async with client:
        tx = await rpc.get_transaction_block(VALID_DIGEST)

    assert tx["digest"] == VALID_DIGEST
    assert seen[0]["method"] == "sui_getTransactionBlock"
    digest, options = seen[0]["params"]
    assert digest == VALID_DIGEST
    assert options["showBalanceChanges"] is True
    assert options["showEvents"] is True


@pytest.mark.asyncio
async def test_rpc_error_message_is_surfaced():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        return httpx.Response(
            200,
            json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32602, "message": "Could not find the referenced transaction"}},
        )

    rpc, client = _rpc(handler)
    async with client:
        with pytest.raises(CollaboratorError, match="Could not find the referenced transaction"):
            await rpc.get_transaction_block(VALID_DIGEST)


@pytest.mark.asyncio
async def test_http_failure_becomes_collaborator_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="unavailable")

    rpc, client = _rpc(handler)
    async with client:
        with pytest.raises(CollaboratorError, match="Failed to fetch package data"):
            await rpc.get_normalized_modules("0x2")


@pytest.mark.asyncio
async def test_non_json_body_becomes_collaborator_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    rpc, client = _rpc(handler)
    async with client:
        with pytest.raises(CollaboratorError):
            await rpc.get_latest_checkpoint()


@pytest.mark.asyncio
async def test_secondary_metadata_is_one_positional_batch():
    batches: list[list[dict]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        batches.append(body)
        # Out of order, one item errors.
        return httpx.Response(
            200,
            json=[
                {"jsonrpc": "2.0", "id": 1, "error": {"code": -1, "message": "not found"}},
                _ok(0, {"name": "Sui", "symbol": "SUI", "decimals": 9, "iconUrl": None}),
            ],
        )

    rpc, client = _rpc(handler)
    async with client:
        entries = await RpcCoinMetadataSource(rpc).fetch_batch([SUI, USDC])

    assert len(batches) == 1
    assert [item["method"] for item in batches[0]] == ["suix_getCoinMetadata"] * 2
    assert [item["params"] for item in batches[0]] == [[SUI], [USDC]]
    assert entries[0]["symbol"] == "SUI"
    assert entries[1] is None


@pytest.mark.asyncio
async def test_batch_that_is_not_a_list_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": "batch not supported"})

    rpc, client = _rpc(handler)
    async with client:
        with pytest.raises(ValueError):
            await RpcCoinMetadataSource(rpc).fetch_batch([SUI])


@pytest.mark.asyncio
async def test_random_digest_resamples_empty_checkpoints():
    checkpoints: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if body["method"] == "sui_getLatestCheckpointSequenceNumber":
            return httpx.Response(200, json=_ok(body["id"], "5000"))
        checkpoints.append(body["params"][0])
        transactions = [] if len(checkpoints) == 1 else [VALID_DIGEST]
        return httpx.Response(200, json=_ok(body["id"], {"transactions": transactions}))

    rpc, client = _rpc(handler, rng=random.Random(7))
    async with client:
        digest = await rpc.sample_random_digest()

    assert digest == VALID_DIGEST
    assert len(checkpoints) == 2
    assert all(4901 <= int(seq) <= 5000 for seq in checkpoints)


@pytest.mark.asyncio
async def test_random_digest_gives_up_after_max_attempts():
    calls = {"checkpoint": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if body["method"] == "sui_getLatestCheckpointSequenceNumber":
            return httpx.Response(200, json=_ok(body["id"], "10"))
        calls["checkpoint"] += 1
        return httpx.Response(200, json=_ok(body["id"], {"transactions": []}))

    rpc, client = _rpc(handler, random_max_attempts=3)
    async with client:
        with pytest.raises(CollaboratorError):
            await rpc.sample_random_digest()

    assert calls["checkpoint"] == 3


@pytest.mark.asyncio
async def test_suins_reverse_lookup():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body["method"] == "suix_resolveNameServiceNames"
        address = body["params"][0]
        names = ["alice.sui"] if address == SENDER else []
        return httpx.Response(200, json=_ok(body["id"], {"data": names, "hasNextPage": False}))

    rpc, client = _rpc(handler)
    lookup = SuinsNameLookup(rpc)
    async with client:
        assert await lookup.reverse_lookup(SENDER) == "alice.sui"
        assert await lookup.reverse_lookup("0x" + "b2" * 32) is None
