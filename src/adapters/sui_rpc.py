"""Cliente JSON-RPC del fullnode de Sui.

Responsabilidad:
- Lecturas duras del pipeline (transacción, módulos, checkpoints): cualquier
  error se traduce a `CollaboratorError` con el mensaje del nodo.
- Metadata de coins como fuente secundaria (batch JSON-RPC, posicional).
- Reverse lookup SuiNS.
"""

from __future__ import annotations

import logging
import random
from typing import Any, Sequence

import httpx

from adapters.http_client import post_json
from core.domain.errors import CollaboratorError

logger = logging.getLogger(__name__)

TRANSACTION_OPTIONS: dict[str, bool] = {
    "showInput": True,
    "showEffects": True,
    "showObjectChanges": True,
    "showBalanceChanges": True,
    "showEvents": True,
}

# Ventana de checkpoints recientes para elegir una transacción aleatoria.
RANDOM_CHECKPOINT_SPAN = 100


def _request(method: str, params: list[Any], request_id: int = 1) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}


def _error_message(error: Any, default: str) -> str:
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message:
            return message
    return default


class SuiRpcClient:
    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        url: str,
        random_max_attempts: int = 5,
        rng: random.Random | None = None,
    ) -> None:
        self._client = client
        self._url = url
        self._random_max_attempts = random_max_attempts
        self._rng = rng or random.Random()

    async def call(self, method: str, params: list[Any], *, failure: str) -> Any:
        """Ejecuta un método y devuelve `result`; errores -> `CollaboratorError`."""

        try:
            data = await post_json(self._client, self._url, _request(method, params))
        except httpx.HTTPError as exc:
            raise CollaboratorError(f"{failure}: {exc}") from exc
        except ValueError as exc:
            raise CollaboratorError(f"{failure}: invalid JSON from RPC") from exc

        if not isinstance(data, dict):
            raise CollaboratorError(failure)
        if data.get("error"):
            raise CollaboratorError(_error_message(data["error"], failure))
        return data.get("result")

    async def call_batch(self, method: str, params_list: Sequence[list[Any]]) -> list[Any]:
        """Batch JSON-RPC. Devuelve `result` por posición (None si ese item falló)."""

        payload = [_request(method, params, request_id=i) for i, params in enumerate(params_list)]
        data = await post_json(self._client, self._url, payload)
        if not isinstance(data, list):
            raise ValueError("RPC batch response is not a list")

        by_id: dict[int, Any] = {}
        for item in data:
            if isinstance(item, dict) and isinstance(item.get("id"), int) and not item.get("error"):
                by_id[item["id"]] = item.get("result")
        return [by_id.get(i) for i in range(len(params_list))]

    async def get_transaction_block(self, digest: str) -> dict[str, Any]:
        result = await self.call(
            "sui_getTransactionBlock",
            [digest, TRANSACTION_OPTIONS],
            failure="Failed to fetch transaction data",
        )
        if not isinstance(result, dict):
            raise CollaboratorError("Failed to fetch transaction data")
        return result

    async def get_coin_metadata(self, coin_type: str) -> dict[str, Any] | None:
        result = await self.call(
            "suix_getCoinMetadata",
            [coin_type],
            failure="Failed to fetch coin metadata",
        )
        return result if isinstance(result, dict) else None

    async def get_normalized_modules(self, package_id: str) -> dict[str, Any]:
        result = await self.call(
            "sui_getNormalizedMoveModulesByPackage",
            [package_id],
            failure="Failed to fetch package data",
        )
        if not isinstance(result, dict):
            raise CollaboratorError("Failed to fetch package data")
        return result

    async def get_latest_checkpoint(self) -> int:
        result = await self.call(
            "sui_getLatestCheckpointSequenceNumber",
            [],
            failure="Failed to fetch latest checkpoint",
        )
        try:
            return int(result)
        except (TypeError, ValueError) as exc:
            raise CollaboratorError("Failed to fetch latest checkpoint") from exc

    async def get_checkpoint(self, sequence: int) -> dict[str, Any]:
        result = await self.call(
            "sui_getCheckpoint",
            [str(sequence)],
            failure=f"Failed to fetch checkpoint {sequence}",
        )
        if not isinstance(result, dict):
            raise CollaboratorError(f"Failed to fetch checkpoint {sequence}")
        return result

    async def sample_random_digest(self) -> str:
        """Digest aleatorio de uno de los últimos checkpoints.

        Si el checkpoint elegido no trae transacciones se muestrea otro.
        """

        latest = await self.get_latest_checkpoint()
        for attempt in range(self._random_max_attempts):
            sequence = max(0, latest - self._rng.randrange(RANDOM_CHECKPOINT_SPAN))
            checkpoint = await self.get_checkpoint(sequence)
            transactions = checkpoint.get("transactions") or []
            if transactions:
                return str(self._rng.choice(transactions))
            logger.debug("Checkpoint %d is empty (attempt %d)", sequence, attempt + 1)
        raise CollaboratorError("Could not find a recent transaction, try again.")

    async def resolve_name_service_names(self, address: str, *, limit: int = 1) -> list[str]:
        result = await self.call(
            "suix_resolveNameServiceNames",
            [address, None, limit],
            failure="SuiNS lookup failed",
        )
        names = (result or {}).get("data") if isinstance(result, dict) else None
        if not isinstance(names, list):
            return []
        return [n for n in names if isinstance(n, str)]


class RpcCoinMetadataSource:
    """Fuente secundaria de metadata: un único batch JSON-RPC por llamada."""

    name = "sui_rpc"

    def __init__(self, rpc: SuiRpcClient) -> None:
        self._rpc = rpc

    async def fetch_batch(self, coin_types: Sequence[str]) -> list[dict[str, Any] | None]:
        results = await self._rpc.call_batch("suix_getCoinMetadata", [[c] for c in coin_types])
        return [r if isinstance(r, dict) else None for r in results]
