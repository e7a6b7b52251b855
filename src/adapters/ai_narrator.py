"""Adaptador de narrativa IA (proveedor compatible OpenAI via SDK OpenAI).

Responsabilidad:
- Construir el payload a partir de un `EnrichedBundle` (o de la lista de módulos).
- Llamar al proveedor y parsear la salida como JSON.
- Normalizar el resultado como `TransactionNarrative` / `PackageNarrative`.

Sin API key devuelve una narrativa heurística con los datos ya resueltos. Los
fallos del proveedor (tras agotar reintentos) se propagan: el pipeline aplica
su narrativa fija de respaldo.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
import re
from typing import Any

from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    RateLimitError,
)
from pydantic import ValidationError

from core.config import AppSettings
from core.domain.catalog import KNOWN_PACKAGES
from core.domain.coins import coin_display, format_amount, gas_used_mist, mist_to_sui, shorten_address
from core.domain.models import EnrichedBundle, InvolvedParty, PackageNarrative, TransactionNarrative
from core.services.transaction_facts import balance_changes, owner_value, prune_transaction

logger = logging.getLogger(__name__)

_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL | re.IGNORECASE)

SYSTEM_PROMPT = (
    "You translate Sui transactions into clear explanations. Keep technical terms but add "
    "simple explanations in brackets. Never use 'they/their' for individuals - use the "
    "person's name or 'The Sender'. Use passive voice when describing system actions "
    "(e.g., 'coins were split' not 'they split coins')."
)

TRANSACTION_INSTRUCTIONS = """Return a detailed JSON response:
{
  "summary": "A clear summary of what happened. Use SuiNS names like: '👤 alice.sui (0x1234...abcd) sent 0.9 USDC to 👤 bob.sui (0x5678...efgh)'. Keep technical terms but add simple explanations in brackets.",
  "technicalPlayByPlay": "A step-by-step breakdown following these rules:
    1. Never use 'they' or 'their': refer to '👤 The Sender', '👤 alice.sui' or 'The user'.
    2. Passive voice for system actions: 'The coins were split', not 'they split the coins'.
    3. Technical terms with explanations in brackets, e.g. 'SplitCoins (dividing the balance into smaller parts)'.
    4. If a SuiNS name exists show it as '👤 name.sui (0x1234...abcd)', else '👤 The Sender (0x1234...abcd)'.
    5. Show addresses as (0x1234...abcd): first 6 and last 4 characters.
    6. Story flow markers: 'First', 'Then', 'Next', 'After that', 'Finally'.
    7. Emojis: 👤 people/wallets, 🏦 apps/protocols, 💼 objects, ⛽ gas/fees, 🪙 tokens.
    8. Clean numbers: '0.9 USDC' not '0.900000 USDC'.",
  "mermaidCode": "graph LR; User[\\"👤 alice.sui (0x1234...abcd)\\"] -->|Sends| App[\\"🏦 Protocol\\"]; ... (valid mermaid.js flowchart)",
  "protocol": "Protocol name (e.g. Sui Framework, DeepBook, Cetus)",
  "actionType": "Action type (e.g. Transfer, Swap, Deposit, Borrow)",
  "involvedParties": [
    {"address": "0x...", "role": "Sender, Receiver, Protocol...", "label": "SuiNS name or protocol name"}
  ]
}
Return ONLY the JSON object."""

PACKAGE_DEFAULT_SUMMARY = "This is a smart contract package on the Sui network."


def _truncate_str(value: object, max_chars: int) -> str | None:
    if not isinstance(value, str):
        return None
    s = value.strip()
    if not s:
        return None
    if len(s) <= max_chars:
        return s
    return s[: max_chars - 1].rstrip() + "…"


def _extract_json_object(text: str) -> str:
    """Obtiene el primer objeto JSON presente en la respuesta del proveedor."""
    match = _JSON_FENCE_RE.search(text)
    if match:
        return match.group(1).strip()

    stripped = text.strip()
    if stripped.startswith("{") and stripped.endswith("}"):
        return stripped

    start = stripped.find("{")
    end = stripped.rfind("}")
    if 0 <= start < end:
        candidate = stripped[start : end + 1]
        try:
            json.loads(candidate)
            return candidate
        except json.JSONDecodeError:
            pass

    raise ValueError("Could not locate a valid JSON object in the AI provider response.")


def _safe_retry_after_seconds(exc: Exception) -> float | None:
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None)
    if not headers:
        return None
    value = headers.get("retry-after") or headers.get("Retry-After")
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        return None


def _is_local_base_url(url: str) -> bool:
    url_l = (url or "").strip().lower()
    return url_l.startswith("http://localhost") or url_l.startswith("http://127.0.0.1") or url_l.startswith(
        "http://0.0.0.0"
    )


def parse_transaction_payload(data: dict[str, Any]) -> TransactionNarrative:
    """Normaliza el JSON del modelo a `TransactionNarrative`.

    Solo `summary` y `technicalPlayByPlay` son obligatorios (si faltan se lanza
    `ValidationError`). El resto es best-effort: escalares que no son texto
    quedan en None y las partes inválidas se descartan una a una.
    """

    parties: list[InvolvedParty] = []
    raw_parties = data.get("involvedParties")
    for item in raw_parties if isinstance(raw_parties, list) else []:
        try:
            parties.append(InvolvedParty.model_validate(item))
        except ValidationError:
            logger.debug("Dropping malformed involved party: %r", item)

    return TransactionNarrative.model_validate(
        {
            "summary": _truncate_str(data.get("summary"), 20_000),
            "technicalPlayByPlay": _truncate_str(data.get("technicalPlayByPlay"), 40_000),
            "mermaidCode": _truncate_str(data.get("mermaidCode"), 20_000),
            "protocol": _truncate_str(data.get("protocol"), 200),
            "actionType": _truncate_str(data.get("actionType"), 200),
            "involvedParties": parties,
        }
    )


def build_transaction_prompt(bundle: EnrichedBundle) -> str:
    """Prompt de usuario: datos podados + marcas conocidas + tokens + nombres."""

    known = "\n".join(f'- ID {p.id} is the "{p.name}" protocol' for p in KNOWN_PACKAGES)
    tokens = "\n".join(
        f"{meta.id}: {meta.symbol} (decimals: {meta.decimals})" for meta in bundle.coin_metadata.values()
    )
    names = "\n".join(f'- {addr} is "{name}"' for addr, name in bundle.names.items() if name)

    parts = [
        "Analyze this Sui Transaction and explain what happened clearly:",
        json.dumps(prune_transaction(bundle.transaction), ensure_ascii=False),
        "",
        "REAL PROTOCOL BRANDS (USE THESE NAMES):",
        known,
        "",
        "TOKEN METADATA:",
        tokens or "(none resolved)",
    ]
    if names:
        parts += [
            "",
            "SUINS NAMES (use these human-readable names instead of raw addresses when available):",
            names,
        ]
    parts += ["", TRANSACTION_INSTRUCTIONS]
    return "\n".join(parts)


def build_package_prompt(package_id: str, modules: dict[str, Any]) -> str:
    return (
        f"Analyze Sui Package ({package_id}). Modules: {', '.join(modules)}.\n"
        'JSON: { "summary": "Detailed summary in simple english", '
        '"modules": ["string"], "capabilities": ["string"] }'
    )


def heuristic_transaction_narrative(bundle: EnrichedBundle, *, reason: str) -> TransactionNarrative:
    """Narrativa sin IA remota, construida solo con datos on-chain ya resueltos."""

    tx = bundle.transaction
    sender = bundle.sender
    sender_label = "The Sender"
    if sender:
        name = bundle.names.get(sender)
        sender_label = f"{name} ({shorten_address(sender)})" if name else f"The Sender ({shorten_address(sender)})"

    status = ((tx.get("effects") or {}).get("status") or {}).get("status") or "unknown"
    moves: list[str] = []
    for change in balance_changes(tx)[:12]:
        coin_type = str(change.get("coinType") or "")
        meta = bundle.coin_metadata.get(coin_type)
        symbol, _ = coin_display(coin_type, meta)
        amount = format_amount(change.get("amount") or "0", meta.decimals if meta else None)
        owner = owner_value(change.get("owner"))
        owner_name = bundle.names.get(owner) if isinstance(owner, str) else None
        who = owner_name or (shorten_address(owner) if isinstance(owner, str) else "an object")
        moves.append(f"👤 {who}: {amount} 🪙 {symbol}")

    gas = mist_to_sui(gas_used_mist(tx))
    summary = f"👤 {sender_label} submitted a transaction that finished with status '{status}'."
    steps = [f"First, 👤 {sender_label} signed and submitted the transaction."]
    if moves:
        steps.append("Then, the following balances changed: " + "; ".join(moves) + ".")
    steps.append(f"Finally, a ⛽ network fee of {gas} SUI was paid.")
    steps.append(f"(Heuristic explanation, no remote AI: {reason}.)")

    return TransactionNarrative(
        summary=summary,
        technical_play_by_play=" ".join(steps),
        mermaid_code=None,
        protocol=None,
        action_type=None,
    )


class AINarrator:
    """Implementa `NarrativeGenerator` sobre un endpoint compatible OpenAI."""

    def __init__(self, *, settings: AppSettings | None = None, client: AsyncOpenAI | None = None) -> None:
        self._settings = settings or AppSettings()
        self._client = client

    def _get_client(self) -> AsyncOpenAI | None:
        if self._client is not None:
            return self._client

        api_key = (self._settings.ai_api_key or "").strip()
        if not api_key:
            # Sin API key: si es un provider local OpenAI-compatible, usamos dummy.
            if not _is_local_base_url(self._settings.ai_base_url):
                return None
            api_key = "local"

        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=self._settings.ai_base_url,
            timeout=self._settings.ai_timeout_seconds,
            max_retries=0,
        )
        return self._client

    async def _complete_json(self, client: AsyncOpenAI, messages: list[dict[str, str]]) -> dict[str, Any]:
        """Chat completion + extracción de JSON con reintentos.

        Lanza la última excepción si se agotan los reintentos.
        """

        settings = self._settings
        last_error: Exception | None = None
        for attempt in range(max(1, settings.ai_max_retries + 1)):
            content = ""
            try:
                response = await client.chat.completions.create(
                    model=settings.ai_model,
                    messages=messages,  # type: ignore[arg-type]
                    temperature=0.2,
                )
                content = (response.choices[0].message.content or "").strip()
                data = json.loads(_extract_json_object(content))
                if not isinstance(data, dict):
                    raise ValueError("AI provider returned a non-object JSON value.")
                return data

            except APIStatusError as exc:
                last_error = exc
                if exc.status_code != 429 or attempt >= settings.ai_max_retries:
                    break
                retry_after = _safe_retry_after_seconds(exc)
                base = retry_after if retry_after is not None else (1.25 * (2**attempt))
                await asyncio.sleep(base + random.uniform(0.0, 0.35))

            except (RateLimitError, APITimeoutError, APIConnectionError) as exc:
                last_error = exc
                if attempt >= settings.ai_max_retries:
                    break
                retry_after = _safe_retry_after_seconds(exc)
                base = retry_after if retry_after is not None else (1.25 * (2**attempt))
                await asyncio.sleep(base + random.uniform(0.0, 0.35))

            except ValueError as exc:
                last_error = exc
                if attempt >= settings.ai_max_retries:
                    break
                # Auto-corrección: pedir al modelo que devuelva SOLO JSON válido.
                messages.append({"role": "assistant", "content": content})
                messages.append(
                    {
                        "role": "user",
                        "content": "Your response was not valid JSON. Rewrite ONLY valid JSON (no extra text, no fences).",
                    }
                )
                await asyncio.sleep(0.5)

        raise last_error or RuntimeError("AI provider failed")

    async def explain_transaction(self, bundle: EnrichedBundle) -> TransactionNarrative:
        client = self._get_client()
        if client is None:
            return heuristic_transaction_narrative(bundle, reason="missing_ai_api_key")

        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_transaction_prompt(bundle)},
        ]
        data = await self._complete_json(client, messages)
        return parse_transaction_payload(data)

    async def explain_package(self, package_id: str, modules: dict[str, Any]) -> PackageNarrative:
        module_names = list(modules)
        client = self._get_client()
        if client is None:
            return PackageNarrative(
                summary=f"{PACKAGE_DEFAULT_SUMMARY} It contains {len(module_names)} module(s).",
                modules=module_names,
                capabilities=[],
            )

        messages = [{"role": "user", "content": build_package_prompt(package_id, modules)}]
        data = await self._complete_json(client, messages)
        summary = _truncate_str(data.get("summary"), 20_000) or PACKAGE_DEFAULT_SUMMARY
        listed = data.get("modules")
        capabilities = data.get("capabilities")
        return PackageNarrative(
            summary=summary,
            modules=[str(m) for m in listed] if isinstance(listed, list) and listed else module_names,
            capabilities=(
                [str(c) for c in capabilities] if isinstance(capabilities, list) and capabilities else ["App Logic"]
            ),
        )
