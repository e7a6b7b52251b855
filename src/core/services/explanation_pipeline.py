"""Lookup & enrichment orchestration.

This module owns the request flow behind every CLI command:

    classify -> admission check -> fetch chain data -> (metadata || names)
             -> narrative -> record quota

Only hard-dependency failures (transaction or module fetch) abort a request;
metadata, names and the narrative degrade in place and the request still
counts against the local quota. UI concerns (spinners, printing) stay out of
here and are reported through `PipelineHooks`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

import httpx

from adapters.aftermath import AftermathMetadataSource
from adapters.ai_narrator import AINarrator
from adapters.memory_cache import MemoryCache
from adapters.rate_window_store import JsonTimestampStore
from adapters.sui_rpc import RpcCoinMetadataSource, SuiRpcClient
from adapters.suins import SuinsNameLookup
from core.config import AppSettings
from core.domain.errors import AdmissionDenied, InputError
from core.domain.models import (
    CoinMetadata,
    EnrichedBundle,
    InputKind,
    InputReference,
    PackageExplanation,
    PackageNarrative,
    TransactionExplanation,
    TransactionNarrative,
)
from core.interfaces.sources import ChainReader, NarrativeGenerator
from core.services.admission import AdmissionController
from core.services.input_classifier import classify
from core.services.metadata_resolver import MetadataResolver
from core.services.name_resolver import NameResolver
from core.services.transaction_facts import collect_addresses, collect_coin_types

logger = logging.getLogger(__name__)

FALLBACK_SUMMARY = "This transaction went through successfully on the Sui network."
FALLBACK_PLAY_BY_PLAY = (
    "The sender completed a transaction on Sui. Then, some token balances were "
    "updated based on what the app did."
)
FALLBACK_MERMAID = 'graph LR; User["👤 Sender"]-->App["🏦 App"]; App-->Result["✨ Done!"];'
FALLBACK_PACKAGE_SUMMARY = "Analysis failed."

Explanation = TransactionExplanation | PackageExplanation

V = TypeVar("V")


@dataclass
class PipelineHooks:
    """Optional callbacks for UI layers (progress messages)."""

    step: Callable[[str], None] | None = None

    def emit(self, message: str) -> None:
        if self.step:
            self.step(message)


async def _contained(branch: str, work: Awaitable[dict[str, V]]) -> dict[str, V]:
    """A failing fan-out branch yields an empty map instead of cancelling its sibling."""

    try:
        return await work
    except Exception as exc:
        logger.warning("Enrichment branch '%s' failed: %s", branch, exc)
        return {}


def fallback_transaction_narrative() -> TransactionNarrative:
    return TransactionNarrative(
        summary=FALLBACK_SUMMARY,
        technical_play_by_play=FALLBACK_PLAY_BY_PLAY,
        mermaid_code=FALLBACK_MERMAID,
    )


def fallback_package_narrative(modules: dict[str, Any]) -> PackageNarrative:
    return PackageNarrative(summary=FALLBACK_PACKAGE_SUMMARY, modules=list(modules), capabilities=[])


class ExplanationPipeline:
    def __init__(
        self,
        *,
        chain: ChainReader,
        metadata: MetadataResolver,
        names: NameResolver,
        narrator: NarrativeGenerator,
        admission: AdmissionController,
    ) -> None:
        self._chain = chain
        self._metadata = metadata
        self._names = names
        self._narrator = narrator
        self._admission = admission

    async def explain(self, raw_input: str, *, hooks: PipelineHooks | None = None) -> Explanation:
        """Classify user input, enforce the quota and run the enrichment."""

        ref = classify(raw_input)
        if ref.kind is InputKind.UNKNOWN or not ref.id:
            raise InputError(raw_input)

        status = self._admission.check()
        if not status.allowed:
            raise AdmissionDenied(status.wait_seconds)

        return await self.enrich(ref, hooks=hooks)

    async def explain_random(self, *, hooks: PipelineHooks | None = None) -> Explanation:
        """Explain a random recent transaction.

        The quota is checked before sampling; empty-checkpoint re-sampling does
        not consume quota, the final explanation does.
        """

        hooks = hooks or PipelineHooks()
        status = self._admission.check()
        if not status.allowed:
            raise AdmissionDenied(status.wait_seconds)

        hooks.emit("Rolling the dice... 🎲")
        digest = await self._chain.sample_random_digest()
        return await self.explain(digest, hooks=hooks)

    async def enrich(self, ref: InputReference, *, hooks: PipelineHooks | None = None) -> Explanation:
        """Run the pipeline for an admitted reference and record it on success."""

        hooks = hooks or PipelineHooks()
        if ref.kind is InputKind.TRANSACTION and ref.id:
            result: Explanation = await self._explain_transaction(ref.id, hooks)
        elif ref.kind is InputKind.PACKAGE and ref.id:
            result = await self._explain_package(ref.id, hooks)
        else:
            raise InputError(ref.id or "")

        self._admission.record()
        return result

    async def _explain_transaction(self, digest: str, hooks: PipelineHooks) -> TransactionExplanation:
        hooks.emit("Sniffing the chain... 🐕")
        transaction = await self._chain.get_transaction_block(digest)

        coin_types = collect_coin_types(transaction)
        addresses = collect_addresses(transaction)

        hooks.emit("Fetching metadata & names... 🪙")
        async with asyncio.TaskGroup() as group:
            metadata_task = group.create_task(_contained("metadata", self._metadata.resolve(coin_types)))
            names_task = group.create_task(_contained("names", self._names.resolve(addresses)))
        coin_metadata: dict[str, CoinMetadata] = metadata_task.result()
        names = names_task.result()

        bundle = EnrichedBundle(transaction=transaction, coin_metadata=coin_metadata, names=names)

        hooks.emit("Brewing the story... ☕")
        narrative = await self._transaction_narrative(bundle)

        parties = [
            party.model_copy(update={"name": names.get(party.address)})
            for party in narrative.involved_parties
        ]
        sender = bundle.sender
        return TransactionExplanation(
            raw=transaction,
            summary=narrative.summary,
            technical_play_by_play=narrative.technical_play_by_play,
            mermaid_code=narrative.mermaid_code,
            protocol=narrative.protocol,
            action_type=narrative.action_type,
            involved_parties=parties,
            coin_metadata=coin_metadata,
            names=names,
            sender_name=names.get(sender) if sender else None,
        )

    async def _transaction_narrative(self, bundle: EnrichedBundle) -> TransactionNarrative:
        try:
            narrative = await self._narrator.explain_transaction(bundle)
        except Exception as exc:
            logger.warning("Narrative generation failed for %s: %s", bundle.digest, exc)
            return fallback_transaction_narrative()

        if not isinstance(narrative, TransactionNarrative):
            logger.warning("Narrative generator returned %s, using fallback", type(narrative).__name__)
            return fallback_transaction_narrative()
        if not narrative.summary.strip() or not narrative.technical_play_by_play.strip():
            return fallback_transaction_narrative()
        return narrative

    async def _explain_package(self, package_id: str, hooks: PipelineHooks) -> PackageExplanation:
        hooks.emit("Unboxing Move code... 🎁")
        modules = await self._chain.get_normalized_modules(package_id)

        hooks.emit("Analyzing the logic... 🪄")
        try:
            narrative = await self._narrator.explain_package(package_id, modules)
            if not isinstance(narrative, PackageNarrative) or not narrative.summary.strip():
                raise ValueError("malformed package narrative")
        except Exception as exc:
            logger.warning("Package narrative failed for %s: %s", package_id, exc)
            narrative = fallback_package_narrative(modules)

        return PackageExplanation(
            package_id=package_id,
            summary=narrative.summary,
            modules=narrative.modules or list(modules),
            capabilities=narrative.capabilities,
        )


def build_pipeline(*, settings: AppSettings, client: httpx.AsyncClient) -> ExplanationPipeline:
    """Wire the default adapters (Sui RPC, Aftermath, SuiNS, AI, local rate window)."""

    rpc = SuiRpcClient(
        client=client,
        url=settings.rpc_url,
        random_max_attempts=settings.random_digest_max_attempts,
    )
    metadata = MetadataResolver(
        primary=AftermathMetadataSource(client=client, url=settings.aftermath_metadata_url),
        primary_cache=MemoryCache(),
        secondary=RpcCoinMetadataSource(rpc),
        secondary_cache=MemoryCache(),
    )
    names = NameResolver(lookup=SuinsNameLookup(rpc), cache=MemoryCache())
    admission = AdmissionController(
        JsonTimestampStore(settings.resolved_rate_limit_path()),
        window_ms=settings.rate_limit_window_ms,
        max_requests=settings.rate_limit_max_requests,
    )
    return ExplanationPipeline(
        chain=rpc,
        metadata=metadata,
        names=names,
        narrator=AINarrator(settings=settings),
        admission=admission,
    )
