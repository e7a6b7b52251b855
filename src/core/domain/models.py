"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a librerías de I/O.
- Facilita normalizar metadata que llega de múltiples fuentes (Aftermath, RPC, IA).

Nota:
- Estos modelos describen *qué* es la información, no *cómo* se obtiene.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class InputKind(str, Enum):
    """Tipo de referencia detectada en el input del usuario."""

    TRANSACTION = "transaction"
    PACKAGE = "package"
    UNKNOWN = "unknown"


class InputReference(BaseModel):
    """Referencia tipada extraída de texto libre o de una URL de explorer."""

    model_config = ConfigDict(frozen=True)

    kind: InputKind = Field(
        ...,
        description="Transacción, paquete o desconocido.",
    )
    id: str | None = Field(
        default=None,
        description="Digest o package id normalizado (None si `kind` es unknown).",
    )


class AdmissionStatus(BaseModel):
    """Resultado de consultar la ventana deslizante de rate limit."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    wait_seconds: int = Field(default=0, ge=0)


class CoinMetadata(BaseModel):
    """Metadata de un coin type.

    Por qué aliases:
    - Aftermath y el RPC devuelven `iconUrl` en camelCase; aceptamos ambos nombres.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Coin type completo (p.ej. '0x2::sui::SUI').",
    )
    name: str = Field(
        ...,
        description="Nombre legible del token.",
    )
    symbol: str = Field(
        ...,
        description="Ticker del token.",
    )
    decimals: int = Field(
        ...,
        ge=0,
        description="Decimales para formatear cantidades crudas.",
    )
    description: str = Field(
        default="",
        description="Descripción declarada por el emisor (puede venir vacía).",
    )
    icon_url: str | None = Field(
        default=None,
        alias="iconUrl",
        description="URL del icono si la fuente la expone.",
    )


class InvolvedParty(BaseModel):
    """Participante de la transacción según la narrativa generada."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    address: str = Field(..., min_length=1)
    role: str = Field(default="", description="Rol (Sender, Receiver, Protocol...).")
    label: str | None = Field(default=None, description="Etiqueta sugerida por el generador.")
    name: str | None = Field(
        default=None,
        description="Nombre SuiNS resuelto para `address` (se completa tras la narrativa).",
    )


class TransactionNarrative(BaseModel):
    """Salida estructurada del generador de narrativa para una transacción."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    summary: str = Field(..., min_length=1)
    technical_play_by_play: str = Field(..., min_length=1, alias="technicalPlayByPlay")
    mermaid_code: str | None = Field(default=None, alias="mermaidCode")
    protocol: str | None = None
    action_type: str | None = Field(default=None, alias="actionType")
    involved_parties: list[InvolvedParty] = Field(default_factory=list, alias="involvedParties")


class PackageNarrative(BaseModel):
    """Salida estructurada del generador para un paquete Move."""

    model_config = ConfigDict(extra="ignore")

    summary: str = Field(..., min_length=1)
    modules: list[str] = Field(default_factory=list)
    capabilities: list[str] = Field(default_factory=list)


class EnrichedBundle(BaseModel):
    """Agregado que recibe el generador de narrativa.

    Por qué un agregado:
    - Es la única entrada del generador; mantenerlo explícito evita que la IA
      dependa de estado global (caches) o de detalles del RPC.
    """

    transaction: dict[str, Any] = Field(
        ...,
        description="Respuesta cruda de `sui_getTransactionBlock`.",
    )
    coin_metadata: dict[str, CoinMetadata] = Field(default_factory=dict)
    names: dict[str, str | None] = Field(default_factory=dict)

    @property
    def digest(self) -> str:
        return str(self.transaction.get("digest") or "")

    @property
    def sender(self) -> str | None:
        data = (self.transaction.get("transaction") or {}).get("data") or {}
        sender = data.get("sender")
        return sender if isinstance(sender, str) else None


class TransactionExplanation(BaseModel):
    """Resultado final para una transacción (lo que consume la capa de presentación)."""

    raw: dict[str, Any]
    summary: str = Field(..., min_length=1)
    technical_play_by_play: str = Field(..., min_length=1)
    mermaid_code: str | None = None
    protocol: str | None = None
    action_type: str | None = None
    involved_parties: list[InvolvedParty] = Field(default_factory=list)
    coin_metadata: dict[str, CoinMetadata] = Field(default_factory=dict)
    names: dict[str, str | None] = Field(
        default_factory=dict,
        description="Nombres SuiNS resueltos (None = sin nombre registrado).",
    )
    sender_name: str | None = None


class PackageExplanation(BaseModel):
    """Resultado final para un paquete."""

    package_id: str
    summary: str = Field(..., min_length=1)
    modules: list[str] = Field(default_factory=list)
    capabilities: list[str] = Field(default_factory=list)


class KnownPackage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
