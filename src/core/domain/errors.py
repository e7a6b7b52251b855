"""Taxonomía de errores del pipeline.

Por qué excepciones propias:
- La CLI decide cómo presentar cada caso (retry-after vs fallo) sin parsear mensajes.
- Solo los fallos de dependencias duras (transacción/módulos) abortan un request;
  el resto se degrada dentro de los servicios y nunca llega aquí.
"""

from __future__ import annotations


class TxSenseError(Exception):
    """Base de todos los errores visibles para el usuario."""


class InputError(TxSenseError):
    """El input no es un digest, package id ni URL de explorer reconocible."""

    def __init__(self, raw: str) -> None:
        super().__init__("Input is not a Sui transaction digest, package id or explorer link.")
        self.raw = raw


class AdmissionDenied(TxSenseError):
    """Cuota local agotada: es una condición de retry-after, no un fallo."""

    def __init__(self, wait_seconds: int) -> None:
        super().__init__(f"Rate limit reached, retry in {wait_seconds} seconds.")
        self.wait_seconds = wait_seconds


class CollaboratorError(TxSenseError):
    """Fallo de un servicio externo del que depende el request (RPC)."""

    def __init__(self, message: str, *, collaborator: str = "sui_rpc") -> None:
        super().__init__(message)
        self.collaborator = collaborator
