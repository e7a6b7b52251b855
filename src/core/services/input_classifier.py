"""Clasificación de input libre (digest, package id o link de explorer).

Función pura: sin I/O. Una URL malformada se trata como texto plano.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

from core.domain.models import InputKind, InputReference

PACKAGE_RE = re.compile(r"^0x[a-fA-F0-9]+$")
DIGEST_RE = re.compile(r"[1-9A-HJ-NP-Za-km-z]{43,45}")

_TRANSACTION_MARKERS = ("txblock", "tx")
_PACKAGE_MARKERS = ("package", "object")


def _segment_after(parts: list[str], markers: tuple[str, ...]) -> str | None:
    for index, part in enumerate(parts):
        if part in markers and index + 1 < len(parts):
            return parts[index + 1]
    return None


def extract_identifier(raw: str) -> str:
    """Reduce una URL de explorer al identificador que contiene.

    Si el texto no es una URL se devuelve tal cual (ya recortado).
    """

    text = raw.strip()
    if not text.startswith("http"):
        return text

    try:
        path = urlsplit(text).path
    except ValueError:
        return text

    parts = [p for p in path.split("/") if p]
    tx_id = _segment_after(parts, _TRANSACTION_MARKERS)
    if tx_id:
        return tx_id
    pkg_id = _segment_after(parts, _PACKAGE_MARKERS)
    if pkg_id:
        return pkg_id
    if parts:
        return parts[-1]
    return text


def classify(raw: str) -> InputReference:
    candidate = extract_identifier(raw)

    # Package primero: un id hex nunca debe confundirse con un digest.
    if PACKAGE_RE.match(candidate):
        return InputReference(kind=InputKind.PACKAGE, id=candidate)

    match = DIGEST_RE.search(candidate)
    if match:
        return InputReference(kind=InputKind.TRANSACTION, id=match.group(0))

    return InputReference(kind=InputKind.UNKNOWN, id=None)
