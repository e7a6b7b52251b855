"""Exportación JSON de un resultado.

Por qué JSON:
- Interoperabilidad con otras herramientas y pipelines (jq, notebooks).
- Permite guardar la evidencia on-chain junto a la narrativa sin depender de la CLI.
"""

from __future__ import annotations

import json
from pathlib import Path

from core.domain.models import PackageExplanation, TransactionExplanation


def export_explanation_json(
    *,
    explanation: TransactionExplanation | PackageExplanation,
    output_path: Path,
) -> Path:
    """Exporta el resultado a JSON UTF-8 con formato estable."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = explanation.model_dump(mode="json")
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path
