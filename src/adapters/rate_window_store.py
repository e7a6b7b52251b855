"""Persistencia local de la ventana de rate limit.

Un archivo JSON con una única clave (lista de timestamps en ms). Sobrevive a
reinicios del proceso; no hay otro estado persistido.
"""

from __future__ import annotations

import json
from pathlib import Path

RATE_LIMIT_KEY = "txsense_rate_limit_timestamps"


class JsonTimestampStore:
    def __init__(self, path: Path, *, key: str = RATE_LIMIT_KEY) -> None:
        self._path = path
        self._key = key

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[int]:
        """Lee la lista; archivo inexistente = historial vacío.

        Lanza `ValueError`/`OSError` si el archivo está corrupto o es ilegible.
        """

        if not self._path.exists():
            return []
        data = json.loads(self._path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("rate window file is not a JSON object")
        stored = data.get(self._key, [])
        if not isinstance(stored, list):
            raise ValueError(f"'{self._key}' is not a list")
        return stored

    def save(self, timestamps: list[int]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data: dict[str, object] = {}
        if self._path.exists():
            try:
                existing = json.loads(self._path.read_text(encoding="utf-8"))
                if isinstance(existing, dict):
                    data = existing
            except (OSError, ValueError):
                data = {}
        data[self._key] = list(timestamps)
        self._path.write_text(json.dumps(data) + "\n", encoding="utf-8")
