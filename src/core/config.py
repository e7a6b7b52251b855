"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (RPC/HTTP/IA) y servicios lean config de forma consistente.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias).

    Aquí viven el `.env` global y el estado persistido de la ventana de rate limit.
    """

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "txsense"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "txsense"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "txsense"
    return Path.home() / ".config" / "txsense"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str]) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        try:
            existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError):
            existing = {}

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# TXSENSE user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="TXSENSE_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    rpc_url: str = Field(
        default="https://fullnode.mainnet.sui.io:443",
        min_length=8,
        description="Endpoint JSON-RPC del fullnode de Sui.",
    )
    aftermath_metadata_url: str = Field(
        default="https://aftermath.finance/api/coins/metadata",
        min_length=8,
        description="Endpoint batch de metadata de coins (fuente primaria).",
    )
    explorer_url: str = Field(
        default="https://suivision.xyz",
        min_length=8,
        description="Explorer usado para construir links en el reporte.",
    )

    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout por request (segundos).",
    )
    user_agent: str = Field(
        default="txsense/0.1",
        min_length=1,
        description="User-Agent para peticiones HTTP.",
    )

    ai_api_key: str | None = Field(
        default=None,
        description="API key para el proveedor IA (compatible OpenAI).",
    )
    ai_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/openai/",
        min_length=8,
        description="Base URL compatible OpenAI (Gemini por defecto).",
    )
    ai_model: str = Field(
        default="gemini-2.5-flash",
        min_length=1,
        description="Modelo por defecto para generar la narrativa.",
    )
    ai_timeout_seconds: float = Field(
        default=45.0,
        gt=0,
        description="Timeout para llamadas al proveedor IA (segundos).",
    )
    ai_max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Reintentos máximos ante fallos transitorios (rate limit, red, JSON roto).",
    )

    # Rate limit local (ventana deslizante).
    rate_limit_window_ms: int = Field(
        default=60_000,
        gt=0,
        description="Longitud de la ventana deslizante (milisegundos).",
    )
    rate_limit_max_requests: int = Field(
        default=10,
        ge=1,
        description="Requests permitidos dentro de la ventana.",
    )
    rate_limit_state_path: Path | None = Field(
        default=None,
        description="Archivo JSON con los timestamps de la ventana (por defecto en el config dir).",
    )

    random_digest_max_attempts: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Checkpoints a muestrear antes de rendirse al elegir una transacción aleatoria.",
    )

    log_level: str = Field(
        default="WARNING",
        description="Nivel de logging de la CLI (DEBUG, INFO, WARNING...).",
    )

    def resolved_rate_limit_path(self) -> Path:
        return self.rate_limit_state_path or (get_user_config_dir() / "rate_limit.json")
