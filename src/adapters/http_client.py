"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts, headers y user-agent para RPC y APIs de metadata.
- Facilita testeo: se puede sustituir el transporte por un `httpx.MockTransport`.
"""

from __future__ import annotations

from typing import Any

import httpx

from core.config import AppSettings


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros.

    Por qué un builder:
    - Centraliza timeouts/headers para que todas las fuentes se comporten igual.
    - Un único cliente (pool de conexiones) se comparte durante todo el proceso.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
        "Content-Type": "application/json",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


async def post_json(client: httpx.AsyncClient, url: str, payload: Any) -> Any:
    """POST JSON y devuelve el cuerpo decodificado.

    Lanza `httpx.HTTPStatusError` en respuestas no-2xx y `ValueError` si el
    cuerpo no es JSON; quien llama decide si el fallo es duro o blando.
    """

    resp = await client.post(url, json=payload)
    resp.raise_for_status()
    return resp.json()
