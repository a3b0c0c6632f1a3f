"""
HTTP Client Construction
========================

Builds the httpx.AsyncClient instances used for the presence service.

Every client sends:
    - User-Agent: {client.name}/{client.version} ({platform})
    - X-Session-Identifier: random UUID, fixed for the lifetime of the process
    - Authorization: api.authentication, when configured
    - X-Client-Key: api.client_key, when configured

Stream clients get one HTTP client each (they own and close it). One-shot
requests can share a single client.
"""

import logging
import platform
import uuid
from typing import Dict, Optional

import httpx

from presence_stream.config import Settings


logger = logging.getLogger(__name__)


SESSION_IDENTIFIER = str(uuid.uuid4())

_SENSITIVE_HEADERS = ("authorization", "x-client-key")


def build_headers(settings: Settings) -> Dict[str, str]:
    """Default headers for requests to the presence service."""
    headers = {
        "User-Agent": (
            f"{settings.client.name}/{settings.client.version} "
            f"({platform.system() or 'unknown'})"
        ),
        "X-Session-Identifier": SESSION_IDENTIFIER,
    }
    if settings.api.authentication:
        headers["Authorization"] = settings.api.authentication
    if settings.api.client_key:
        headers["X-Client-Key"] = settings.api.client_key
    return headers


def redact_headers(headers: Dict[str, str]) -> Dict[str, str]:
    """Copy of headers with secrets replaced, safe to log."""
    return {
        name: "[REDACTED]" if name.lower() in _SENSITIVE_HEADERS else value
        for name, value in headers.items()
    }


def build_http_client(
    settings: Settings,
    stream: bool = False,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    Create an HTTP client for the presence service.

    Args:
        settings: Loaded settings
        stream: Use the stream read timeout (settings.stream.read_timeout_seconds)
            instead of the request timeout
        transport: Optional transport override (e.g. httpx.MockTransport)

    Returns:
        Configured httpx.AsyncClient
    """
    timeout = settings.api.request_timeout_seconds
    headers = build_headers(settings)

    client = httpx.AsyncClient(
        base_url=settings.api.url,
        headers=headers,
        timeout=httpx.Timeout(
            connect=timeout,
            read=settings.stream.read_timeout_seconds if stream else timeout,
            write=timeout,
            pool=timeout,
        ),
        transport=transport,
    )

    logger.info(
        f"Configured HTTP client: base_url={client.base_url} "
        f"headers={redact_headers(headers)} timeout={timeout}s"
    )
    return client
