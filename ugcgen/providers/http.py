"""Shared HTTP plumbing for provider adapters: one client, one call, classified errors."""

from __future__ import annotations

import base64
import json
import logging
import re
from typing import Any

import httpx

from ugcgen.providers.errors import (
    AuthError,
    NotFoundError,
    ProviderError,
    RateLimitError,
    TransientError,
)

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER = 10.0
_RETRY_AFTER_RE = re.compile(r"retry_after[\"\s:]+(\d+(?:\.\d+)?)", re.IGNORECASE)


def parse_retry_after(response: httpx.Response, default: float = DEFAULT_RETRY_AFTER) -> float:
    """Seconds to wait from the Retry-After header, a JSON ``retry_after`` key, or the body text."""
    header = response.headers.get("retry-after")
    if header:
        try:
            return float(header)
        except ValueError:
            pass
    body = _safe_json(response)
    if isinstance(body, dict):
        for key in ("retry_after", "retryAfter"):
            if key in body:
                try:
                    return float(body[key])
                except (TypeError, ValueError):
                    break
        detail = body.get("detail")
        if isinstance(detail, dict) and "retry_after" in detail:
            try:
                return float(detail["retry_after"])
            except (TypeError, ValueError):
                pass
    match = _RETRY_AFTER_RE.search(response.text or "")
    if match:
        return float(match.group(1))
    return default


def raise_for_provider_status(
    response: httpx.Response,
    provider: str,
    default_retry_after: float = DEFAULT_RETRY_AFTER,
    rate_limit_remedy: str | None = None,
) -> None:
    """Map an HTTP status onto the provider error taxonomy. 2xx passes through."""
    status = response.status_code
    if 200 <= status < 300:
        return

    detail = (response.text or "")[:300]
    if status in (401, 403):
        raise AuthError(
            f"invalid or missing API credential (HTTP {status})",
            provider=provider,
            remedy="Check the API key in your .env file",
        )
    if status == 429:
        retry_after = parse_retry_after(response, default_retry_after)
        raise RateLimitError(
            f"rate limit exceeded, retry after {retry_after:g} seconds",
            provider=provider,
            remedy=rate_limit_remedy,
            retry_after=retry_after,
        )
    if status in (404, 410):
        raise NotFoundError(
            f"model or endpoint not available (HTTP {status}): {detail}",
            provider=provider,
            remedy="Choose a different model or provider",
        )
    if status >= 500:
        body = _safe_json(response)
        estimated = body.get("estimated_time") if isinstance(body, dict) else None
        if estimated is not None:
            raise TransientError(
                f"model is loading, ready in about {float(estimated):.0f} seconds",
                provider=provider,
                retry_after=float(estimated),
            )
        raise TransientError(f"service unavailable (HTTP {status}): {detail}", provider=provider)
    raise ProviderError(f"request rejected (HTTP {status}): {detail}", provider=provider)


def to_data_uri(content: bytes, content_type: str) -> str:
    mime = content_type.split(";")[0].strip() or "application/octet-stream"
    return f"data:{mime};base64,{base64.b64encode(content).decode('ascii')}"


def decode_data_uri(uri: str) -> bytes:
    """Decode a ``data:...;base64,`` URI back to bytes."""
    if not uri.startswith("data:") or "," not in uri:
        raise ValueError("not a data URI")
    header, payload = uri.split(",", 1)
    if header.endswith(";base64"):
        return base64.b64decode(payload)
    return payload.encode("utf-8")


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except (json.JSONDecodeError, ValueError):
        return None


class HTTPProviderAdapter:
    """Base for adapters: owns an ``httpx.AsyncClient`` and turns transport failures into TransientError."""

    provider_name = ""

    def __init__(
        self,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
        default_retry_after: float = DEFAULT_RETRY_AFTER,
    ):
        self._api_key = api_key.strip() if api_key else None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._owns_client = client is None
        self._default_retry_after = default_retry_after

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        logger.debug("%s %s %s", self.provider_name, method, url)
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise TransientError(f"request timed out: {e}", provider=self.provider_name) from e
        except httpx.TransportError as e:
            raise TransientError(f"network error: {e}", provider=self.provider_name) from e
        raise_for_provider_status(
            response,
            self.provider_name,
            self._default_retry_after,
            rate_limit_remedy=self._rate_limit_remedy(),
        )
        return response

    def _rate_limit_remedy(self) -> str | None:
        return None

    def _require_key(self, env_name: str) -> str:
        if not self._api_key:
            raise AuthError(
                f"{env_name} is not set",
                provider=self.provider_name,
                remedy=f"Add {env_name} to your .env file",
            )
        return self._api_key
