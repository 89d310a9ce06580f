"""Job-creation retry policy and model fallback.

Status checks are never retried here; the poller fails the job instead.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Sequence

from ugcgen.jobs.models import GenerationRequest, JobHandle
from ugcgen.providers.base import ProviderAdapter
from ugcgen.providers.errors import NotFoundError, RateLimitError, TransientError
from ugcgen.validation import validate_generation_request

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


async def submit_with_retries(
    adapter: ProviderAdapter,
    request: GenerationRequest,
    max_retries: int = 3,
    default_retry_after: float = 10.0,
    sleep: Sleep = asyncio.sleep,
) -> JobHandle:
    """Submit once, retrying rate limits and transient failures at most ``max_retries`` times.

    Validation happens first so invalid input never reaches the network.
    """
    request = validate_generation_request(request)
    attempt = 0
    while True:
        try:
            return await adapter.submit(request)
        except (RateLimitError, TransientError) as e:
            if attempt >= max_retries:
                logger.error(
                    "%s: giving up after %d retries: %s", adapter.provider_name, max_retries, e.message
                )
                raise
            attempt += 1
            delay = e.retry_after if e.retry_after is not None else default_retry_after
            logger.warning(
                "%s: %s. Retrying in %.0f seconds (attempt %d/%d)",
                adapter.provider_name, e.message, delay, attempt, max_retries,
            )
            await sleep(delay)


async def submit_with_model_fallback(
    adapter: ProviderAdapter,
    request: GenerationRequest,
    models: Sequence[str],
    max_retries: int = 3,
    default_retry_after: float = 10.0,
    sleep: Sleep = asyncio.sleep,
) -> JobHandle:
    """Try each model in order; only NotFoundError moves on to the next one."""
    candidates = list(dict.fromkeys(m for m in [request.model, *models] if m))
    if not candidates:
        return await submit_with_retries(adapter, request, max_retries, default_retry_after, sleep)

    last_error: NotFoundError | None = None
    for model in candidates:
        logger.info("%s: trying model %s", adapter.provider_name, model)
        try:
            return await submit_with_retries(
                adapter,
                request.model_copy(update={"model": model}),
                max_retries,
                default_retry_after,
                sleep,
            )
        except NotFoundError as e:
            logger.warning("%s: model %s not available, trying next", adapter.provider_name, model)
            last_error = e
    raise NotFoundError(
        f"all models failed: {', '.join(candidates)}. Last error: {last_error.message if last_error else 'unknown'}",
        provider=adapter.provider_name,
        remedy="Select Replicate or Fal.ai as the video provider",
    )
