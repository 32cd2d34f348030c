"""
Remote preprocessing hook.

POSTs ``{"data": <request>, "auth": {"id", "claims"} | null}`` to the
configured URL and expects ``{"data": <rewritten request>}`` back. The hook
may rewrite any field, including ``promptId``; it typically enforces rate
limits or injects user data into the context.

Exactly one attempt is made. A retry could double-apply whatever state the
hook keeps (rate-limit counters), and a fallback to the original request
would skip whatever the hook enforces, so every failure is fatal.

Never point the hook at this service's own /processPrompt endpoint: each
call would trigger another preprocessing call.
"""

from __future__ import annotations

import asyncio
import logging

import httpx
from pydantic import ValidationError

from promptpilot.contracts.models import PreprocessedRequest, ProcessRequest
from promptpilot.errors import PreprocessingFailed
from promptpilot.preprocessing.base import RequestTransformer

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 10.0


class RemoteTransformer(RequestTransformer):

    def __init__(
        self,
        url: str,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._timeout_s = timeout_s
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient()

    @property
    def url(self) -> str:
        return self._url

    async def transform(self, request: ProcessRequest) -> PreprocessedRequest:
        payload = {
            "data": request.to_wire(),
            "auth": request.identity.model_dump() if request.identity else None,
        }
        logger.info(
            "Calling preprocessing function",
            extra={"_extra": {"url": self._url, "promptId": request.prompt_id}},
        )

        try:
            resp = await asyncio.wait_for(
                self._client.post(
                    self._url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                    timeout=self._timeout_s,
                ),
                timeout=self._timeout_s,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise PreprocessingFailed(
                f"Preprocessing function failed: timed out after {round(self._timeout_s * 1000)} ms"
            ) from exc
        except httpx.HTTPError as exc:
            raise PreprocessingFailed(
                f"Preprocessing function failed: {type(exc).__name__}"
            ) from exc

        if not resp.is_success:
            raise PreprocessingFailed(
                f"Preprocessing function failed: HTTP {resp.status_code}"
            )

        try:
            body = resp.json()
        except ValueError as exc:
            raise PreprocessingFailed(
                "Preprocessing function failed: reply is not JSON"
            ) from exc

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise PreprocessingFailed(
                "Preprocessing function failed: reply must be an object with a 'data' object"
            )
        try:
            processed = PreprocessedRequest.model_validate(data)
        except ValidationError as exc:
            raise PreprocessingFailed(
                f"Preprocessing function failed: invalid 'data' in reply ({exc.error_count()} error(s))"
            ) from exc

        logger.info("Preprocessing completed successfully")
        return processed

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
