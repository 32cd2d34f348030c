from __future__ import annotations

import httpx

from promptpilot.preprocessing.base import IdentityTransformer, RequestTransformer
from promptpilot.preprocessing.remote import DEFAULT_TIMEOUT_S, RemoteTransformer


def build_transformer(
    url: str | None,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    http_client: httpx.AsyncClient | None = None,
) -> RequestTransformer:
    """Pick the transformer once, at startup: remote when a hook URL is configured."""
    if url:
        return RemoteTransformer(url, timeout_s=timeout_s, http_client=http_client)
    return IdentityTransformer()


__all__ = [
    "RequestTransformer",
    "IdentityTransformer",
    "RemoteTransformer",
    "build_transformer",
]
