"""Request transformer contract and the no-hook variant."""

from __future__ import annotations

from abc import ABC, abstractmethod

from promptpilot.contracts.models import PreprocessedRequest, ProcessRequest


class RequestTransformer(ABC):
    """
    Rewrites a validated request before the template is fetched.

    Implementations raise PreprocessingFailed on any failure; there is no
    fallback to the untransformed request.
    """

    @abstractmethod
    async def transform(self, request: ProcessRequest) -> PreprocessedRequest:
        """Return the request the rest of the pipeline should use."""

    async def aclose(self) -> None:
        """Release transport resources. No-op by default."""


class IdentityTransformer(RequestTransformer):
    """Used when no preprocessing hook is configured."""

    async def transform(self, request: ProcessRequest) -> PreprocessedRequest:
        return request.without_identity()
