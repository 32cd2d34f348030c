"""Abstract base class that all model-router clients must implement."""

from __future__ import annotations

from abc import ABC, abstractmethod

from promptpilot.router_client.models import CompletionParams, CompletionResult


class ModelRouter(ABC):
    """
    Contract for model-router clients.

    Every implementation MUST:
    - Make exactly one completion request per call (retries, if any, are
      the underlying transport's business)
    - Leave parameters that are None to the router's own defaults
    - Raise RoutingFailed for any failure, including a reply without text
    """

    @abstractmethod
    async def complete(self, prompt: str, params: CompletionParams) -> CompletionResult:
        """Send a rendered prompt and return the routed completion."""

    async def aclose(self) -> None:
        """Release transport resources. No-op by default."""
