from promptpilot.router_client.base import ModelRouter
from promptpilot.router_client.factory import get_model_router
from promptpilot.router_client.models import (
    CompletionParams,
    CompletionResult,
    RoutingInfo,
    Usage,
)
from promptpilot.router_client.mock_provider import MockRouter

__all__ = [
    "ModelRouter",
    "CompletionParams",
    "CompletionResult",
    "RoutingInfo",
    "Usage",
    "MockRouter",
    "get_model_router",
]
