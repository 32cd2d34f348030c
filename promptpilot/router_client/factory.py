"""
Router factory -- builds the model-router client named by configuration.

Supported providers:

  modelpilot  ModelPilot intelligent routing -- needs MODELPILOT_API_KEY
              and MODELPILOT_ROUTER_ID
  mock        Built-in deterministic mock, no API key needed

No singleton: the service builds one router at startup and injects it into
the pipeline, tests build their own.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from promptpilot.router_client.base import ModelRouter
from promptpilot.router_client.mock_provider import MockRouter

logger = logging.getLogger(__name__)


def _modelpilot(**options: Any) -> ModelRouter:
    from promptpilot.router_client.modelpilot_provider import ModelPilotRouter

    return ModelPilotRouter(
        api_key=options.get("api_key", ""),
        router_id=options.get("router_id", ""),
        base_url=options.get("base_url") or None,
        timeout=options.get("timeout", 120.0),
    )


def _mock(**options: Any) -> ModelRouter:
    return MockRouter()


_ROUTERS: dict[str, Callable[..., ModelRouter]] = {
    "modelpilot": _modelpilot,
    "mock": _mock,
}


def get_model_router(provider_name: str, **options: Any) -> ModelRouter:
    """
    Build the router client for ``provider_name``.

    Args:
        provider_name: ``modelpilot`` or ``mock``.
        options:       api_key, router_id, base_url, timeout (modelpilot only).
    """
    name = provider_name.lower()
    factory = _ROUTERS.get(name)
    if factory is None:
        raise ValueError(
            f"Unknown router provider '{name}'. Available: {', '.join(sorted(_ROUTERS))}"
        )
    router = factory(**options)
    logger.info("Model router initialized: %s", name)
    return router
