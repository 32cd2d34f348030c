from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class PromptServiceConfig:
    """Process-wide configuration, read once at startup and never mutated."""

    router_provider: str
    modelpilot_api_key: str
    modelpilot_router_id: str
    modelpilot_base_url: str
    router_timeout_s: float
    prompts_collection: str
    preprocessing_function_url: str
    preprocessing_timeout_ms: int
    database_url: str
    log_level: str

    @property
    def preprocessing_timeout_s(self) -> float:
        return self.preprocessing_timeout_ms / 1000.0

    @classmethod
    def from_env(cls) -> PromptServiceConfig:
        return cls(
            router_provider=os.environ.get("ROUTER_PROVIDER", "modelpilot"),
            modelpilot_api_key=os.environ.get("MODELPILOT_API_KEY", ""),
            modelpilot_router_id=os.environ.get("MODELPILOT_ROUTER_ID", ""),
            modelpilot_base_url=os.environ.get("MODELPILOT_BASE_URL", ""),
            router_timeout_s=float(os.environ.get("ROUTER_REQUEST_TIMEOUT", "120")),
            prompts_collection=os.environ.get("PROMPTS_COLLECTION", "prompts"),
            preprocessing_function_url=os.environ.get("PREPROCESSING_FUNCTION_URL", ""),
            preprocessing_timeout_ms=int(os.environ.get("PREPROCESSING_TIMEOUT_MS", "10000")),
            database_url=os.environ.get("DATABASE_URL", ""),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
        )
