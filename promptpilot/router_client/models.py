"""Data models for the model-router client layer."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CompletionParams(BaseModel):
    """Sampling parameters. ``None`` leaves the value to the router's default."""

    model_config = ConfigDict(frozen=True)

    max_tokens: int | None = Field(default=None, ge=1)
    temperature: float | None = None
    top_p: float | None = None


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class RoutingInfo(BaseModel):
    """Routing metadata reported by the router (ModelPilot ``_meta``)."""

    cost: float | None = None
    latency_ms: float | None = None
    provider: str | None = None


class CompletionResult(BaseModel):
    text: str
    model: str
    usage: Usage = Field(default_factory=Usage)
    finish_reason: str | None = None
    routing: RoutingInfo | None = None
