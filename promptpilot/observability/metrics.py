from prometheus_client import (
    Counter,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)
from fastapi import Response


pipeline_invocations = Counter(
    "pipeline_invocations_total",
    "Total prompt pipeline invocations by outcome",
    ["outcome"],
)

pipeline_stage_time = Histogram(
    "pipeline_stage_seconds",
    "Time spent in each pipeline stage",
    ["stage"],
    buckets=(0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

llm_tokens = Counter(
    "llm_tokens_total",
    "Total LLM tokens consumed",
    ["direction"],
)

router_cost = Counter(
    "modelpilot_cost_total",
    "Accumulated routing cost reported by the model router",
)


def metrics_response() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
