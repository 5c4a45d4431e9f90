"""FastAPI application serving the insight (annotation oracle) endpoint.

WHY: Playback sessions ask for commentary one completed segment at a
time. Keeping the model call behind a small HTTP service keeps the API
key on the server and gives the client a stable JSON contract.

HOW: POST /api/generate-insight validates the request, asks the
InsightGenerator, and wraps the result with timing metadata. GET on the
same path is a health check. The generator is provided through a
dependency so tests can swap it out.

RULES:
- Missing currentSentence, timestamp, or segmentId → 400
- "No insight" is a 200 with success=true and no insight field
- Unexpected failures → 500 with meta, logged with traceback
- The generator is a singleton created at import, its OpenAI client lazily
"""

from __future__ import annotations

import logging
import time
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import JSONResponse

from callscout import __version__
from callscout.api.models import InsightRequest
from callscout.config import INSIGHT_ENDPOINT, SERVER_HOST, SERVER_PORT, openai_api_key_configured
from callscout.core.model import utc_now_iso
from callscout.server.generator import InsightGenerator
from callscout.server.models import (
    ErrorResponse,
    HealthResponse,
    InsightAPIResponse,
    InsightModel,
    InsightRequestBody,
    ResponseMeta,
)

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("currentSentence", "timestamp", "segmentId")

# ---------------------------------------------------------------------------
# App and generator setup
# ---------------------------------------------------------------------------

_generator = InsightGenerator()


def get_generator() -> InsightGenerator:
    return _generator


app = FastAPI(
    title="CallScout Insight API",
    description=(
        "Generates short analyst commentary for earnings call transcript "
        "segments. Send a completed segment with its preceding conversation; "
        "receive an insight, or nothing when the statement is not material."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


def _meta(started: float) -> ResponseMeta:
    return ResponseMeta(
        processingTimeMs=int((time.monotonic() - started) * 1000),
        timestamp=utc_now_iso(),
    )


# ---------------------------------------------------------------------------
# Endpoints: Insights
# ---------------------------------------------------------------------------


@app.post(
    INSIGHT_ENDPOINT,
    response_model=InsightAPIResponse,
    response_model_exclude_none=True,
    tags=["insights"],
    summary="Generate an insight for a completed segment",
    responses={
        400: {"model": ErrorResponse, "description": "Missing required fields"},
        500: {"model": ErrorResponse, "description": "Unexpected server error"},
    },
)
async def generate_insight(
    body: InsightRequestBody,
    generator: Annotated[InsightGenerator, Depends(get_generator)],
):
    started = time.monotonic()

    missing = [name for name in _REQUIRED_FIELDS if not getattr(body, name)]
    if missing:
        raise HTTPException(
            status_code=400,
            detail="Missing required fields: {}".format(", ".join(missing)),
        )

    request = InsightRequest(
        conversation_history=body.conversationHistory or "",
        current_sentence=body.currentSentence,
        timestamp=body.timestamp,
        segment_id=body.segmentId,
    )

    try:
        insight = await generator.generate(request)
    except Exception:
        logger.exception("Insight generation failed for segment %s", body.segmentId)
        error = ErrorResponse(detail="Internal server error", meta=_meta(started))
        return JSONResponse(status_code=500, content=error.model_dump())

    return InsightAPIResponse(
        success=True,
        insight=InsightModel(**insight.to_dict()) if insight else None,
        meta=_meta(started),
    )


# ---------------------------------------------------------------------------
# Endpoints: Health
# ---------------------------------------------------------------------------


@app.get(
    INSIGHT_ENDPOINT,
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Liveness check that also reports the model and key configuration.",
)
async def health_check(
    generator: Annotated[InsightGenerator, Depends(get_generator)],
) -> HealthResponse:
    return HealthResponse(
        status="healthy",
        service="ai-insight-generator",
        timestamp=utc_now_iso(),
        model=generator.model,
        apiKeyConfigured=openai_api_key_configured(),
    )


def run_api(host: str = SERVER_HOST, port: int = SERVER_PORT) -> None:
    """Entry point for the callscout-api console script."""
    import uvicorn
    uvicorn.run(app, host=host, port=port)
