"""Pydantic request/response models for the insight service.

WHY: The FastAPI endpoints need typed schemas for request validation,
response serialization, and automatic OpenAPI documentation. The field
names are camelCase because the playback client already speaks that
wire format.

HOW: One request model, one success response model (with nested insight
and meta), and the error and health bodies. All models include Field
descriptions for rich OpenAPI docs.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Required request fields are Optional here and checked by the route,
  so a missing field is a 400 with a readable message, not a 422
- insight is omitted from the response body when there is none
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class InsightRequestBody(BaseModel):
    """Body of POST /api/generate-insight."""

    conversationHistory: Optional[str] = Field(
        default="",
        description="Text of every segment before the current one, in order.",
    )
    currentSentence: Optional[str] = Field(
        default=None,
        description="Full text of the segment that just finished playing.",
    )
    timestamp: Optional[str] = Field(
        default=None,
        description="Display timestamp of the segment (MM:SS or HH:MM:SS).",
    )
    segmentId: Optional[str] = Field(
        default=None,
        description="Segment id; echoed back on the insight for correlation.",
    )

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "conversationHistory": "Thank you for joining the call.",
                "currentSentence": "Gross margin declined 300 basis points on pricing.",
                "timestamp": "12:04",
                "segmentId": "seg_42",
            }
        ]
    }}


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class InsightModel(BaseModel):
    id: str = Field(description="Globally unique insight id.")
    text: str = Field(description="One or two sentences of commentary.")
    segmentId: str = Field(description="Segment this insight belongs to.")
    createdAt: str = Field(description="ISO 8601 creation time of the insight.")


class ResponseMeta(BaseModel):
    processingTimeMs: int = Field(description="Server-side processing time in milliseconds.")
    timestamp: str = Field(description="ISO 8601 time the response was produced.")


class InsightAPIResponse(BaseModel):
    """Successful generate-insight response.

    RULES:
    - success is always True on a 200
    - insight is absent when the statement was not worth commenting on
    """

    success: bool = Field(description="Whether the request was processed.")
    insight: Optional[InsightModel] = Field(
        default=None,
        description="The generated insight, absent when there is nothing material to say.",
    )
    meta: ResponseMeta = Field(description="Timing information.")


class ErrorResponse(BaseModel):
    """Standard error response body.

    RULES:
    - detail is always a human-readable error message
    - meta is present on server errors
    """

    detail: str = Field(description="Human-readable error description.")
    meta: Optional[ResponseMeta] = Field(default=None, description="Timing information.")


class HealthResponse(BaseModel):
    """Health check response for the insight endpoint."""

    status: str = Field(description="Service health status.", json_schema_extra={"example": "healthy"})
    service: str = Field(description="Service name.")
    timestamp: str = Field(description="ISO 8601 time of the check.")
    model: str = Field(description="Language model used for insights.")
    apiKeyConfigured: bool = Field(description="Whether OPENAI_API_KEY is set.")
