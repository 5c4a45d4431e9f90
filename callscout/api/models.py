"""Annotation oracle request and response dataclasses.

WHY: The insight service speaks camelCase JSON. Typed dataclasses make
the request the dispatcher builds and the response it merges explicit,
and keep the wire names in one file.

HOW: InsightRequest serializes with to_dict(); InsightResponse parses
with from_dict(). Insight itself lives in core.model because segments
own it.

RULES:
- Field names on the wire match the service exactly
  (conversationHistory, currentSentence, timestamp, segmentId)
- A successful response without "insight" means "no material
  commentary", not an error
- from_dict raises KeyError/TypeError/ValueError on malformed bodies;
  the client turns those into InsightAPIError
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from callscout.core.model import Insight


@dataclass(frozen=True)
class InsightRequest:
    """Context sent to the oracle for one completed segment.

    RULES:
    - current_sentence: the segment's own words joined with spaces
    - conversation_history: text of every segment sorted before this one
    - timestamp: the segment's display timestamp ("12:04")
    - segment_id: correlation id echoed back on the insight
    """

    conversation_history: str
    current_sentence: str
    timestamp: str
    segment_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "conversationHistory": self.conversation_history,
            "currentSentence": self.current_sentence,
            "timestamp": self.timestamp,
            "segmentId": self.segment_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InsightRequest:
        return cls(
            conversation_history=str(data.get("conversationHistory") or ""),
            current_sentence=str(data["currentSentence"]),
            timestamp=str(data["timestamp"]),
            segment_id=str(data["segmentId"]),
        )


@dataclass(frozen=True)
class InsightResponse:
    """Parsed body of a 2xx response from the oracle."""

    success: bool
    insight: Insight | None = None
    processing_time_ms: float | None = None
    timestamp: str | None = None

    @property
    def has_insight(self) -> bool:
        return self.success and self.insight is not None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InsightResponse:
        """Parse an InsightResponse from the JSON body.

        RULES:
        - "success" is required and must be a boolean
        - "insight" is optional; when present it must be a full Insight
        - "meta" is optional and tolerated when partial, but must be an object
        """
        if not isinstance(data, dict):
            raise TypeError("Insight response must be a JSON object")
        success = data["success"]
        if not isinstance(success, bool):
            raise ValueError("'success' must be a boolean")

        raw_insight = data.get("insight")
        insight = Insight.from_dict(raw_insight) if raw_insight else None

        meta = data.get("meta") or {}
        if not isinstance(meta, dict):
            raise TypeError("'meta' must be a JSON object")
        return cls(
            success=success,
            insight=insight,
            processing_time_ms=meta.get("processingTimeMs"),
            timestamp=meta.get("timestamp"),
        )
