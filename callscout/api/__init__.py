"""HTTP clients and wire models for the transcript source and insight service.

WHY: A playback session fetches its transcript once and then asks the
insight service about each completed segment. This package keeps both
network conversations behind async client classes.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. Request and response
payloads are typed dataclasses defined in models.py.

RULES:
- All HTTP calls go through TranscriptClient or InsightClient
- Failures surface as TranscriptFetchError / InsightAPIError
"""

from callscout.api.client import (
    InsightAPIError,
    InsightClient,
    TranscriptClient,
    TranscriptFetchError,
)
from callscout.api.models import InsightRequest, InsightResponse

__all__ = [
    "InsightAPIError",
    "InsightClient",
    "InsightRequest",
    "InsightResponse",
    "TranscriptClient",
    "TranscriptFetchError",
]
