"""Shared test fixtures for the callscout test suite.

WHY: Parser, sync, dispatcher, session, and CLI tests all need the same
small transcript — a metadata line, three paragraphs, and a few noise
lines — plus a controllable oracle. Centralizing them keeps every test
module reading the same data.

HOW: SAMPLE_LINES is the raw blob content; fixtures return the blob,
the parsed segments, and a FakeOracle that records every request.

RULES:
- Paragraph timestamps are 00:00, 01:02, and 02:05
- The last word ends at 126.2s
- FakeOracle never touches the network
"""

import asyncio
from typing import Dict, List, Optional

import pytest

from callscout.api.models import InsightRequest, InsightResponse
from callscout.core.model import Insight
from callscout.core.parser import parse_transcript


METADATA_LINE = '{"version": 2, "callId": "test-call", "language": "en"}'

SAMPLE_LINES: List[str] = [
    '{"p": "1", "s": 0.0,   "e": 0.4,   "t": "Good", "sp": "1"}',
    '{"p": "1", "s": 0.5,   "e": 0.9,   "t": "afternoon,", "sp": "1"}',
    '{"p": "1", "s": 1.0,   "e": 1.6,   "t": "everyone.", "sp": "1"}',
    '{"type": "status", "state": "live"}',
    'this line is not json',
    '',
    '{"p": "2", "s": 62.0,  "e": 62.5,  "t": "Revenue", "sp": "2"}',
    '{"p": "2", "s": 62.6,              "t": "grew", "sp": "2"}',
    '{"p": "2", "s": 63.2,  "e": 63.9,  "t": "twelve percent.", "sp": "2"}',
    '{"p": "3", "s": 125.0, "e": 125.5, "t": "Margins", "sp": "2"}',
    '{"p": "3", "s": 125.6, "e": 126.2, "t": "compressed.", "sp": "2"}',
]

SAMPLE_BLOB = "\n".join([METADATA_LINE] + SAMPLE_LINES) + "\n"

HELLO_WORLD_BLOB = "\n".join([
    METADATA_LINE,
    '{"p":"a","s":0,"t":"Hello"}',
    '{"p":"a","s":1,"t":"world"}',
])


def make_insight(segment_id: str, text: str = "Material change.") -> Insight:
    return Insight(
        id="insight_{}".format(segment_id),
        segment_id=segment_id,
        text=text,
        created_at="2025-04-22T21:00:00.000Z",
    )


class FakeOracle:
    """Records requests and answers from a per-segment script.

    answers maps segment id → Insight text (None = no insight) or an
    Exception instance to raise. gates maps segment id → asyncio.Event
    the call waits on before answering.
    """

    def __init__(
        self,
        answers: Optional[Dict[str, object]] = None,
        gates: Optional[Dict[str, asyncio.Event]] = None,
    ) -> None:
        self.answers = answers or {}
        self.gates = gates or {}
        self.requests: List[InsightRequest] = []
        self.completed: List[str] = []

    async def generate_insight(self, request: InsightRequest) -> InsightResponse:
        self.requests.append(request)
        gate = self.gates.get(request.segment_id)
        if gate is not None:
            await gate.wait()
        answer = self.answers.get(request.segment_id, "Material change.")
        self.completed.append(request.segment_id)
        if isinstance(answer, Exception):
            raise answer
        if answer is None:
            return InsightResponse(success=True, processing_time_ms=5, timestamp="t")
        return InsightResponse(
            success=True,
            insight=make_insight(request.segment_id, str(answer)),
            processing_time_ms=5,
            timestamp="t",
        )

    @property
    def requested_ids(self) -> List[str]:
        return [r.segment_id for r in self.requests]


class FakeSource:
    """Transcript source returning a fixed blob or raising."""

    def __init__(self, blob: str = SAMPLE_BLOB, error: Optional[Exception] = None) -> None:
        self.blob = blob
        self.error = error
        self.urls: List[str] = []

    async def fetch_transcript(self, url: str) -> str:
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.blob


@pytest.fixture
def sample_blob():
    return SAMPLE_BLOB


@pytest.fixture
def sample_segments():
    """Freshly parsed segments for SAMPLE_BLOB (safe to mutate)."""
    return parse_transcript(SAMPLE_BLOB)


@pytest.fixture
def hello_world_segments():
    return parse_transcript(HELLO_WORLD_BLOB)


@pytest.fixture
def fake_oracle():
    return FakeOracle()
