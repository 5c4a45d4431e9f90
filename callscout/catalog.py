"""Static catalog of earnings calls available for playback.

WHY: The CLI needs a short list of known recordings to replay by id
without the user pasting stream and transcript URLs.

RULES:
- status is one of "live", "completed", "upcoming"
- upcoming calls have no audio or transcript URL yet
- ids are stable, lowercase, hyphenated
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

_QUARTR_STREAMS = "https://files.quartr.com/streams"


@dataclass(frozen=True)
class EarningCall:
    id: str
    company: str
    quarter: str
    year: int
    date: str
    status: str
    audio_url: Optional[str] = None
    transcript_url: Optional[str] = None
    description: Optional[str] = None

    @property
    def title(self) -> str:
        return "{} {} {} Earnings Call".format(self.company, self.quarter, self.year)


def _stream(path: str) -> dict:
    base = "{}/{}".format(_QUARTR_STREAMS, path)
    return {
        "audio_url": base + "/playlists.m3u8",
        "transcript_url": base + "/live_transcript.jsonl",
    }


EARNING_CALLS: List[EarningCall] = [
    EarningCall(
        id="tesla-q1-2025",
        company="Tesla",
        quarter="Q1",
        year=2025,
        date="April 22, 2025",
        status="completed",
        **_stream("2025-04-22/ec5ba86e-e8e7-4681-bea1-b1bf6085604b/1"),
    ),
    EarningCall(
        id="apple-q2-2025",
        company="Apple",
        quarter="Q2",
        year=2025,
        date="May 1, 2025",
        status="live",
        **_stream("2025-05-01/e37c88b7-cb01-4170-87c8-960681d8add1/4"),
    ),
    EarningCall(
        id="microsoft-q1-2025",
        company="Microsoft",
        quarter="Q1",
        year=2025,
        date="April 30, 2025",
        status="completed",
        **_stream("2025-04-30/a2504d42-8793-40ef-bd87-7b6c7e19574f/3"),
    ),
    EarningCall(
        id="nvidia-q2-2025",
        company="NVIDIA",
        quarter="Q2",
        year=2025,
        date="August 27, 2025",
        status="upcoming",
    ),
]


def get_call_by_id(call_id: str) -> Optional[EarningCall]:
    for call in EARNING_CALLS:
        if call.id == call_id:
            return call
    return None


def get_live_calls() -> List[EarningCall]:
    return [c for c in EARNING_CALLS if c.status == "live"]


def get_completed_calls() -> List[EarningCall]:
    return [c for c in EARNING_CALLS if c.status == "completed"]


def get_upcoming_calls() -> List[EarningCall]:
    return [c for c in EARNING_CALLS if c.status == "upcoming"]
