"""Transcript data model: words, segments, and insights.

WHY: The parser, the sync engine, the dispatcher, and the viewport
controller all talk about the same three things — timed words,
paragraph segments, and the commentary attached to a segment. Typed
dataclasses make those shapes explicit and keep mutation rules in one
place.

HOW: Three dataclasses form a hierarchy:
  Word    — one timed token, immutable once created
  Segment — the words of one paragraph plus an optional insight
  Insight — a short commentary produced by the annotation oracle

RULES:
- Word is frozen; end_time >= start_time always holds
- Segment.id is "seg_" + paragraph_id
- Segment.timestamp is fixed at creation (first word's start time)
- Segments change only via append_word() and attach_insight()
- An Insight back-references its segment by id, it does not own it
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

SEGMENT_ID_PREFIX = "seg_"


def segment_id_for(paragraph_id: str) -> str:
    """Derive the segment id for a paragraph id."""
    return SEGMENT_ID_PREFIX + paragraph_id


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string with millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_insight_id() -> str:
    """Generate an insight id of the form insight_<epoch-ms>_<9 chars>."""
    return "insight_{}_{}".format(int(time.time() * 1000), uuid.uuid4().hex[:9])


@dataclass(frozen=True)
class Word:
    """A single spoken token with timing.

    RULES:
    - text: non-empty, usually carries trailing punctuation ("growth,")
    - start_time / end_time: float seconds from the start of the recording
    - paragraph_id: groups the word into exactly one segment
    - speaker_id: "0" when the source record has no speaker
    """

    id: str
    start_time: float
    end_time: float
    text: str
    paragraph_id: str
    speaker_id: str = "0"


@dataclass
class Insight:
    """A short commentary attached to one segment.

    WHY: The annotation oracle returns commentary as JSON. Typed access
    keeps the camelCase wire names out of the rest of the code.

    RULES:
    - id is globally unique
    - segment_id is the correlation id used to find the target segment
    - created_at is when the insight object was made, not when the
      statement was spoken
    """

    id: str
    segment_id: str
    text: str
    created_at: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Insight:
        """Parse an Insight from the oracle's JSON object.

        Raises KeyError when a required field is missing.
        """
        return cls(
            id=str(data["id"]),
            segment_id=str(data["segmentId"]),
            text=str(data["text"]),
            created_at=str(data.get("createdAt") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "segmentId": self.segment_id,
            "text": self.text,
            "createdAt": self.created_at,
        }


@dataclass
class Segment:
    """The words of one transcript paragraph, in arrival order.

    WHY: Commentary is requested per paragraph, and the view shows one
    block per paragraph. Grouping words here means the dispatcher and
    the sync engine never have to regroup.

    HOW: Created by the parser when a paragraph id is first seen, then
    extended with append_word(). The dispatcher calls attach_insight()
    when the oracle answers.

    RULES:
    - words is append-only
    - timestamp never changes after creation
    - at most one insight; a later one replaces it and is logged
    """

    id: str
    timestamp: str
    words: list[Word] = field(default_factory=list)
    insight: Insight | None = None

    @property
    def text(self) -> str:
        """All word texts joined with single spaces."""
        return " ".join(w.text for w in self.words)

    @property
    def start_time(self) -> float | None:
        return self.words[0].start_time if self.words else None

    def append_word(self, word: Word) -> None:
        self.words.append(word)

    def attach_insight(self, insight: Insight) -> None:
        """Attach an insight to this segment.

        Only one insight is ever requested per segment. If a second one
        arrives it replaces the first rather than disappearing, and the
        replacement is logged.
        """
        if self.insight is not None and self.insight.id != insight.id:
            logger.warning(
                "Segment %s already has insight %s; replacing with %s",
                self.id, self.insight.id, insight.id,
            )
        self.insight = insight
