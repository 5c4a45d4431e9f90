"""Line-delimited transcript parsing, record classification, and segmentation.

WHY: The transcript source is a JSON-lines blob: one metadata line, then
one small record per spoken token, interleaved with bookkeeping records
of other shapes. Everything downstream needs those tokens as Word
objects grouped into paragraph segments in a fixed order.

HOW: The first line is dropped. Every other non-blank line is decoded on
its own and classified as a WordRecord or an IgnoredRecord. Word records
are folded into an explicit accumulator keyed by paragraph id; the first
word seen for a paragraph creates its Segment and fixes its timestamp.
Finally segments are sorted by timestamp-in-seconds.

RULES:
- Line 1 is metadata and is always discarded
- A word record has a numeric start "s", a non-empty text "t", and a
  paragraph id "p"; optional end "e" and speaker "sp" (or "speaker")
- A "type" other than "entry" marks the record as ignored
- Malformed JSON on one line never aborts the parse
- Missing end time → start + 0.5s; an end before the start is clamped
- Segment order: ascending timestamp in seconds, ties in first-seen order
- Word ids derive from line position, so re-parsing is deterministic
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from callscout.config import DEFAULT_SPEAKER_ID, DEFAULT_WORD_DURATION_S
from callscout.core.model import Segment, Word, segment_id_for

logger = logging.getLogger(__name__)

_ENTRY_TYPE = "entry"
_SPEAKER_KEYS = ("sp", "speaker")


# ---------------------------------------------------------------------------
# Timestamp helpers
# ---------------------------------------------------------------------------


def format_timestamp(seconds: float) -> str:
    """Format seconds as MM:SS, or HH:MM:SS from one hour upwards.

    Fractions are truncated, negative input is treated as zero.
    """
    total = max(0, int(math.floor(seconds)))
    hours = total // 3600
    minutes = (total % 3600) // 60
    secs = total % 60
    if hours > 0:
        return "{:02d}:{:02d}:{:02d}".format(hours, minutes, secs)
    return "{:02d}:{:02d}".format(minutes, secs)


def timestamp_to_seconds(timestamp: str) -> int:
    """Convert an MM:SS or HH:MM:SS display string back to whole seconds.

    Raises ValueError for anything that is not two or three
    colon-separated integers.
    """
    parts = timestamp.strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError("Invalid timestamp: {!r}".format(timestamp))
    total = 0
    for part in parts:
        total = total * 60 + int(part)
    return total


# ---------------------------------------------------------------------------
# Record classification
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WordRecord:
    """A transcript line that carries one spoken token."""

    start_time: float
    end_time: float
    text: str
    paragraph_id: str
    speaker_id: str = DEFAULT_SPEAKER_ID


@dataclass(frozen=True)
class IgnoredRecord:
    """Any other line shape; kept only so callers can see why it was skipped."""

    reason: str


TranscriptRecord = Union[WordRecord, IgnoredRecord]


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def classify_record(
    data: Any,
    default_word_duration_s: float = DEFAULT_WORD_DURATION_S,
) -> TranscriptRecord:
    """Classify one decoded JSON value as a word record or an ignored record.

    WHY: The feed mixes token records with other message shapes. Deciding
    on explicit required fields (rather than on whatever happens to be
    present) keeps odd records from leaking half-filled words.

    HOW: Checks the discriminator first, then each required field, and
    returns an IgnoredRecord naming the first failed check.

    RULES:
    - Non-objects are ignored
    - "type" present and not "entry" → ignored
    - "s" must be a finite number (booleans do not count)
    - "t" must be a string that is non-empty after stripping
    - "p" must be a string or integer
    """
    if not isinstance(data, dict):
        return IgnoredRecord("not an object")

    record_type = data.get("type")
    if record_type is not None and record_type != _ENTRY_TYPE:
        return IgnoredRecord("record type {!r}".format(record_type))

    start = data.get("s")
    if not _is_number(start):
        return IgnoredRecord("missing or non-numeric start time")

    text = data.get("t")
    if not isinstance(text, str) or not text.strip():
        return IgnoredRecord("missing or empty text")

    paragraph = data.get("p")
    if isinstance(paragraph, bool) or not isinstance(paragraph, (str, int)):
        return IgnoredRecord("missing paragraph id")

    end = data.get("e")
    if _is_number(end):
        end_time = max(float(end), float(start))
    else:
        end_time = float(start) + default_word_duration_s

    speaker_id = DEFAULT_SPEAKER_ID
    for key in _SPEAKER_KEYS:
        if data.get(key) is not None:
            speaker_id = str(data[key])
            break

    return WordRecord(
        start_time=float(start),
        end_time=end_time,
        text=text.strip(),
        paragraph_id=str(paragraph),
        speaker_id=speaker_id,
    )


def decode_line(
    line: str,
    default_word_duration_s: float = DEFAULT_WORD_DURATION_S,
) -> TranscriptRecord:
    """Decode and classify one transcript line; malformed JSON is ignored."""
    try:
        data = json.loads(line)
    except json.JSONDecodeError as exc:
        return IgnoredRecord("malformed JSON: {}".format(exc.msg))
    return classify_record(data, default_word_duration_s)


# ---------------------------------------------------------------------------
# Fold
# ---------------------------------------------------------------------------


@dataclass
class _ParseAccumulator:
    """Working state threaded through the line fold."""

    segments: Dict[str, Segment] = field(default_factory=dict)
    word_count: int = 0
    skipped: int = 0


def _accumulate(
    acc: _ParseAccumulator,
    line_number: int,
    record: TranscriptRecord,
) -> _ParseAccumulator:
    if isinstance(record, IgnoredRecord):
        acc.skipped += 1
        logger.debug("Skipping transcript line %d: %s", line_number, record.reason)
        return acc

    word = Word(
        id="w_{}".format(line_number),
        start_time=record.start_time,
        end_time=record.end_time,
        text=record.text,
        paragraph_id=record.paragraph_id,
        speaker_id=record.speaker_id,
    )

    segment = acc.segments.get(record.paragraph_id)
    if segment is None:
        segment = Segment(
            id=segment_id_for(record.paragraph_id),
            timestamp=format_timestamp(record.start_time),
        )
        acc.segments[record.paragraph_id] = segment
    segment.append_word(word)
    acc.word_count += 1
    return acc


def parse_transcript(
    blob: str,
    default_word_duration_s: float = DEFAULT_WORD_DURATION_S,
) -> List[Segment]:
    """Parse a complete line-delimited transcript into ordered segments.

    WHY: The transcript is fetched once as a whole; the rest of the
    session works on the ordered segment list this returns.

    HOW: Drops the metadata line, decodes and classifies each remaining
    non-blank line, folds word records into per-paragraph segments, and
    sorts the segments by their timestamp in seconds.

    RULES:
    - Pure and single-shot: the same blob always yields equal output
    - Blank lines are skipped without being counted
    - Lines split on newline only; a trailing carriage return is JSON whitespace
    - Never raises for malformed lines

    Args:
        blob: The full transcript text, metadata line included.
        default_word_duration_s: Duration assumed when a record has no end.

    Returns:
        Segments sorted ascending by timestamp-in-seconds.
    """
    lines = blob.split("\n")[1:]

    acc = _ParseAccumulator()
    for offset, line in enumerate(lines):
        if not line.strip():
            continue
        line_number = offset + 2  # 1-based, after the metadata line
        acc = _accumulate(acc, line_number, decode_line(line, default_word_duration_s))

    segments = sorted(
        acc.segments.values(),
        key=lambda seg: timestamp_to_seconds(seg.timestamp),
    )

    logger.info(
        "Parsed %d words into %d segments (%d lines skipped)",
        acc.word_count, len(segments), acc.skipped,
    )
    return segments
