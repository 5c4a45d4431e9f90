"""Playback-time synchronization: which words and segments are visible and current.

WHY: The transcript is revealed in lockstep with the audio. Every time
the player reports a new position the view must say which words have
been spoken, which word is being spoken, and which paragraph should be
highlighted. Keeping that as patched state invites stale flags after a
seek; deriving it fresh from (segments, current_time) does not.

HOW: build_view() walks the ordered segments once and produces an
immutable TranscriptView of SegmentView rows. Nothing is cached between
calls, so it is safe to call on every timeupdate event, forwards or
backwards.

RULES:
- A word is visible iff start_time <= current_time
- A word is current iff start_time <= current_time <= end_time
- A segment is visible iff it has at least one visible word
- A segment is complete iff all its words are visible and it has words
- A segment is current iff its last visible word is current, with the
  end extended by the highlight buffer (default 2s)
- Before the first word nothing is visible; after the last word plus
  the buffer everything is visible and nothing is current
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from callscout.config import CURRENT_SEGMENT_BUFFER_S
from callscout.core.model import Segment, Word


def is_word_visible(word: Word, current_time: float) -> bool:
    return word.start_time <= current_time


def is_word_current(word: Word, current_time: float, buffer_s: float = 0.0) -> bool:
    """True when current_time falls in [start_time, end_time + buffer_s]."""
    return word.start_time <= current_time <= word.end_time + buffer_s


def visible_words(segment: Segment, current_time: float) -> Tuple[Word, ...]:
    """Words of the segment already reached by the playback cursor, in order."""
    return tuple(w for w in segment.words if is_word_visible(w, current_time))


def is_segment_complete(segment: Segment, current_time: float) -> bool:
    """Every word has started and the segment is not empty."""
    if not segment.words:
        return False
    return all(is_word_visible(w, current_time) for w in segment.words)


@dataclass(frozen=True)
class SegmentView:
    """One segment as seen at a particular playback time."""

    segment: Segment
    visible_words: Tuple[Word, ...]
    current_word: Optional[Word]
    is_current: bool

    @property
    def is_visible(self) -> bool:
        return len(self.visible_words) > 0

    @property
    def is_complete(self) -> bool:
        return bool(self.segment.words) and len(self.visible_words) == len(self.segment.words)

    @property
    def visible_text(self) -> str:
        return " ".join(w.text for w in self.visible_words)


@dataclass(frozen=True)
class TranscriptView:
    """The whole transcript at one playback time."""

    current_time: float
    segments: Tuple[SegmentView, ...]

    @property
    def visible_segments(self) -> Tuple[SegmentView, ...]:
        return tuple(s for s in self.segments if s.is_visible)

    @property
    def current_segment(self) -> Optional[SegmentView]:
        for seg_view in self.segments:
            if seg_view.is_current:
                return seg_view
        return None

    @property
    def visible_word_count(self) -> int:
        return sum(len(s.visible_words) for s in self.segments)

    @property
    def visible_word_ids(self) -> frozenset:
        return frozenset(w.id for s in self.segments for w in s.visible_words)

    @property
    def insight_count(self) -> int:
        return sum(1 for s in self.segments if s.segment.insight is not None)


def build_segment_view(
    segment: Segment,
    current_time: float,
    current_buffer_s: float = CURRENT_SEGMENT_BUFFER_S,
) -> SegmentView:
    shown = visible_words(segment, current_time)
    current_word = None
    for word in shown:
        if is_word_current(word, current_time):
            current_word = word
    is_current = bool(shown) and is_word_current(shown[-1], current_time, current_buffer_s)
    return SegmentView(
        segment=segment,
        visible_words=shown,
        current_word=current_word,
        is_current=is_current,
    )


def build_view(
    segments: Sequence[Segment],
    current_time: float,
    current_buffer_s: float = CURRENT_SEGMENT_BUFFER_S,
) -> TranscriptView:
    """Derive the transcript view for one playback position.

    Args:
        segments: Ordered segments from the parser (possibly empty).
        current_time: Playback cursor in seconds.
        current_buffer_s: Highlight buffer after the last visible word.

    Returns:
        A TranscriptView with one SegmentView per segment, same order.
    """
    return TranscriptView(
        current_time=current_time,
        segments=tuple(
            build_segment_view(seg, current_time, current_buffer_s)
            for seg in segments
        ),
    )
