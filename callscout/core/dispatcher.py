"""Segment completion detection and exactly-once insight dispatch.

WHY: Commentary is requested once a paragraph has fully played. The
player reports its position several times a second, so the same
completed segment is observed again and again — and after a seek it can
be observed again much later. The oracle must still be asked at most
once per segment for the whole session, and its answers arrive
asynchronously, in any order, and sometimes not at all.

HOW: detect_completions() is a synchronous pass over the ordered
segments. For each complete segment it claims the segment id in the
ProcessedSet (one locked check-and-insert) and only then returns a
DispatchIntent carrying the request context. CompletionDispatcher runs
that pass on each update and launches one fire-and-forget asyncio task
per intent. When a task's response carries an insight, the insight is
attached to the segment named by its segment_id and nothing else is
touched.

RULES:
- Complete at t: every word has start_time <= t and the segment has words
- The id is claimed before the request is issued; a claimed id is never
  released, whatever the outcome, and is not reset on seek
- History for segment k is the text of segments 0..k-1 in sorted order,
  whether or not those segments have insights
- No await between claim and task creation
- Oracle errors and "no insight" answers are logged, never retried, and
  never raised into callers
- After close(), late responses are discarded
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import List, Optional, Protocol, Set

from callscout.api.models import InsightRequest, InsightResponse
from callscout.core.model import Segment
from callscout.core.sync import is_segment_complete

logger = logging.getLogger(__name__)


class InsightOracle(Protocol):
    """Anything that can turn an InsightRequest into an InsightResponse."""

    async def generate_insight(self, request: InsightRequest) -> InsightResponse:
        ...


class ProcessedSet:
    """Segment ids for which an insight request has already been dispatched.

    WHY: This is the single record behind the at-most-once guarantee. It
    must survive failed requests, so ids are added before dispatch and
    never removed.

    HOW: A plain set guarded by a threading.Lock. claim() is the only
    way in and performs check-and-insert as one step.
    """

    def __init__(self, ids: Iterable[str] = ()) -> None:
        self._ids: Set[str] = set(ids)
        self._lock = threading.Lock()

    def claim(self, segment_id: str) -> bool:
        """Add segment_id; return False if it was already present."""
        with self._lock:
            if segment_id in self._ids:
                return False
            self._ids.add(segment_id)
            return True

    def __contains__(self, segment_id: object) -> bool:
        with self._lock:
            return segment_id in self._ids

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)

    def snapshot(self) -> frozenset:
        with self._lock:
            return frozenset(self._ids)


@dataclass(frozen=True)
class DispatchIntent:
    """A claimed segment and the request to send for it."""

    segment_id: str
    request: InsightRequest


def build_history(segments: Sequence[Segment], index: int) -> str:
    """Text of every segment sorted before position index, joined by spaces."""
    return " ".join(seg.text for seg in segments[:index] if seg.words)


def detect_completions(
    segments: Sequence[Segment],
    current_time: float,
    processed: ProcessedSet,
) -> List[DispatchIntent]:
    """Claim every newly completed segment and return its dispatch intent.

    WHY: This is the decision half of dispatch, kept synchronous and free
    of I/O so it can be reasoned about (and tested) on its own.

    HOW: Walks segments in order, keeping a running history string. For
    a complete segment whose id can be claimed, builds the request from
    the history accumulated so far.

    RULES:
    - Returns intents in segment order
    - A segment already in processed is skipped silently
    - Claiming is the side effect; calling twice at the same time
      returns an empty list the second time

    Args:
        segments: Ordered segments from the parser.
        current_time: Playback cursor in seconds.
        processed: The session's processed-set.

    Returns:
        One DispatchIntent per segment claimed by this call.
    """
    intents: List[DispatchIntent] = []
    history_parts: List[str] = []

    for segment in segments:
        if is_segment_complete(segment, current_time) and processed.claim(segment.id):
            intents.append(DispatchIntent(
                segment_id=segment.id,
                request=InsightRequest(
                    conversation_history=" ".join(history_parts),
                    current_sentence=segment.text,
                    timestamp=segment.timestamp,
                    segment_id=segment.id,
                ),
            ))
        if segment.words:
            history_parts.append(segment.text)

    return intents


def apply_insight_response(
    segments: Sequence[Segment],
    response: InsightResponse,
    expected_segment_id: Optional[str] = None,
) -> Optional[Segment]:
    """Attach the response's insight to its segment; return that segment.

    Returns None (and changes nothing) when the response has no insight
    or names a segment that does not exist.
    """
    if not response.has_insight:
        return None

    insight = response.insight
    if expected_segment_id is not None and insight.segment_id != expected_segment_id:
        logger.warning(
            "Insight %s answers segment %s but was requested for %s",
            insight.id, insight.segment_id, expected_segment_id,
        )

    for segment in segments:
        if segment.id == insight.segment_id:
            segment.attach_insight(insight)
            return segment

    logger.warning("Insight %s names unknown segment %s", insight.id, insight.segment_id)
    return None


class CompletionDispatcher:
    """Runs completion detection on each update and fires insight requests.

    WHY: The session needs a single object that owns the processed-set
    and the in-flight requests, so that completion checks from rapid
    successive updates cannot double-dispatch.

    HOW: on_time_or_segments_changed() must be called from inside a
    running event loop. It claims ids via detect_completions() and then
    creates one task per intent. Each task awaits the oracle, then merges
    the answer into the segment list it was launched with and notifies
    the on_insight listener.

    RULES:
    - Requests for different segments may overlap and finish in any order
    - No request is cancelled; close() only makes late answers a no-op
    - drain() awaits everything in flight (tests and CLI shutdown)
    """

    def __init__(
        self,
        oracle: InsightOracle,
        processed: Optional[ProcessedSet] = None,
        on_insight: Optional[Callable[[Segment], None]] = None,
    ) -> None:
        self._oracle = oracle
        self.processed = processed if processed is not None else ProcessedSet()
        self._on_insight = on_insight
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    @property
    def closed(self) -> bool:
        return self._closed

    def on_time_or_segments_changed(
        self,
        segments: Sequence[Segment],
        current_time: float,
    ) -> List[DispatchIntent]:
        """Detect newly completed segments and launch their requests.

        Raises RuntimeError when called outside a running event loop,
        before any segment is claimed.
        """
        if self._closed:
            return []

        loop = asyncio.get_running_loop()
        intents = detect_completions(segments, current_time, self.processed)
        for intent in intents:
            task = loop.create_task(
                self._dispatch(segments, intent),
                name="insight-{}".format(intent.segment_id),
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        return intents

    async def _dispatch(self, segments: Sequence[Segment], intent: DispatchIntent) -> None:
        logger.info(
            "Requesting insight for segment %s at %s",
            intent.segment_id, intent.request.timestamp,
        )
        try:
            response = await self._oracle.generate_insight(intent.request)
        except Exception:
            logger.exception("Insight request failed for segment %s", intent.segment_id)
            return

        if self._closed:
            logger.debug("Session closed; discarding answer for %s", intent.segment_id)
            return

        if not response.has_insight:
            logger.info("No insight for segment %s", intent.segment_id)
            return

        segment = apply_insight_response(segments, response, intent.segment_id)
        if segment is None or self._on_insight is None:
            return
        try:
            self._on_insight(segment)
        except Exception:
            logger.exception("Insight listener failed for segment %s", segment.id)

    async def drain(self) -> None:
        """Wait until no requests are in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        self._closed = True
