"""One playback session: transcript load, time updates, insights, and scrolling.

WHY: The parser, sync engine, dispatcher, and viewport controller are
independent pieces. Something has to own the segment list for a single
listening session, feed every playback event through them in the right
order, and contain failures so a bad fetch or a flaky insight service
never stops the transcript from following the audio.

HOW: PlaybackSession is driven by discrete events from its host:
load() once, on_time_update() on every timeupdate, on_playback_error()
when the player complains, and close() at the end. Each time update
builds a fresh view, tells the viewport controller when visible content
changed, and lets the dispatcher fire requests for newly completed
segments. Insights merged by the dispatcher also count as content
changes.

RULES:
- State: IDLE → LOADING → READY | FAILED
- A failed fetch is a session-level error; later time updates return an
  empty view and dispatch nothing
- Playback errors are recorded as warnings; synchronization continues
- on_time_update() must run inside the event loop that owns the session
- After close(), no new requests are issued and late answers are dropped
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import List, Optional, Protocol

from callscout.config import CURRENT_SEGMENT_BUFFER_S
from callscout.core.dispatcher import CompletionDispatcher, InsightOracle
from callscout.core.model import Segment
from callscout.core.parser import parse_transcript
from callscout.core.sync import TranscriptView, build_view
from callscout.core.viewport import ScrollAction, ViewportController

logger = logging.getLogger(__name__)


class TranscriptSource(Protocol):
    async def fetch_transcript(self, url: str) -> str:
        ...


class SessionState(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class PlaybackWarning:
    """A problem reported by the audio player."""

    message: str
    fatal: bool = False


class PlaybackSession:
    """Composes parsing, synchronization, dispatch, and follow state.

    Args:
        transcript_url: Where the transcript blob lives.
        source: Fetches the blob (a TranscriptClient in production).
        oracle: Answers insight requests (an InsightClient in production).
        viewport: Follow controller; a default one is created if omitted.
        on_scroll: Called with a ScrollAction whenever the view should move.
        on_insight: Called with the segment that just received an insight.
        current_buffer_s: Highlight buffer passed to the sync engine.
    """

    def __init__(
        self,
        transcript_url: str,
        source: Optional[TranscriptSource],
        oracle: InsightOracle,
        viewport: Optional[ViewportController] = None,
        on_scroll: Optional[Callable[[ScrollAction], None]] = None,
        on_insight: Optional[Callable[[Segment], None]] = None,
        current_buffer_s: float = CURRENT_SEGMENT_BUFFER_S,
    ) -> None:
        self.transcript_url = transcript_url
        self._source = source
        self.viewport = viewport if viewport is not None else ViewportController()
        self.dispatcher = CompletionDispatcher(oracle, on_insight=self._handle_insight)
        self._on_scroll = on_scroll
        self._on_insight = on_insight
        self._current_buffer_s = current_buffer_s

        self.state = SessionState.IDLE
        self.error: Optional[str] = None
        self.warnings: List[PlaybackWarning] = []
        self.segments: List[Segment] = []
        self.last_view: Optional[TranscriptView] = None
        self._last_visible_ids: frozenset = frozenset()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self) -> List[Segment]:
        """Fetch and parse the transcript; on failure enter FAILED.

        Never raises for fetch failures — they become self.error.
        """
        if self._source is None:
            raise RuntimeError("No transcript source configured; use load_blob()")

        self.state = SessionState.LOADING
        try:
            blob = await self._source.fetch_transcript(self.transcript_url)
        except Exception as exc:
            logger.error("Transcript fetch failed for %s: %s", self.transcript_url, exc)
            self.state = SessionState.FAILED
            self.error = str(exc)
            return []
        return self.load_blob(blob)

    def load_blob(self, blob: str) -> List[Segment]:
        """Parse an already-available transcript blob and become READY."""
        self.segments = parse_transcript(blob)
        self.state = SessionState.READY
        self.error = None
        return self.segments

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self.dispatcher.closed

    def on_time_update(self, current_time: float) -> TranscriptView:
        """Handle one playback position report.

        Returns the view for current_time. Also emits a scroll action when
        visible content changed and dispatches newly completed segments.
        """
        if self.state is not SessionState.READY:
            view = build_view([], current_time, self._current_buffer_s)
            self.last_view = view
            return view

        view = build_view(self.segments, current_time, self._current_buffer_s)
        self.last_view = view

        visible_ids = view.visible_word_ids
        if visible_ids != self._last_visible_ids:
            self._last_visible_ids = visible_ids
            self._notify_content_changed()

        if not self.closed:
            self.dispatcher.on_time_or_segments_changed(self.segments, current_time)
        return view

    def on_playback_error(self, message: str, fatal: bool = False) -> None:
        """Record a player error; the cursor is treated as stalled, not dead."""
        warning = PlaybackWarning(message=message, fatal=fatal)
        self.warnings.append(warning)
        logger.warning("Playback %s error: %s", "fatal" if fatal else "non-fatal", message)

    def jump_to_live(self) -> None:
        self._emit_scroll(self.viewport.jump_to_live())

    def close(self) -> None:
        """End the session; in-flight requests finish but are ignored."""
        self.dispatcher.close()
        logger.info(
            "Session closed (%d segments, %d dispatched)",
            len(self.segments), len(self.dispatcher.processed),
        )

    async def drain(self) -> None:
        """Wait for every in-flight insight request to settle."""
        await self.dispatcher.drain()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _handle_insight(self, segment: Segment) -> None:
        self._notify_content_changed()
        if self._on_insight is not None:
            self._on_insight(segment)

    def _notify_content_changed(self) -> None:
        self._emit_scroll(self.viewport.on_content_changed())

    def _emit_scroll(self, action: Optional[ScrollAction]) -> None:
        if action is not None and self._on_scroll is not None:
            self._on_scroll(action)
