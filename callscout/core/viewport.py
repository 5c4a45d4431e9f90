"""Viewport follow/browse state machine for the transcript pane.

WHY: While the transcript grows, the pane should stay pinned to the
newest words — unless the reader has scrolled up to reread something,
in which case yanking them back down is hostile. Ad hoc flags plus a
timeout handle tend to flicker between the two behaviours or miss the
moment the reader returns to the bottom.

HOW: Two named states and guarded transitions. The host feeds user
scroll measurements, content-change notifications, and periodic resume
checks; the controller answers with the state and, where relevant, a
ScrollAction. Time comes from an injectable clock so the quiet period
can be tested without sleeping.

RULES:
- Initial state is FOLLOWING
- FOLLOWING → BROWSING: an upward user scroll that leaves the view more
  than near_bottom_px from the bottom
- BROWSING → FOLLOWING: jump_to_live(), or check_resume() once
  quiet_period_s has passed since the last scroll input and the view is
  within near_bottom_px of the bottom
- Scroll input while BROWSING restarts the quiet period
- Programmatic scrolls are reported via on_programmatic_scroll() and
  never count as user input
- Content changes produce SCROLL_TO_BOTTOM only while FOLLOWING
"""

from __future__ import annotations

import enum
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

from callscout.config import NEAR_BOTTOM_THRESHOLD_PX, SCROLL_QUIET_PERIOD_S

logger = logging.getLogger(__name__)


class FollowState(str, enum.Enum):
    FOLLOWING = "following"
    BROWSING = "browsing"


class ScrollAction(str, enum.Enum):
    SCROLL_TO_BOTTOM = "scroll_to_bottom"


@dataclass(frozen=True)
class ScrollMetrics:
    """A measurement of the scroll container, in pixels."""

    scroll_top: float
    scroll_height: float
    client_height: float

    @property
    def distance_from_bottom(self) -> float:
        return max(0.0, self.scroll_height - self.scroll_top - self.client_height)


class ViewportController:
    """Decides when the transcript pane auto-scrolls.

    WHY: The session and the renderer both need one answer to "should we
    scroll now?" that accounts for what the reader is doing.

    HOW: Tracks the state, the last known scroll offset (to tell upward
    from downward movement), and the time of the last user scroll input.
    """

    def __init__(
        self,
        near_bottom_px: float = NEAR_BOTTOM_THRESHOLD_PX,
        quiet_period_s: float = SCROLL_QUIET_PERIOD_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.near_bottom_px = near_bottom_px
        self.quiet_period_s = quiet_period_s
        self._clock = clock
        self._state = FollowState.FOLLOWING
        self._last_scroll_top: Optional[float] = None
        self._last_input_at: Optional[float] = None

    @property
    def state(self) -> FollowState:
        return self._state

    @property
    def show_jump_to_live(self) -> bool:
        """Whether the "jump to live" affordance should be visible."""
        return self._state is FollowState.BROWSING

    def _transition(self, new_state: FollowState, reason: str) -> None:
        if new_state is self._state:
            return
        logger.debug("Viewport %s → %s (%s)", self._state.value, new_state.value, reason)
        self._state = new_state

    def is_near_bottom(self, metrics: ScrollMetrics) -> bool:
        return metrics.distance_from_bottom <= self.near_bottom_px

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def on_user_scroll(
        self,
        metrics: ScrollMetrics,
        delta_y: Optional[float] = None,
    ) -> FollowState:
        """Record a user scroll gesture and leave FOLLOWING if it moved away.

        Args:
            metrics: Container measurement after the gesture.
            delta_y: Wheel/touch delta when known (negative = upward).
                Without it, direction is inferred from the previous offset;
                with no previous offset either, the gesture counts as upward
                (the pane starts pinned to the bottom).

        Returns:
            The state after handling the gesture.
        """
        previous_top = self._last_scroll_top
        self._last_scroll_top = metrics.scroll_top
        self._last_input_at = self._clock()

        if delta_y is not None:
            moving_up = delta_y < 0
        else:
            moving_up = previous_top is None or metrics.scroll_top < previous_top

        if (
            self._state is FollowState.FOLLOWING
            and moving_up
            and not self.is_near_bottom(metrics)
        ):
            self._transition(FollowState.BROWSING, "user scrolled up")
        return self._state

    def on_programmatic_scroll(self, metrics: ScrollMetrics) -> None:
        """Update the offset baseline after a scroll we issued ourselves."""
        self._last_scroll_top = metrics.scroll_top

    def on_content_changed(self) -> Optional[ScrollAction]:
        """New words, segments, or an insight appeared in the view."""
        if self._state is FollowState.FOLLOWING:
            return ScrollAction.SCROLL_TO_BOTTOM
        return None

    def resume_check_due_at(self) -> Optional[float]:
        """Clock time at which check_resume() can next succeed, if browsing."""
        if self._state is not FollowState.BROWSING:
            return None
        if self._last_input_at is None:
            return self._clock()
        return self._last_input_at + self.quiet_period_s

    def check_resume(self, metrics: ScrollMetrics) -> FollowState:
        """Re-measure after the quiet period and resume following if at bottom."""
        if self._state is not FollowState.BROWSING:
            return self._state

        now = self._clock()
        quiet = (
            self._last_input_at is None
            or now - self._last_input_at >= self.quiet_period_s
        )
        if quiet and self.is_near_bottom(metrics):
            self._transition(FollowState.FOLLOWING, "settled near bottom")
        return self._state

    def jump_to_live(self) -> ScrollAction:
        """Explicit user request to return to the live edge."""
        self._transition(FollowState.FOLLOWING, "jump to live")
        return ScrollAction.SCROLL_TO_BOTTOM
