"""Unit tests for the playback synchronization engine.

WHY: The view decides what the listener sees and which paragraph is
highlighted. It is recomputed several times a second and after every
seek, so it must be a pure function of (segments, current_time).

HOW: Tests cover visibility, currency with and without the highlight
buffer, the before-start and after-end edges, monotonic visibility,
and seek behaviour.
"""

import pytest

from callscout.core.model import Segment, Word
from callscout.core.sync import (
    build_segment_view,
    build_view,
    is_segment_complete,
    is_word_current,
    visible_words,
)


def _texts(words):
    return [w.text for w in words]


class TestHelloWorldVisibility:

    def test_half_second(self, hello_world_segments):
        view = build_view(hello_world_segments, 0.5)
        seg_view = view.segments[0]
        assert _texts(seg_view.visible_words) == ["Hello"]
        assert seg_view.is_visible
        assert not seg_view.is_complete

    def test_two_seconds(self, hello_world_segments):
        seg_view = build_view(hello_world_segments, 2.0).segments[0]
        assert _texts(seg_view.visible_words) == ["Hello", "world"]
        assert seg_view.is_complete
        assert seg_view.visible_text == "Hello world"

    def test_current_word(self, hello_world_segments):
        assert build_view(hello_world_segments, 0.25).segments[0].current_word.text == "Hello"
        assert build_view(hello_world_segments, 1.2).segments[0].current_word.text == "world"

    def test_gap_between_words_has_no_current_word(self, hello_world_segments):
        seg_view = build_view(hello_world_segments, 0.75).segments[0]
        assert seg_view.current_word is None
        # still highlighted thanks to the buffer
        assert seg_view.is_current


class TestEdges:

    def test_before_first_word_nothing_visible(self, sample_segments):
        view = build_view(sample_segments, -1.0)
        assert view.visible_segments == ()
        assert view.current_segment is None
        assert view.visible_word_count == 0

    def test_after_last_word_all_visible_none_current(self, sample_segments):
        view = build_view(sample_segments, 500.0)
        assert len(view.visible_segments) == 3
        assert all(s.is_complete for s in view.segments)
        assert view.current_segment is None

    def test_empty_segment_list(self):
        view = build_view([], 10.0)
        assert view.segments == ()
        assert view.current_segment is None

    def test_segment_without_words(self):
        empty = Segment(id="seg_x", timestamp="00:00")
        seg_view = build_segment_view(empty, 10.0)
        assert not seg_view.is_visible
        assert not seg_view.is_complete
        assert not seg_view.is_current
        assert not is_segment_complete(empty, 10.0)


class TestCurrentSegment:

    def test_current_within_last_word(self, sample_segments):
        view = build_view(sample_segments, 62.55)
        assert view.current_segment.segment.id == "seg_2"

    def test_buffer_keeps_highlight_after_word_end(self, sample_segments):
        # "everyone." ends at 1.6; buffer of 2s keeps seg_1 current until 3.6
        assert build_view(sample_segments, 3.5).current_segment.segment.id == "seg_1"
        assert build_view(sample_segments, 3.7).current_segment is None

    def test_zero_buffer(self, sample_segments):
        view = build_view(sample_segments, 1.7, current_buffer_s=0.0)
        assert view.current_segment is None

    def test_previous_segment_not_current_once_next_starts(self, sample_segments):
        view = build_view(sample_segments, 125.2)
        assert [s.segment.id for s in view.segments if s.is_current] == ["seg_3"]

    @pytest.mark.parametrize("t, expected", [
        (0.99, False),
        (1.0, True),
        (1.6, True),
        (1.61, False),
    ])
    def test_word_current_bounds_inclusive(self, t, expected):
        word = Word(id="w", start_time=1.0, end_time=1.6, text="x", paragraph_id="p")
        assert is_word_current(word, t) is expected


class TestPurity:

    def test_same_inputs_same_view(self, sample_segments):
        assert build_view(sample_segments, 63.0) == build_view(sample_segments, 63.0)

    def test_seek_backward_shrinks_view(self, sample_segments):
        forward = build_view(sample_segments, 130.0)
        back = build_view(sample_segments, 0.6)
        assert forward.visible_word_count == 8
        assert back.visible_word_count == 2
        assert back.visible_segments[0].segment.id == "seg_1"

    def test_does_not_mutate_segments(self, sample_segments):
        before = [list(s.words) for s in sample_segments]
        build_view(sample_segments, 64.0)
        assert [list(s.words) for s in sample_segments] == before


class TestMonotonicVisibility:

    def test_visible_set_grows_with_time(self, sample_segments):
        times = [-1.0, 0.0, 0.45, 1.0, 30.0, 62.0, 62.6, 63.5, 125.0, 126.2, 400.0]
        previous = frozenset()
        for t in times:
            current = build_view(sample_segments, t).visible_word_ids
            assert previous <= current
            previous = current

    def test_visible_words_preserve_order(self, sample_segments):
        shown = visible_words(sample_segments[1], 63.0)
        assert _texts(shown) == ["Revenue", "grew"]
