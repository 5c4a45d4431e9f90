"""Core transcript model, parsing, synchronization, dispatch, and viewport logic.

WHY: The core package holds every piece of non-trivial logic — the
segment model, the parser, the pure playback view, the exactly-once
completion dispatcher, and the follow/browse state machine. None of it
depends on HTTP, rendering, or audio decoding.

HOW: model.py defines the data structures, parser.py builds them from a
line-delimited blob, sync.py derives the view for a playback time,
dispatcher.py turns completed segments into insight requests, and
viewport.py decides when to auto-scroll.

RULES:
- Model dataclasses are the contract — change with care
- sync.build_view is pure; it holds no state between calls
- The processed-set is the only record of which segments were dispatched
"""
