"""Command-line interface for CallScout.

WHY: The core is meant to be embedded in a player, but it is useful to
watch it work from a terminal: replay a call's transcript against a
simulated clock, see each paragraph as it completes, and see the
insights land as the service answers. The same entry point lists the
catalog and starts the insight service.

HOW: argparse with three subcommands:
  calls   — print the catalog
  replay  — play a catalog id, local .jsonl file, or URL through a
            PlaybackSession driven by SimulatedPlayback
  serve   — run the FastAPI insight service with uvicorn
Status messages go to stderr; transcript and insights go to stdout.

RULES:
- Exit code 0 on success, 1 on a failed transcript load or bad source
- --speed scales playback time against wall-clock time
- --no-insights replays without contacting the insight service
- In-flight insight requests are awaited before the session closes
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from collections.abc import Callable
from pathlib import Path
from typing import List, Optional, Set

from callscout.api.client import InsightClient, TranscriptClient
from callscout.api.models import InsightRequest, InsightResponse
from callscout.catalog import EARNING_CALLS, get_call_by_id
from callscout.config import CURRENT_SEGMENT_BUFFER_S, INSIGHT_BASE_URL, SERVER_HOST, SERVER_PORT
from callscout.core.model import Segment
from callscout.core.sync import TranscriptView
from callscout.session import PlaybackSession, SessionState


def _status(msg: str) -> None:
    """Print a status message to stderr so stdout stays pipeable."""
    print(msg, file=sys.stderr, flush=True)


class SimulatedPlayback:
    """A playback cursor that advances with wall-clock time.

    Stands in for the audio player: it only exposes current_time.
    """

    def __init__(
        self,
        start_time: float = 0.0,
        speed: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if speed <= 0:
            raise ValueError("speed must be positive")
        self._start_time = start_time
        self._speed = speed
        self._clock = clock
        self._origin = clock()

    @property
    def current_time(self) -> float:
        return self._start_time + (self._clock() - self._origin) * self._speed


class _SilentOracle:
    """Oracle that never has anything to say."""

    async def generate_insight(self, request: InsightRequest) -> InsightResponse:
        return InsightResponse(success=True)


def _resolve_source(source: str) -> tuple:
    """Return (kind, location) where kind is "file" or "url".

    Raises ValueError for unknown ids and calls without a transcript.
    """
    call = get_call_by_id(source)
    if call is not None:
        if not call.transcript_url:
            raise ValueError("Call '{}' has no transcript yet ({})".format(call.id, call.status))
        return "url", call.transcript_url

    if source.startswith(("http://", "https://")):
        return "url", source

    path = Path(source)
    if path.is_file():
        return "file", str(path.resolve())

    raise ValueError("'{}' is not a catalog id, URL, or existing file".format(source))


def _transcript_end(segments: List[Segment]) -> float:
    ends = [w.end_time for seg in segments for w in seg.words]
    return max(ends) if ends else 0.0


def _print_completed(view: TranscriptView, printed: Set[str]) -> None:
    for seg_view in view.segments:
        segment = seg_view.segment
        if seg_view.is_complete and segment.id not in printed:
            printed.add(segment.id)
            print("[{}] {}".format(segment.timestamp, segment.text), flush=True)


def _print_insight(segment: Segment) -> None:
    if segment.insight is not None:
        print("    >> [{}] {}".format(segment.timestamp, segment.insight.text), flush=True)


async def _replay(args: argparse.Namespace) -> int:
    """Replay one transcript against a simulated clock."""
    try:
        kind, location = _resolve_source(args.source)
    except ValueError as exc:
        _status("Error: {}".format(exc))
        return 1

    async with TranscriptClient() as source, InsightClient(args.insight_url) as client:
        oracle = _SilentOracle() if args.no_insights else client
        session = PlaybackSession(
            transcript_url=location,
            source=source,
            oracle=oracle,
            on_insight=_print_insight,
        )

        _status("Loading transcript: {}".format(location))
        if kind == "file":
            try:
                # undecodable bytes become U+FFFD; the parser skips what no longer parses
                blob = Path(location).read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                _status("Error: {}".format(exc))
                return 1
            session.load_blob(blob)
        else:
            await session.load()

        if session.state is SessionState.FAILED:
            _status("Error: {}".format(session.error))
            return 1

        _status("  {} segments".format(len(session.segments)))
        end_time = _transcript_end(session.segments) + CURRENT_SEGMENT_BUFFER_S
        playback = SimulatedPlayback(start_time=args.start, speed=args.speed)
        printed: Set[str] = set()

        try:
            while True:
                current_time = playback.current_time
                view = session.on_time_update(current_time)
                _print_completed(view, printed)
                if current_time >= end_time:
                    break
                await asyncio.sleep(args.tick)

            if session.dispatcher.in_flight:
                _status("Waiting for {} insight request(s)...".format(
                    session.dispatcher.in_flight
                ))
            await session.drain()
        finally:
            session.close()

    _status("Done.")
    return 0


def _list_calls(_args: argparse.Namespace) -> int:
    for call in EARNING_CALLS:
        print("{:<20} {:<32} {:<18} {}".format(call.id, call.title, call.date, call.status))
    return 0


def _serve(args: argparse.Namespace) -> int:
    from callscout.server.app import run_api
    run_api(host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="callscout",
        description="Replay earnings call transcripts with live AI commentary.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    calls = sub.add_parser("calls", help="List the earnings calls in the catalog.")
    calls.set_defaults(func=_list_calls)

    replay = sub.add_parser("replay", help="Replay a transcript against a simulated clock.")
    replay.add_argument("source", help="Catalog id, transcript URL, or local .jsonl file.")
    replay.add_argument("--speed", type=float, default=1.0,
                        help="Playback speed multiplier (default: 1.0).")
    replay.add_argument("--start", type=float, default=0.0,
                        help="Start position in seconds (default: 0).")
    replay.add_argument("--tick", type=float, default=0.25,
                        help="Wall-clock seconds between time updates (default: 0.25).")
    replay.add_argument("--insight-url", default=INSIGHT_BASE_URL,
                        help="Base URL of the insight service (default: %(default)s).")
    replay.add_argument("--no-insights", action="store_true",
                        help="Do not request insights.")
    replay.set_defaults(func=lambda a: asyncio.run(_replay(a)))

    serve = sub.add_parser("serve", help="Run the insight service.")
    serve.add_argument("--host", default=SERVER_HOST)
    serve.add_argument("--port", type=int, default=SERVER_PORT)
    serve.set_defaults(func=_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if getattr(args, "speed", 1.0) <= 0:
        parser.error("--speed must be positive")

    sys.exit(args.func(args))
