"""CallScout — earnings call transcript playback with live AI commentary.

WHY: A recorded earnings call is easier to follow when its transcript
appears word by word alongside the audio, with a short analyst-style
comment attached to each paragraph once it has been spoken. This package
keeps that derived view consistent with a moving (and seekable) playback
clock and asks for commentary exactly once per paragraph.

HOW: Four core stages — parse (line-delimited records into segments),
synchronize (pure view of what is visible/current at a playback time),
dispatch (completion detection and async insight requests), and follow
(viewport auto-scroll state machine). The session module composes them;
the server package hosts the insight service itself.

RULES:
- The core never raises parser or oracle failures into the sync engine
  or the viewport controller
- Segment order is fixed at parse time
- Each segment triggers at most one insight request per session
"""

__version__ = "0.1.0"
