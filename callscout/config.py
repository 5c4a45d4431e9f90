"""Configuration constants, playback tunables, and .env loading.

WHY: Centralizes all configurable values so they are easy to find,
update, and override. Timing buffers, scroll thresholds, and service
endpoints are plain data — not buried in logic — so the sync engine,
the viewport controller, and the clients all read the same numbers.

HOW: python-dotenv loads the .env file on import. Constants are defined
at module level and may be overridden via environment variables. The
load_openai_api_key() function provides a clear error when the key is
missing.

RULES:
- OPENAI_API_KEY is loaded from .env via python-dotenv, never hardcoded
- All defaults can be overridden via environment variables
- Times are float seconds, distances are CSS pixels
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()


def _env_float(name: str, default: float) -> float:
    """Read a float from the environment, falling back to the default."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(
            "Environment variable {} must be a number, got {!r}".format(name, raw)
        )


# ---------------------------------------------------------------------------
# Transcript and playback timing
# ---------------------------------------------------------------------------

DEFAULT_WORD_DURATION_S = _env_float("CALLSCOUT_WORD_DURATION_S", 0.5)
"""End time assumed for a word record that carries no end time."""

CURRENT_SEGMENT_BUFFER_S = _env_float("CALLSCOUT_CURRENT_BUFFER_S", 2.0)
"""How long a segment stays highlighted after its last visible word ends."""

DEFAULT_SPEAKER_ID = "0"

# ---------------------------------------------------------------------------
# Viewport follow behaviour
# ---------------------------------------------------------------------------

NEAR_BOTTOM_THRESHOLD_PX = _env_float("CALLSCOUT_NEAR_BOTTOM_PX", 120.0)
SCROLL_QUIET_PERIOD_S = _env_float("CALLSCOUT_SCROLL_QUIET_S", 2.0)

# ---------------------------------------------------------------------------
# Insight service
# ---------------------------------------------------------------------------

INSIGHT_BASE_URL = os.getenv("CALLSCOUT_INSIGHT_URL", "http://localhost:8000")
INSIGHT_ENDPOINT = "/api/generate-insight"
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "o4-mini")
SERVER_HOST = os.getenv("CALLSCOUT_HOST", "0.0.0.0")
SERVER_PORT = int(os.getenv("CALLSCOUT_PORT", "8000"))


def openai_api_key_configured() -> bool:
    """Return True when an OpenAI API key is present in the environment."""
    return bool(os.getenv("OPENAI_API_KEY", "").strip())


def load_openai_api_key() -> str:
    """Load the OpenAI API key from the environment.

    WHY: The insight service cannot generate commentary without it.
    Loading it from the environment (via .env) keeps it out of source code.

    RULES:
    - Raises ValueError if the key is missing or empty
    - Never returns a default/placeholder value
    """
    key = os.getenv("OPENAI_API_KEY", "").strip()
    if not key:
        raise ValueError(
            "OpenAI API key not configured. "
            "Add OPENAI_API_KEY to the .env file in the app folder."
        )
    return key
