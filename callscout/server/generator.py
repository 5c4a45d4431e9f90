"""Insight generation with an OpenAI chat model acting as a financial analyst.

WHY: Most of what is said on an earnings call is routine. The service
should only speak up when a statement carries new, concrete, material
information, and say it in one or two sentences.

HOW: The segment text and the preceding conversation are sent as one
user message under a fixed analyst system prompt, asking for a JSON
object {"hasInsight": bool, "insight": str|null}. The reply is parsed
into an Insight or None.

RULES:
- Model errors, missing keys, and unparseable replies yield None
  ("no insight"), never an exception
- The insight's segment_id is the request's segment id
- Insight ids follow insight_<epoch-ms>_<9 chars>
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from openai import AsyncOpenAI, OpenAIError

from callscout.api.models import InsightRequest
from callscout.config import OPENAI_MODEL, load_openai_api_key
from callscout.core.model import Insight, new_insight_id, utc_now_iso

logger = logging.getLogger(__name__)

ANALYST_PROMPT = """
You are a financial analyst giving live commentary on an earnings call. Each
statement from a speaker arrives as plain text.

Only respond when the statement gives new, concrete, material information in
one of these areas:
- Company performance: clear figures or changes in revenue, margins, costs,
  KPIs, or guidance
- Strategic direction: a specific shift in product, business model, or market
  (not just ambition)
- Execution risk: delays, cost overruns, scaling problems, operational failures
- Macro impact: direct effects of rates, regulation, inflation, or geopolitics
- Competition: named rivals, pricing pressure, market share, disruptive threats
- Sentiment and framing: a telling change of tone such as defensiveness or hype

Skip motivational language, generic optimism, repetition of earlier points
without new context, and anything vague or obvious. Do not prefix the comment
with a category label. Use the earlier conversation only when it clearly
sharpens the reading. Keep it to one or two short, punchy sentences.

Respond in JSON:
{
  "hasInsight": boolean,
  "insight": "your analysis, or null when there is nothing worth saying"
}
"""


def build_context_message(request: InsightRequest) -> str:
    """User message combining prior conversation and the current statement."""
    return (
        "Context from previous conversation:\n"
        "{}\n\n"
        "Current statement to analyze:\n"
        "\"{}\"\n"
    ).format(request.conversation_history, request.current_sentence)


def parse_model_reply(content: Optional[str], segment_id: str) -> Optional[Insight]:
    """Turn the model's JSON reply into an Insight, or None.

    RULES:
    - Empty content → None
    - Invalid JSON or a non-object → None (logged)
    - hasInsight false, or insight missing/blank → None
    """
    if not content:
        return None

    try:
        data: Any = json.loads(content)
    except json.JSONDecodeError:
        logger.warning("Model reply for %s is not valid JSON", segment_id)
        return None

    if not isinstance(data, dict) or not data.get("hasInsight"):
        return None

    text = data.get("insight")
    if not isinstance(text, str) or not text.strip():
        return None

    return Insight(
        id=new_insight_id(),
        segment_id=segment_id,
        text=text.strip(),
        created_at=utc_now_iso(),
    )


class InsightGenerator:
    """Wraps the OpenAI async client for insight generation.

    The client is created on first use so the service can start (and
    answer health checks) without an API key.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.model = model or OPENAI_MODEL
        self._client = client

    def _ensure_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=load_openai_api_key())
        return self._client

    async def generate(self, request: InsightRequest) -> Optional[Insight]:
        """Ask the model about one statement; None means nothing material."""
        try:
            client = self._ensure_client()
            completion = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": ANALYST_PROMPT},
                    {"role": "user", "content": build_context_message(request)},
                ],
                response_format={"type": "json_object"},
            )
        except (OpenAIError, ValueError) as exc:
            logger.error("OpenAI request failed for segment %s: %s", request.segment_id, exc)
            return None

        content = completion.choices[0].message.content if completion.choices else None
        return parse_model_reply(content, request.segment_id)
