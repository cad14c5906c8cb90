"""
Intent Parser for the Carl assistant.

First of the two model calls: turns a sanitized user message into a
structured search intent using the small, fast model. Any failure falls
back to a local heuristic, so this stage never raises.
"""

import asyncio
import logging
import re
from typing import Any, Dict, List, Optional

from config import (
    CATEGORY_FACETS,
    INTENT_MAX_TOKENS,
    INTENT_MODEL,
    INTENT_TEMPERATURE,
    INTENT_TIMEOUT,
)
from models.intent import GENERAL, MAX_QUERY_KEYWORDS, Intent, IntentParseResult
from services.errors import AssistantError
from services.llm_client import LLMClient, extract_json_object
from services.privacy_resolver import Channel

logger = logging.getLogger(__name__)

GREETING_PREFIX = re.compile(r"^\s*(hi|hello|hey)\b", re.IGNORECASE)


def build_intent_prompt() -> str:
    categories = "|".join(CATEGORY_FACETS)
    return f"""You are a search intent parser for a Bay Area benefits directory.
Given the user message and conversation history, output ONLY valid JSON (no markdown, no explanation):
{{
  "query": "search terms for program lookup",
  "category": "{categories}",
  "needs_location": true/false,
  "is_greeting": true/false,
  "is_crisis": true/false
}}
Rules:
- "query" should be 1-5 keywords optimized for searching a program database
- Crisis keywords (suicide, abuse, danger, homeless emergency): set is_crisis=true
- Greetings (hi, hello, hey): set is_greeting=true, query=""
- Keep query concise, no filler words"""


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


class IntentParser:
    """Parses user intent with the fast model, falling back to heuristics."""

    def __init__(self, llm_client: LLMClient, model: str = INTENT_MODEL, timeout: float = INTENT_TIMEOUT):
        self.llm_client = llm_client
        self.model = model
        self.timeout = timeout
        self.system_prompt = build_intent_prompt()

    async def parse(
        self,
        message: str,
        history: List[Dict[str, str]],
        channel: Channel,
        url: str,
    ) -> Intent:
        """
        Parse a sanitized message into an Intent.

        Args:
            message: Sanitized user message
            history: Last turns, already truncated and sanitized
            channel: Channel for the request
            url: Intent backend URL

        Returns:
            Parsed Intent, or the heuristic fallback when parsing fails
        """
        result = await self.request_intent(message, history, channel, url)
        if result.ok:
            logger.info(
                f"Intent parsed: category={result.intent.category}, "
                f"greeting={result.intent.is_greeting}, crisis={result.intent.is_crisis}"
            )
            return result.intent

        logger.warning(f"Intent parse failed ({result.error}); using fallback intent")
        return self.fallback_intent(message)

    async def request_intent(
        self,
        message: str,
        history: List[Dict[str, str]],
        channel: Channel,
        url: str,
    ) -> IntentParseResult:
        """Ask the intent model; every failure comes back as an IntentParseResult, not an exception."""
        messages = LLMClient.build_messages(self.system_prompt, history, message)
        try:
            response = await asyncio.wait_for(
                self.llm_client.chat(
                    channel,
                    url,
                    model=self.model,
                    messages=messages,
                    max_tokens=INTENT_MAX_TOKENS,
                    temperature=INTENT_TEMPERATURE,
                    timeout=self.timeout,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            return IntentParseResult.failure("timeout")
        except AssistantError as e:
            return IntentParseResult.failure(e.error.code)

        payload = extract_json_object(response.text)
        if payload is None:
            return IntentParseResult.failure("no JSON object in response")
        return self.intent_from_payload(payload, message)

    @staticmethod
    def intent_from_payload(payload: Dict[str, Any], message: str) -> IntentParseResult:
        """Validate model output into an Intent, clamping the query and category."""
        is_greeting = _as_bool(payload.get("is_greeting", False))
        is_crisis = _as_bool(payload.get("is_crisis", False))

        raw_query = payload.get("query", "")
        if not isinstance(raw_query, str):
            return IntentParseResult.failure("query is not a string")
        query = " ".join(raw_query.split()[:MAX_QUERY_KEYWORDS])
        if is_greeting:
            query = ""
        elif not query:
            query = (message or "").strip()
            if not query:
                return IntentParseResult.failure("no query in response or message")

        category = payload.get("category", GENERAL)
        if not isinstance(category, str) or category.strip().lower() not in CATEGORY_FACETS:
            category = GENERAL
        else:
            category = category.strip().lower()

        try:
            intent = Intent(
                query=query,
                category=category,
                needs_location=_as_bool(payload.get("needs_location", False)),
                is_greeting=is_greeting,
                is_crisis=is_crisis,
            )
        except ValueError as e:
            return IntentParseResult.failure(str(e))
        return IntentParseResult.success(intent)

    @staticmethod
    def fallback_intent(message: str) -> Intent:
        """Heuristic intent used when the model cannot be reached or understood."""
        query = (message or "").strip()
        # An empty message has nothing to search for; greet so the user is prompted again
        is_greeting = not query or bool(GREETING_PREFIX.match(query))
        return Intent(
            query="" if is_greeting else query,
            category=GENERAL,
            needs_location=False,
            is_greeting=is_greeting,
            is_crisis=False,
        )
