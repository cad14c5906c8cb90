"""
Response Composer for the Carl assistant.

Second of the two model calls: the larger model turns search results and
the user's message into a short reply in Carl's voice. Failures here are
fatal to the call; there is no fallback reply.
"""

import logging
from typing import Dict, List, Optional

from config import ALLOWED_LINK_PATHS, COMPOSE_MAX_TOKENS, COMPOSE_MODEL, COMPOSE_TEMPERATURE
from models.profile import ProfileContext
from models.program import ProgramRecord
from services.llm_client import LLMClient
from services.privacy_resolver import Channel

logger = logging.getLogger(__name__)

EMPTY_REPLY = "I couldn't generate a response. Please try searching the directory directly."
NO_PROGRAMS_CONTEXT = "No programs found matching this query."

PERSONA_PROMPT = f"""You are Carl, a friendly Bay Area benefits assistant named after Karl the Fog.
STYLE: Warm, casual, brief (2-3 sentences). Like texting a helpful friend.
RULES:
- ONLY mention programs listed in [PROGRAMS]. Never invent names, phone numbers, or addresses.
- If programs are listed, mention 2-3 by name. Users see clickable cards below your message, so do not format programs as cards or lists.
- Link ONLY to real baynavigator.org pages: {", ".join(ALLOWED_LINK_PATHS)}
- If no programs match, suggest /directory or call 211
- For crisis: give 988 (suicide), 1-800-799-7233 (DV), 911 (emergency) IMMEDIATELY and exactly as written
ELIGIBILITY CHEAT SHEET:
- Medicare: 65+ or disabled
- Medi-Cal: income <$1,677/mo (1 person)
- CalFresh: income <$1,580/mo (~$234/mo benefit)
- CARE: auto if on CalFresh/Medi-Cal, 20% off PG&E"""


class ResponseComposer:
    """Builds the persona prompt and asks the larger model for the user-facing reply."""

    def __init__(self, llm_client: LLMClient, model: str = COMPOSE_MODEL):
        self.llm_client = llm_client
        self.model = model

    @staticmethod
    def build_system_prompt(profile: Optional[ProfileContext] = None) -> str:
        """
        Persona prompt plus the optional profile summary.

        Args:
            profile: Opt-in profile context, already bucketed

        Returns:
            System prompt string
        """
        prompt = PERSONA_PROMPT
        if profile is not None:
            context = profile.to_prompt_context()
            if context:
                prompt += f"\n\n{context}"
        return prompt

    @staticmethod
    def build_user_content(message: str, programs: List[ProgramRecord]) -> str:
        if programs:
            program_context = "\n".join(f"- {p.name}: {p.description or ''}".rstrip() for p in programs)
        else:
            program_context = NO_PROGRAMS_CONTEXT
        return f"[PROGRAMS]\n{program_context}\n[/PROGRAMS]\n\nUser asked: {message}"

    async def compose(
        self,
        profile: Optional[ProfileContext],
        history: List[Dict[str, str]],
        message: str,
        programs: List[ProgramRecord],
        channel: Channel,
        url: str,
    ) -> str:
        """
        Compose the reply.

        Args:
            profile: Opt-in profile context
            history: Last turns, already truncated and sanitized
            message: Sanitized user message
            programs: Search results the reply may mention
            channel: Channel for the request
            url: Composition backend URL

        Returns:
            Reply text

        Raises:
            AssistantError: Upstream HTTP, decode, or availability failures
        """
        messages = LLMClient.build_messages(
            self.build_system_prompt(profile),
            history,
            self.build_user_content(message, programs),
        )
        response = await self.llm_client.chat(
            channel,
            url,
            model=self.model,
            messages=messages,
            max_tokens=COMPOSE_MAX_TOKENS,
            temperature=COMPOSE_TEMPERATURE,
        )
        text = response.text.strip()
        if not text:
            logger.warning("Composer returned an empty reply")
            return EMPTY_REPLY
        return text

    async def ping(self, channel: Channel, url: str, timeout: float) -> None:
        """Send a one-token request so a scaled-to-zero backend starts before the first real query."""
        await self.llm_client.chat(
            channel,
            url,
            model=self.model,
            messages=[{"role": "user", "content": "ping"}],
            max_tokens=1,
            temperature=0.0,
            timeout=timeout,
        )
