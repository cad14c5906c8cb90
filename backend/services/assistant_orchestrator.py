"""
Assistant Orchestrator for the Carl assistant.

Sequences the tiers for one conversation session:

1. Quick answer: canned reply, zero network calls
2. Crisis check: local keyword classifier, zero network calls
3. Intent parse → program search → response composition, over the channel
   chosen by the session's privacy mode

Session state (warm-up flag, Tor channel) is only touched under the session lock.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set

from config import HISTORY_TURNS, TOR_PROXY_URL, WARMUP_TIMEOUT
from models.conversation import ConversationTurn, recent_turns
from models.intent import Intent
from models.profile import ProfileContext
from models.quick_answer import CrisisType, QuickAnswer
from models.result import (
    TIER_CRISIS,
    TIER_GREETING,
    TIER_LLM,
    TIER_LLM_TOR,
    TIER_QUICK_ANSWER,
    SearchResult,
)
from services.crisis_classifier import CrisisClassifier, crisis_answer
from services.errors import ChannelUnavailableError, UpstreamUnavailableError
from services.intent_parser import IntentParser
from services.output_evaluator import OutputEvaluator
from services.pii_sanitizer import sanitize
from services.privacy_resolver import Channel, PrivacyMode, PrivacyResolver
from services.quick_answers import QuickAnswerMatcher, format_quick_answer
from services.response_composer import ResponseComposer
from services.search_client import ProgramSearchClient

logger = logging.getLogger(__name__)

GREETING_MESSAGE = (
    "Hey there! I'm Carl, your Bay Area benefits buddy. What can I help you find today? "
    "I know about food assistance, healthcare, housing, and more."
)


@dataclass
class SessionState:
    """Mutable per-session state; lives until the session ends or a new conversation starts."""
    warm_up_done: bool = False
    tor_channel: Optional[Channel] = None


class AssistantOrchestrator:
    """Top-level coordinator for one conversation session."""

    def __init__(
        self,
        quick_answers: QuickAnswerMatcher,
        privacy_resolver: PrivacyResolver,
        intent_parser: IntentParser,
        search_client: ProgramSearchClient,
        composer: ResponseComposer,
        crisis_classifier: Optional[CrisisClassifier] = None,
        evaluator: Optional[OutputEvaluator] = None,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or f"sess_{uuid.uuid4().hex[:12]}"
        self.quick_answers = quick_answers
        self.privacy_resolver = privacy_resolver
        self.intent_parser = intent_parser
        self.search_client = search_client
        self.composer = composer
        self.crisis_classifier = crisis_classifier or CrisisClassifier()
        self.evaluator = evaluator or OutputEvaluator()

        self.state = SessionState()
        self._lock = asyncio.Lock()
        self._pending: Set["asyncio.Future[SearchResult]"] = set()

        logger.info("Initialized AssistantOrchestrator", extra={"session_id": self.session_id})

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search(
        self,
        query: str,
        history: Sequence[ConversationTurn] = (),
        privacy_mode: PrivacyMode = PrivacyMode.STANDARD,
        tor_requested: bool = False,
        profile: Optional[ProfileContext] = None,
    ) -> SearchResult:
        """
        Answer one user message.

        Args:
            query: Raw user message
            history: Caller-owned conversation history, oldest first
            privacy_mode: Network privacy mode for this call
            tor_requested: Route over Tor even outside Tor mode
            profile: Opt-in profile context

        Returns:
            SearchResult tagged with the tier that produced it

        Raises:
            ChannelUnavailableError: Tor selected but not configured; no network call is made
            InvalidEndpointError: A resolved endpoint URL is malformed
            UpstreamHTTPError: Composition backend returned non-200
            DecodeError: Composition response envelope was malformed
            UpstreamUnavailableError: Composition or the whole call timed out
            asyncio.CancelledError: The call was cancelled via cancel_pending() or by the caller
        """
        task = asyncio.ensure_future(
            self._search(query, list(history), privacy_mode, tor_requested, profile)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return await task

    async def _search(
        self,
        query: str,
        history: List[ConversationTurn],
        privacy_mode: PrivacyMode,
        tor_requested: bool,
        profile: Optional[ProfileContext],
    ) -> SearchResult:
        # Tier 1: quick answer (local)
        quick = self.quick_answers.match(query)
        if quick is not None:
            return self._quick_answer_result(quick)

        # Crisis check (local); preempts every network stage
        crisis_type = self.crisis_classifier.classify(query)
        if crisis_type is not None:
            return self._crisis_result(query, crisis_type)

        # Tier 2: model pipeline. Fails closed before any network call.
        channel = await self._lease_channel(privacy_mode, tor_requested)
        try:
            return await asyncio.wait_for(
                self._run_pipeline(query, history, privacy_mode, tor_requested, profile, channel),
                timeout=channel.timeout,
            )
        except asyncio.TimeoutError:
            logger.error(
                f"Search exceeded {channel.timeout}s on channel {channel.name}",
                extra={"session_id": self.session_id},
            )
            raise UpstreamUnavailableError(
                "Request timed out. Please try again.",
                {"timeout": channel.timeout, "channel": channel.name},
            )
        finally:
            await channel.release()

    async def _run_pipeline(
        self,
        query: str,
        history: List[ConversationTurn],
        privacy_mode: PrivacyMode,
        tor_requested: bool,
        profile: Optional[ProfileContext],
        channel: Channel,
    ) -> SearchResult:
        endpoint = await self.privacy_resolver.resolve_endpoint(privacy_mode, tor_requested)

        sanitized = sanitize(query)
        recent = self._forwardable_history(history)

        # Call 1: intent
        intent = await self.intent_parser.parse(sanitized, recent, channel, endpoint.intent_url)

        if intent.is_greeting:
            return SearchResult(message=GREETING_MESSAGE, tier=TIER_GREETING, intent=intent)

        if intent.is_crisis:
            logger.warning("Crisis flagged by intent model", extra={"session_id": self.session_id})
            return self._crisis_result(query, None, intent=intent)

        programs = await self.search_client.search(intent.query, intent.category, channel)

        # Call 2: composition
        reply = await self.composer.compose(
            profile, recent, sanitized, programs, channel, endpoint.compose_url
        )
        flags = self.evaluator.evaluate(reply, programs)
        reply = self.evaluator.scrub(reply, programs)

        tier = TIER_LLM_TOR if channel.is_tor else TIER_LLM
        logger.info(
            f"Search resolved: tier={tier}, category={intent.category}, "
            f"programs={len(programs)}, flags={flags}",
            extra={"session_id": self.session_id},
        )
        return SearchResult(message=reply, tier=tier, programs=programs, intent=intent, flags=flags)

    @staticmethod
    def _forwardable_history(history: Sequence[ConversationTurn]) -> List[Dict[str, str]]:
        """Last HISTORY_TURNS turns, sanitized, in chat-message form."""
        return [
            {"role": turn.role, "content": sanitize(turn.text)}
            for turn in recent_turns(history, HISTORY_TURNS)
        ]

    def _quick_answer_result(self, answer: QuickAnswer) -> SearchResult:
        if answer.is_crisis:
            crisis_type = CrisisClassifier.type_from_quick_answer(answer)
            logger.warning(f"Crisis quick answer: {crisis_type.value}", extra={"session_id": self.session_id})
            return SearchResult(
                message=format_quick_answer(answer),
                tier=TIER_CRISIS,
                quick_answer=answer,
                crisis_type=crisis_type,
            )
        logger.info(f"Quick answer hit: type={answer.type}", extra={"session_id": self.session_id})
        return SearchResult(message=format_quick_answer(answer), tier=TIER_QUICK_ANSWER, quick_answer=answer)

    def _crisis_result(
        self,
        query: str,
        crisis_type: Optional[CrisisType],
        intent: Optional[Intent] = None,
    ) -> SearchResult:
        enriched = self.quick_answers.match_crisis(query)
        if enriched is not None:
            answer = enriched
            crisis_type = CrisisClassifier.type_from_quick_answer(enriched)
        else:
            answer = crisis_answer(crisis_type)
        return SearchResult(
            message=format_quick_answer(answer),
            tier=TIER_CRISIS,
            quick_answer=answer,
            crisis_type=crisis_type,
            intent=intent,
        )

    # ------------------------------------------------------------------
    # Session state
    # ------------------------------------------------------------------

    async def _lease_channel(self, privacy_mode: PrivacyMode, tor_requested: bool) -> Channel:
        async with self._lock:
            channel = self.privacy_resolver.resolve_channel(
                privacy_mode, tor_requested, self.state.tor_channel
            )
            return channel.lease()

    async def warmup(self, privacy_mode: PrivacyMode = PrivacyMode.STANDARD) -> bool:
        """
        Wake the composition backend once per session. Best-effort: never raises.

        Returns:
            True if the backend is known to be warm
        """
        async with self._lock:
            if self.state.warm_up_done:
                return True
            try:
                channel = self.privacy_resolver.resolve_channel(
                    privacy_mode, False, self.state.tor_channel
                ).lease()
            except ChannelUnavailableError:
                logger.info("Warm-up skipped: Tor channel not configured", extra={"session_id": self.session_id})
                return False

        try:
            endpoint = await self.privacy_resolver.resolve_endpoint(privacy_mode)
            await self.composer.ping(channel, endpoint.compose_url, timeout=WARMUP_TIMEOUT)
        except Exception as e:
            logger.info(f"Warm-up skipped: {type(e).__name__}: {e}", extra={"session_id": self.session_id})
            return False
        finally:
            await channel.release()

        async with self._lock:
            self.state.warm_up_done = True
        logger.info("Composition backend warmed up", extra={"session_id": self.session_id})
        return True

    async def configure_tor_proxy(self, proxy_url: str = TOR_PROXY_URL) -> bool:
        """
        Route Tor-mode calls through the SOCKS proxy at `proxy_url`.

        Returns:
            True if the proxy is reachable and the channel is active
        """
        channel = await self.privacy_resolver.create_tor_channel(proxy_url)
        async with self._lock:
            previous, self.state.tor_channel = self.state.tor_channel, channel
            if previous is not None:
                await previous.retire()
        return channel is not None

    async def disable_tor_proxy(self) -> None:
        async with self._lock:
            previous, self.state.tor_channel = self.state.tor_channel, None
            if previous is not None:
                await previous.retire()
        logger.info("Tor proxy disabled", extra={"session_id": self.session_id})

    @property
    def is_tor_session_ready(self) -> bool:
        channel = self.state.tor_channel
        return channel is not None and not channel.closed

    async def new_conversation(self) -> None:
        """Reset session state: warm-up must run again and Tor must be reconfigured."""
        async with self._lock:
            previous = self.state.tor_channel
            self.state = SessionState()
            if previous is not None:
                await previous.retire()
        logger.info("New conversation started", extra={"session_id": self.session_id})

    def cancel_pending(self) -> int:
        """Cancel every in-flight search; returns how many were cancelled."""
        cancelled = 0
        for task in list(self._pending):
            if task.cancel():
                cancelled += 1
        if cancelled:
            logger.info(f"Cancelled {cancelled} in-flight search(es)", extra={"session_id": self.session_id})
        return cancelled

    async def close(self) -> None:
        self.cancel_pending()
        await self.disable_tor_proxy()
