"""
Crisis Classifier for the Carl assistant.

This module implements a local, zero-network check that flags emergency and
self-harm signals in a single user message so a user in crisis gets help
numbers before any model round-trip.
"""

import logging
import re
from typing import Iterable, Optional

from models.quick_answer import CrisisType, QuickAnswer, QuickAnswerResource, CRISIS

logger = logging.getLogger(__name__)

SUICIDE_LIFELINE = "988"
CRISIS_TEXT_LINE = "741741"
DV_HOTLINE = "1-800-799-7233"
EMERGENCY_NUMBER = "911"


def _keyword_regex(keywords: Iterable[str]) -> "re.Pattern[str]":
    # Longest first so "domestic violence" wins over "violence"
    ordered = sorted(keywords, key=len, reverse=True)
    return re.compile(rf"\b({'|'.join(re.escape(k) for k in ordered)})\b")


class CrisisClassifier:
    """
    Keyword classifier for crisis messages.

    Rules are checked in priority order:
    1. Self-harm / suicide vocabulary → mentalHealth
    2. Danger / violence / abuse vocabulary → emergency
    3. Otherwise → None
    """

    MENTAL_HEALTH_KEYWORDS = {
        "suicide", "suicidal", "kill myself", "end my life",
        "don't want to live", "dont want to live", "want to die",
        "self-harm", "self harm", "cutting", "hurting myself",
        "in crisis", "desperate",
    }

    EMERGENCY_KEYWORDS = {
        "danger", "in danger", "hurt", "attack", "abuse",
        "abused", "violence", "domestic violence", "unsafe", "threatened",
    }

    def __init__(self):
        self._mental_health = _keyword_regex(self.MENTAL_HEALTH_KEYWORDS)
        self._emergency = _keyword_regex(self.EMERGENCY_KEYWORDS)

    def classify(self, text: str) -> Optional[CrisisType]:
        """
        Classify a single message.

        Args:
            text: Raw user message

        Returns:
            CrisisType when a crisis signal is present, otherwise None
        """
        if not text or not text.strip():
            return None

        text_lower = text.lower().replace("’", "'")

        if self._mental_health.search(text_lower):
            logger.warning("Crisis detected: mentalHealth (keyword)")
            return CrisisType.MENTAL_HEALTH

        if self._emergency.search(text_lower):
            logger.warning("Crisis detected: emergency (keyword)")
            return CrisisType.EMERGENCY

        return None

    @staticmethod
    def type_from_quick_answer(answer: QuickAnswer) -> CrisisType:
        """Refine the crisis type from the phone number a crisis quick answer routes to."""
        phone = answer.resource.phone if answer.resource else None
        if phone == SUICIDE_LIFELINE:
            return CrisisType.MENTAL_HEALTH
        if phone == DV_HOTLINE:
            return CrisisType.DOMESTIC_VIOLENCE
        return CrisisType.EMERGENCY


def crisis_answer(crisis_type: Optional[CrisisType]) -> QuickAnswer:
    """
    Canned crisis response for a crisis type.

    None means the model flagged a crisis without a keyword hit; every number is listed then.
    """
    if crisis_type == CrisisType.EMERGENCY:
        return QuickAnswer(
            type=CRISIS,
            title="Emergency Help",
            message="If you're in immediate danger, please call 911.",
            resource=QuickAnswerResource(
                name="Emergency Services",
                phone=EMERGENCY_NUMBER,
                description="Call 911 for immediate emergencies",
                action="call",
            ),
        )

    if crisis_type == CrisisType.MENTAL_HEALTH:
        return QuickAnswer(
            type=CRISIS,
            title="Crisis Support",
            message="You are not alone. Help is available 24/7. "
                    "If you're having thoughts of suicide or self-harm, please reach out now.",
            resource=QuickAnswerResource(
                name="988 Suicide & Crisis Lifeline",
                phone=SUICIDE_LIFELINE,
                description="Free, confidential support 24/7",
                action="call",
            ),
            secondary=QuickAnswerResource(
                name="Crisis Text Line",
                phone=CRISIS_TEXT_LINE,
                description="Text HOME to 741741",
                action="text",
            ),
        )

    if crisis_type == CrisisType.DOMESTIC_VIOLENCE:
        return QuickAnswer(
            type=CRISIS,
            title="Domestic Violence Support",
            message="You deserve to be safe. Trained advocates are available 24/7. "
                    "If you're in immediate danger, call 911.",
            resource=QuickAnswerResource(
                name="National Domestic Violence Hotline",
                phone=DV_HOTLINE,
                description="Free, confidential support 24/7",
                action="call",
            ),
        )

    return QuickAnswer(
        type=CRISIS,
        title="Help Is Available",
        message="It sounds like you may be going through something serious. "
                "Call 911 if you're in immediate danger, 988 for the Suicide & Crisis Lifeline, "
                "or 1-800-799-7233 for the National Domestic Violence Hotline.",
        resource=QuickAnswerResource(
            name="988 Suicide & Crisis Lifeline",
            phone=SUICIDE_LIFELINE,
            description="Free, confidential support 24/7",
            action="call",
        ),
        secondary=QuickAnswerResource(
            name="National Domestic Violence Hotline",
            phone=DV_HOTLINE,
            description="Free, confidential support 24/7",
            action="call",
        ),
    )
