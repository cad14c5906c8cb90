"""Deterministic quick-answer lookup over a local knowledge base."""
import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from config import QUICK_ANSWERS_PATH
from models.quick_answer import QuickAnswer

logger = logging.getLogger(__name__)

SITE_URL = "https://baynavigator.org"

CONTAINS = "contains"
EXACT = "exact"


@dataclass(frozen=True)
class _Entry:
    id: str
    answer: QuickAnswer
    match: str
    regex: "re.Pattern[str]"


def _normalize(text: str) -> str:
    text = text.lower().replace("’", "'")
    text = re.sub(r"[^\w\s'-]", " ", text)
    return " ".join(text.split())


class QuickAnswerMatcher:
    """Matches user messages to pre-authored answers without any network call."""

    def __init__(self, path: str = QUICK_ANSWERS_PATH, entries: Optional[List[Dict[str, Any]]] = None):
        """
        Load the knowledge base.

        Args:
            path: JSON file with an "answers" list
            entries: Raw entries to use instead of reading `path`
        """
        if entries is None:
            with Path(path).open(encoding="utf-8") as fh:
                entries = json.load(fh)["answers"]

        crisis, other = [], []
        for raw in entries:
            entry = self._build_entry(raw)
            (crisis if entry.answer.is_crisis else other).append(entry)

        # Crisis entries always win
        self._entries: Tuple[_Entry, ...] = tuple(crisis + other)
        self._crisis_entries: Tuple[_Entry, ...] = tuple(crisis)
        logger.info(f"Loaded {len(self._entries)} quick answers ({len(crisis)} crisis)")

    @staticmethod
    def _build_entry(raw: Dict[str, Any]) -> _Entry:
        patterns = sorted((_normalize(p) for p in raw["patterns"]), key=len, reverse=True)
        if not patterns:
            raise ValueError(f"Quick answer {raw.get('id')} has no patterns")
        mode = raw.get("match", CONTAINS)
        alternation = "|".join(re.escape(p) for p in patterns)
        if mode == EXACT:
            regex = re.compile(rf"^(?:{alternation})$")
        elif mode == CONTAINS:
            regex = re.compile(rf"\b(?:{alternation})\b")
        else:
            raise ValueError(f"Quick answer {raw.get('id')} has unknown match mode: {mode}")
        return _Entry(id=raw["id"], answer=QuickAnswer.from_dict(raw), match=mode, regex=regex)

    def match(self, query: str) -> Optional[QuickAnswer]:
        """Return the first answer whose patterns match `query`, crisis answers first."""
        return self._first_match(query, self._entries)

    def match_crisis(self, query: str) -> Optional[QuickAnswer]:
        """Return a crisis answer for `query`, ignoring informational entries."""
        return self._first_match(query, self._crisis_entries)

    def _first_match(self, query: str, entries: Tuple[_Entry, ...]) -> Optional[QuickAnswer]:
        normalized = _normalize(query or "")
        if not normalized:
            return None
        for entry in entries:
            if entry.regex.search(normalized):
                logger.debug(f"Quick answer hit: {entry.id}")
                return entry.answer
        return None


def format_quick_answer(answer: QuickAnswer) -> str:
    """Render a quick answer as the markdown message shown to the user."""
    message = ""

    if answer.title:
        message += f"**{answer.title}**\n\n"

    if answer.message:
        message += answer.message
    elif answer.summary:
        message += answer.summary

    for resource in (answer.resource, answer.secondary):
        if resource is None:
            continue
        message += f"\n\n📞 **{resource.name}**"
        if resource.phone:
            message += f" - {resource.phone}"
        if resource.description:
            message += f"\n{resource.description}"

    if answer.guide_url and answer.guide_text:
        message += f"\n\n📖 [{answer.guide_text}]({SITE_URL}{answer.guide_url})"

    if answer.apply_url and answer.apply_text:
        message += f"\n\n✅ [{answer.apply_text}]({answer.apply_url})"

    return message.strip()
