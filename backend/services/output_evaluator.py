"""Output evaluator for composed reply checks."""
import re
from typing import List, Set
from urllib.parse import urlsplit

from config import ALLOWED_LINK_PATHS, CRISIS_NUMBERS, SITE_HOST
from models.program import ProgramRecord

MARKDOWN_LINK = re.compile(r"\[([^\]]+)\]\(([^)\s]+)\)")
BARE_URL = re.compile(r"(?<!\()\bhttps?://[^\s)\]]+")
PHONE = re.compile(r"(?:\+?1[-.\s]?)?(?:\(\d{3}\)|\d{3})[-.\s]?\d{3}[-.\s]?\d{4}\b")

# Lines that look like a program card rather than conversational text
CARD_LINE = re.compile(
    r"^\s*(?:"
    r".*(?:📞|📍|🌐|☎️).*"
    r"|.*\[/?PROGRAMS\].*"
    r"|(?:[-*•+]|\d+[.)])\s*\*\*[^*]+\*\*.*"
    r")$"
)


def _digits(text: str) -> str:
    digits = re.sub(r"\D", "", text)
    # Treat a leading country code as absent
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    return digits


class OutputEvaluator:
    """Analyzes composed replies and flags or strips ungrounded content."""

    # Phrases that point the user elsewhere instead of naming programs
    REFERRAL_PHRASES = [
        "/directory",
        "211",
        "couldn't find",
        "could not find",
        "no programs",
        "didn't find",
        "not sure",
    ]

    def __init__(self):
        self._crisis_digits: Set[str] = {_digits(n) for n in CRISIS_NUMBERS}

    def evaluate(self, response: str, programs: List[ProgramRecord]) -> List[str]:
        """
        Evaluate a composed reply and return flags.

        Args:
            response: Composed reply
            programs: Programs the reply was allowed to draw on

        Returns:
            List of flag strings (empty if no issues)
        """
        flags = []

        # Check 1: Answer given with nothing to ground it
        if self._is_no_context(response, programs):
            flags.append("no_context")

        # Check 2: Phone numbers not present in results or the crisis list
        if self._has_unverified_phone(response, programs):
            flags.append("unverified_phone")

        # Check 3: Links outside the allow-list
        if self._has_unlisted_link(response):
            flags.append("unlisted_link")

        # Check 4: Program-card formatting
        if self._has_card_markup(response):
            flags.append("card_markup")

        return flags

    def scrub(self, response: str, programs: List[ProgramRecord]) -> str:
        """
        Remove ungrounded presentation from a reply.

        Without programs, card-style lines are dropped entirely. Links outside
        the allow-list are reduced to their text in every case.
        """
        text = MARKDOWN_LINK.sub(
            lambda m: m.group(0) if self.is_allowed_link(m.group(2)) else m.group(1),
            response,
        )
        text = BARE_URL.sub(lambda m: m.group(0) if self.is_allowed_link(m.group(0)) else "", text)

        if not programs:
            lines = [line for line in text.splitlines() if not CARD_LINE.match(line)]
            text = "\n".join(lines)

        text = re.sub(r"\n{3,}", "\n\n", text)
        return text.strip()

    @staticmethod
    def is_allowed_link(url: str) -> bool:
        parts = urlsplit(url)
        if parts.scheme or parts.netloc:
            if parts.scheme not in ("http", "https"):
                return False
            if parts.hostname not in (SITE_HOST, f"www.{SITE_HOST}"):
                return False
        path = parts.path.rstrip("/") or "/"
        return path in ALLOWED_LINK_PATHS

    def _is_no_context(self, response: str, programs: List[ProgramRecord]) -> bool:
        if programs:
            return False
        response_lower = response.lower()
        return not any(phrase in response_lower for phrase in self.REFERRAL_PHRASES)

    def _has_unverified_phone(self, response: str, programs: List[ProgramRecord]) -> bool:
        allowed = set(self._crisis_digits)
        allowed.update(_digits(p.phone) for p in programs if p.phone)
        return any(_digits(m.group(0)) not in allowed for m in PHONE.finditer(response))

    def _has_unlisted_link(self, response: str) -> bool:
        links = [m.group(2) for m in MARKDOWN_LINK.finditer(response)]
        links.extend(m.group(0) for m in BARE_URL.finditer(response))
        return any(not self.is_allowed_link(link) for link in links)

    @staticmethod
    def _has_card_markup(response: str) -> bool:
        return any(CARD_LINE.match(line) for line in response.splitlines())
