"""Redaction of personally identifying information from outgoing text."""
import re

REDACTED = "[REDACTED]"

# Digit lookarounds instead of \b so "ssn123456789" is caught as well.
# Most specific first so the generic phone pattern never sees a half-redacted SSN or card.
_PATTERNS = [
    # SSN with dashes (XXX-XX-XXXX)
    re.compile(r"(?<!\d)\d{3}-\d{2}-\d{4}(?!\d)"),
    # Card numbers: 13-19 bare digits, or 4-4-4-x and 4-6-5 groups joined by one repeated separator
    re.compile(r"(?<!\d)(?:\d{13,19}|\d{4}([ -])\d{4}\1\d{4}\1\d{1,7}|\d{4}([ -])\d{6}\2\d{5})(?!\d)"),
    # SSN without dashes, and any longer bare digit run
    re.compile(r"\d{9,}"),
    # Email addresses
    re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}"),
    # Phone numbers: 555-123-4567, 555.123.4567
    re.compile(r"(?<!\d)\d{3}[-.]?\d{3}[-.]?\d{4}(?!\d)"),
    # Phone numbers: (555) 123-4567
    re.compile(r"\(\d{3}\)\s*\d{3}[-.]?\d{4}(?!\d)"),
]


def sanitize(text: str) -> str:
    """
    Replace SSNs, card numbers, email addresses and phone numbers with a redaction token.

    Pure and idempotent: the token contains no digits or '@', so a second pass
    finds nothing to replace.
    """
    if not text:
        return text
    result = text
    for pattern in _PATTERNS:
        result = pattern.sub(REDACTED, result)
    return result
