"""Unit tests for QuickAnswerMatcher."""
import sys
sys.path.insert(0, 'backend')

import pytest
from models.quick_answer import CLARIFY, CRISIS, INFO, QuickAnswer, QuickAnswerResource
from services.quick_answers import QuickAnswerMatcher, format_quick_answer


@pytest.fixture
def matcher():
    """Matcher over the bundled knowledge base."""
    return QuickAnswerMatcher()


@pytest.fixture
def small_matcher():
    """Matcher over a handful of inline entries; info entry listed before crisis entry."""
    return QuickAnswerMatcher(entries=[
        {
            "id": "food-info",
            "type": "info",
            "patterns": ["food bank"],
            "title": "Food Banks",
            "message": "Food banks are open weekly.",
        },
        {
            "id": "crisis",
            "type": "crisis",
            "patterns": ["want to die"],
            "title": "Crisis Support",
            "message": "Help is available.",
            "resource": {"name": "988 Lifeline", "phone": "988"},
        },
    ])


class TestMatch:
    """Tests for match()."""

    def test_info_hit(self, matcher):
        """Should match an informational entry."""
        answer = matcher.match("How do I apply for CalFresh?")
        assert answer is not None
        assert answer.type == INFO
        assert answer.title == "CalFresh (SNAP)"

    def test_case_and_punctuation_insensitive(self, matcher):
        """Should ignore case and punctuation."""
        assert matcher.match("FOOD STAMPS!!!") is not None

    def test_miss(self, matcher):
        """Should return None when nothing matches."""
        assert matcher.match("I need help with food") is None

    def test_word_boundary(self, matcher):
        """Patterns should not match inside other words."""
        assert matcher.match("2113 Main Street") is None

    def test_exact_match_mode(self, matcher):
        """Exact entries should only match the whole message."""
        answer = matcher.match("Help me")
        assert answer is not None
        assert answer.type == CLARIFY
        assert answer.needs_clarification
        assert matcher.match("help me find a food bank") is None

    def test_crisis_entries_win(self, small_matcher):
        """Crisis entries are checked first regardless of file order."""
        answer = small_matcher.match("the food bank is closed and I want to die")
        assert answer.type == CRISIS

    def test_empty_query(self, matcher):
        assert matcher.match("") is None
        assert matcher.match("   ") is None


class TestMatchCrisis:
    """Tests for match_crisis()."""

    def test_crisis_hit(self, matcher):
        answer = matcher.match_crisis("I want to kill myself")
        assert answer is not None
        assert answer.resource.phone == "988"

    def test_ignores_info_entries(self, small_matcher):
        assert small_matcher.match_crisis("where is the food bank") is None

    def test_domestic_violence(self, matcher):
        answer = matcher.match_crisis("my partner hits me")
        assert answer.resource.phone == "1-800-799-7233"


class TestLoading:
    """Tests for knowledge base validation."""

    def test_unknown_match_mode_rejected(self):
        with pytest.raises(ValueError, match="unknown match mode"):
            QuickAnswerMatcher(entries=[
                {"id": "x", "type": "info", "patterns": ["x"], "match": "fuzzy"}
            ])

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError, match="Unknown quick answer type"):
            QuickAnswerMatcher(entries=[{"id": "x", "type": "promo", "patterns": ["x"]}])


class TestFormatQuickAnswer:
    """Tests for markdown rendering."""

    def test_full_answer(self):
        answer = QuickAnswer(
            type=INFO,
            title="CalFresh",
            message="Money for groceries.",
            resource=QuickAnswerResource(name="211 Bay Area", phone="211", description="Local help"),
            guide_url="/eligibility/food-assistance",
            guide_text="Food guide",
            apply_url="https://www.getcalfresh.org",
            apply_text="Apply",
        )
        message = format_quick_answer(answer)
        assert message.startswith("**CalFresh**")
        assert "Money for groceries." in message
        assert "📞 **211 Bay Area** - 211" in message
        assert "📖 [Food guide](https://baynavigator.org/eligibility/food-assistance)" in message
        assert "✅ [Apply](https://www.getcalfresh.org)" in message

    def test_summary_used_without_message(self):
        answer = QuickAnswer(type=INFO, title="211", summary="Dial 211.")
        assert format_quick_answer(answer) == "**211**\n\nDial 211."
