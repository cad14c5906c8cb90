"""Unit tests for IntentParser."""
import sys
sys.path.insert(0, 'backend')

import asyncio

import httpx
import pytest
from unittest.mock import AsyncMock, Mock
from config import CATEGORY_FACETS
from models.intent import GENERAL
from services.errors import DecodeError, UpstreamHTTPError
from services.intent_parser import IntentParser, build_intent_prompt
from services.llm_client import LLMClient, LLMResponse
from services.privacy_resolver import Channel

URL = "https://ai.example.org/v1/chat/completions"


def llm_returning(text):
    llm_client = Mock()
    llm_client.chat = AsyncMock(return_value=LLMResponse(
        text=text, tokens_input=50, tokens_output=20, latency_ms=5, model_used="qwen2.5:3b-instruct"
    ))
    return llm_client


def llm_raising(error):
    llm_client = Mock()
    llm_client.chat = AsyncMock(side_effect=error)
    return llm_client


def parse(parser, message, history=None):
    return asyncio.run(parser.parse(message, history or [], Mock(), URL))


class TestParse:
    """Tests for successful intent parsing."""

    def test_parses_model_json(self):
        parser = IntentParser(llm_returning(
            '{"query": "food assistance", "category": "food", "needs_location": true, '
            '"is_greeting": false, "is_crisis": false}'
        ))
        intent = parse(parser, "I need help with food")

        assert intent.query == "food assistance"
        assert intent.category == "food"
        assert intent.needs_location is True
        assert not intent.is_greeting
        assert not intent.is_crisis

    def test_json_inside_prose(self):
        parser = IntentParser(llm_returning(
            'Here is the intent:\n{"query": "rent help", "category": "housing"}\nHope that helps!'
        ))
        intent = parse(parser, "can't pay rent")
        assert intent.query == "rent help"
        assert intent.category == "housing"

    def test_query_clamped_to_five_keywords(self):
        parser = IntentParser(llm_returning(
            '{"query": "free food bank pantry meals groceries oakland", "category": "food"}'
        ))
        intent = parse(parser, "food")
        assert intent.query == "free food bank pantry meals"

    def test_unknown_category_becomes_general(self):
        parser = IntentParser(llm_returning('{"query": "ferry pass", "category": "boats"}'))
        assert parse(parser, "ferry").category == GENERAL

    def test_category_normalized(self):
        parser = IntentParser(llm_returning('{"query": "dog food", "category": " Pets "}'))
        assert parse(parser, "dog food").category == "pets"

    def test_greeting_clears_query(self):
        parser = IntentParser(llm_returning('{"query": "hello", "category": "general", "is_greeting": true}'))
        intent = parse(parser, "hello there")
        assert intent.is_greeting
        assert intent.query == ""

    def test_empty_query_uses_message(self):
        parser = IntentParser(llm_returning('{"query": "", "category": "health"}'))
        assert parse(parser, "dentist").query == "dentist"

    def test_string_booleans(self):
        parser = IntentParser(llm_returning('{"query": "help", "is_crisis": "true"}'))
        assert parse(parser, "help").is_crisis

    def test_history_and_budget_forwarded(self):
        llm_client = llm_returning('{"query": "food", "category": "food"}')
        parser = IntentParser(llm_client)
        history = [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hey"}]
        parse(parser, "food", history)

        kwargs = llm_client.chat.call_args.kwargs
        assert kwargs["max_tokens"] == 150
        assert kwargs["temperature"] == 0.1
        assert kwargs["messages"][1:3] == history
        assert kwargs["messages"][-1] == {"role": "user", "content": "food"}


class TestFallback:
    """Every failure falls back to the local heuristic."""

    def test_invalid_json(self):
        parser = IntentParser(llm_returning("I think they want food!"))
        intent = parse(parser, "I need food help")
        assert intent.query == "I need food help"
        assert intent.category == GENERAL
        assert not intent.is_greeting

    def test_non_string_query(self):
        parser = IntentParser(llm_returning('{"query": ["food"], "category": "food"}'))
        intent = parse(parser, "I need food help")
        assert intent.query == "I need food help"
        assert intent.category == GENERAL

    @pytest.mark.parametrize("error", [
        UpstreamHTTPError(500, "boom"),
        DecodeError(),
    ])
    def test_upstream_errors(self, error):
        parser = IntentParser(llm_raising(error))
        intent = parse(parser, "bus pass")
        assert intent.query == "bus pass"
        assert intent.category == GENERAL

    def test_timeout(self):
        async def slow_chat(*args, **kwargs):
            await asyncio.sleep(1)

        llm_client = Mock()
        llm_client.chat = slow_chat
        parser = IntentParser(llm_client, timeout=0.01)
        intent = parse(parser, "bus pass")
        assert intent.query == "bus pass"

    @pytest.mark.parametrize("body", [
        {"choices": [{"message": {"content": 42}}]},
        {"choices": [{"message": {"content": '{"query": "food"}'}}], "usage": "n/a"},
        {"choices": [{"message": {"content": '{"query": "food"}'}}], "usage": {"prompt_tokens": "x"}},
    ])
    def test_malformed_envelope(self, body):
        """A 200 reply with a broken envelope still falls back instead of raising."""
        async def run():
            transport = httpx.MockTransport(lambda request: httpx.Response(200, json=body))
            channel = Channel("standard", httpx.AsyncClient(transport=transport))
            parser = IntentParser(LLMClient(api_key="test_key"))
            return await parser.parse("I need food help", [], channel, URL)

        intent = asyncio.run(run())
        assert intent.query == "I need food help"
        assert intent.category == GENERAL

    def test_blank_message_with_empty_query(self):
        """No query from the model and nothing in the message: greet instead of raising."""
        parser = IntentParser(llm_returning('{"query": "", "category": "general", "is_greeting": false}'))
        intent = parse(parser, "   ")
        assert intent.is_greeting
        assert intent.query == ""

    @pytest.mark.parametrize("message", ["hi", "Hello!", "hey carl", "  HEY"])
    def test_greeting_prefix(self, message):
        parser = IntentParser(llm_raising(DecodeError()))
        intent = parse(parser, message)
        assert intent.is_greeting
        assert intent.query == ""

    def test_greeting_prefix_needs_word_boundary(self):
        intent = IntentParser.fallback_intent("highway patrol")
        assert not intent.is_greeting
        assert intent.query == "highway patrol"

    def test_request_intent_reports_failure(self):
        parser = IntentParser(llm_returning("nope"))
        result = asyncio.run(parser.request_intent("food", [], Mock(), URL))
        assert not result.ok
        assert result.error


class TestIntentPrompt:

    def test_lists_every_category(self):
        prompt = build_intent_prompt()
        for category in CATEGORY_FACETS:
            assert category in prompt
