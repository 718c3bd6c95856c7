"""Tests for the structured response contract: parsing, fallback, rendering."""

from __future__ import annotations

import json

import pytest

from dental_coach.contract import (
    StructuredAssistantResponse,
    collect_stream,
    parse_assistant_response,
    render_text,
    validate_assistant_response,
)
from dental_coach.errors import MalformedResponseShape

FULL_PAYLOAD = {
    "relevantSources": [
        {"title": "Insurance Basics", "type": "text", "relevance": "Covers verification timing."},
    ],
    "response": "Verify coverage two days ahead.\nConfirm the copay at check-in.",
    "suggestedResources": ["Insurance Basics", "Front Desk Scripts"],
    "learningCheck": {
        "question": "When should coverage be verified?",
        "options": ["At check-out", "48 hours before", "Never"],
        "correctAnswer": "48 hours before",
    },
}


class TestParseValidPayloads:
    def test_full_payload_parses_every_field(self):
        reply = parse_assistant_response(json.dumps(FULL_PAYLOAD))
        assert not reply.is_fallback
        assert reply.relevant_sources[0].title == "Insurance Basics"
        assert reply.suggested_resources == ["Insurance Basics", "Front Desk Scripts"]
        assert reply.learning_check.correct_answer == "48 hours before"
        assert reply.paragraphs == [
            "Verify coverage two days ahead.",
            "Confirm the copay at check-in.",
        ]

    def test_round_trip_preserves_fields(self):
        reply = parse_assistant_response(json.dumps(FULL_PAYLOAD))
        assert json.loads(reply.to_json()) == FULL_PAYLOAD

    def test_round_trip_with_empty_lists_and_no_answer_key(self):
        payload = {
            "relevantSources": [],
            "response": "That isn't covered in our current resources.",
            "suggestedResources": [],
            "learningCheck": {"question": "Q?", "options": ["a", "b"]},
        }
        reply = parse_assistant_response(json.dumps(payload))
        assert json.loads(reply.to_json()) == payload

    def test_missing_optional_fields_are_absent(self):
        reply = parse_assistant_response('{"response": "Hello", "suggestedResources": ["Guide A"]}')
        assert not reply.is_fallback
        assert reply.response == "Hello"
        assert reply.suggested_resources == ["Guide A"]
        assert reply.relevant_sources is None
        assert reply.learning_check is None
        assert json.loads(reply.to_json()) == {"response": "Hello", "suggestedResources": ["Guide A"]}

    def test_snake_case_keys_are_not_contract_fields(self):
        reply = parse_assistant_response('{"response": "x", "suggested_resources": ["A"]}')
        assert reply.suggested_resources is None
        assert json.loads(reply.to_json()) == {"response": "x"}

    def test_snake_case_only_reply_falls_back(self):
        raw = '{"relevant_sources": [], "learning_check": {"question": "Q?", "options": ["a", "b"]}}'
        reply = parse_assistant_response(raw)
        assert reply.is_fallback
        assert reply.response == raw

    def test_surrounding_whitespace_is_tolerated(self):
        reply = parse_assistant_response('\n  {"response": "Hi"}  \n')
        assert not reply.is_fallback
        assert reply.response == "Hi"


class TestFallback:
    @pytest.mark.parametrize(
        "raw",
        [
            "Sure! Here are three ways to improve case acceptance.",
            "",
            '{"response": "cut off mid-stre',
            "[1, 2, 3]",
            "null",
            '"just a string"',
            '{"relevantSources": []}',
            '{"response": 42}',
            '{"response": "ok", "suggestedResources": "Guide A"}',
            '{"response": "ok", "relevantSources": [{"title": "A"}]}',
            '{"response": "ok", "learningCheck": {"question": "Q?", "options": ["only one"]}}',
            '{"response": "ok", "learningCheck": {"question": "Q?", "options": ["a", "b"], "correctAnswer": "c"}}',
            '```json\n{"response": "fenced"}\n```',
        ],
    )
    def test_invalid_output_falls_back_to_raw_text(self, raw):
        reply = parse_assistant_response(raw)
        assert reply.is_fallback
        assert reply.response == raw
        assert reply.relevant_sources is None
        assert reply.suggested_resources is None
        assert reply.learning_check is None

    def test_strict_validation_raises(self):
        with pytest.raises(MalformedResponseShape):
            validate_assistant_response("not json")

    def test_fallback_serialises_response_only(self):
        reply = StructuredAssistantResponse.fallback("plain words")
        assert json.loads(reply.to_json()) == {"response": "plain words"}


class TestCollectStream:
    async def test_parses_only_after_stream_is_drained(self):
        payload = json.dumps({"response": "Hello there", "suggestedResources": []})

        async def chunks():
            for i in range(0, len(payload), 5):
                yield payload[i : i + 5]

        reply = await collect_stream(chunks())
        assert not reply.is_fallback
        assert reply.response == "Hello there"

    async def test_truncated_stream_falls_back(self):
        async def chunks():
            yield '{"response": "Hel'

        reply = await collect_stream(chunks())
        assert reply.is_fallback
        assert reply.response == '{"response": "Hel'


class TestRenderText:
    def test_renders_every_section(self):
        text = render_text(parse_assistant_response(json.dumps(FULL_PAYLOAD)))
        assert "Relevant Sources:" in text
        assert "Insurance Basics (text): Covers verification timing." in text
        assert "Verify coverage two days ahead.\n\nConfirm the copay at check-in." in text
        assert "Suggested Resources:" in text
        assert "> Front Desk Scripts" in text
        assert "Quick Learning Check:" in text
        assert "2) 48 hours before" in text

    def test_numbers_every_learning_check_option(self):
        options = [f"Option {i}" for i in range(1, 13)]
        payload = {"response": "r", "learningCheck": {"question": "Q?", "options": options}}
        text = render_text(parse_assistant_response(json.dumps(payload)))
        for number, option in enumerate(options, start=1):
            assert f"{number}) {option}" in text

    def test_skips_absent_sections(self):
        text = render_text(parse_assistant_response('{"response": "Just this."}'))
        assert text == "Just this."

    def test_fallback_renders_raw_text(self):
        assert render_text(parse_assistant_response("raw prose")) == "raw prose"
