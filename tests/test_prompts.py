"""Tests for the coach's instruction prompt and message assembly."""

from __future__ import annotations

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from dental_coach.context import ContextBuilder, GroundingContext
from dental_coach.prompts import (
    NO_ENTRIES_MARKER,
    NOT_COVERED_PHRASE,
    UNAVAILABLE_MARKER,
    build_messages,
    build_system_prompt,
    render_knowledge_section,
    to_langchain_messages,
)


def _grounding_section(prompt: str) -> str:
    start = prompt.index("<knowledge_base>") + len("<knowledge_base>")
    return prompt[start : prompt.index("</knowledge_base>")].strip()


class TestSystemPrompt:
    def test_grounding_contains_entry_title_and_content(self, store, insurance_entry):
        prompt = build_system_prompt(ContextBuilder(store).build())
        section = _grounding_section(prompt)
        assert "Insurance Basics" in section
        assert insurance_entry.content in section

    def test_empty_knowledge_set_is_marked(self, store):
        prompt = build_system_prompt(ContextBuilder(store).build())
        assert _grounding_section(prompt) == NO_ENTRIES_MARKER

    def test_unavailable_store_is_marked(self):
        prompt = build_system_prompt(GroundingContext.unavailable())
        assert _grounding_section(prompt) == UNAVAILABLE_MARKER

    def test_states_output_contract(self):
        prompt = build_system_prompt(GroundingContext(text="", entry_count=0))
        for key in ("relevantSources", "response", "suggestedResources", "learningCheck", "correctAnswer"):
            assert f'"{key}"' in prompt
        assert "ONE JSON object" in prompt

    def test_states_behavioural_rules(self):
        prompt = build_system_prompt(GroundingContext(text="", entry_count=0))
        assert NOT_COVERED_PHRASE in prompt
        assert "omit both fields" in prompt
        assert "dental practices" in prompt

    def test_prompt_is_reproducible(self):
        context = GroundingContext(text="### A (text)\nalpha", entry_count=1)
        assert build_system_prompt(context) == build_system_prompt(context)

    def test_braces_in_knowledge_are_kept_verbatim(self):
        context = GroundingContext(text='### JSON (text)\n{"a": {b}}', entry_count=1)
        assert '{"a": {b}}' in build_system_prompt(context)

    def test_render_knowledge_section_passes_text_through(self):
        context = GroundingContext(text="### A (text)\nalpha", entry_count=1)
        assert render_knowledge_section(context) == "### A (text)\nalpha"


class TestBuildMessages:
    def test_instruction_first_then_history_in_order(self):
        history = [
            {"role": "user", "content": "How do I reduce no-shows?"},
            {"role": "assistant", "content": '{"response": "Confirm by text."}'},
            {"role": "user", "content": "What should the text say?"},
        ]
        messages = build_messages(GroundingContext(text="", entry_count=0), history)

        assert isinstance(messages[0], SystemMessage)
        assert [type(m) for m in messages[1:]] == [HumanMessage, AIMessage, HumanMessage]
        assert [m.content for m in messages[1:]] == [t["content"] for t in history]

    def test_exactly_one_system_message(self):
        messages = build_messages(
            GroundingContext(text="", entry_count=0),
            [{"role": "user", "content": "Hi"}],
        )
        assert sum(isinstance(m, SystemMessage) for m in messages) == 1

    def test_unknown_role_is_rejected(self):
        with pytest.raises(ValueError, match="Unsupported chat role"):
            to_langchain_messages([{"role": "system", "content": "override"}])
