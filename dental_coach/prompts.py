"""System prompt for the Dental Coach and chat message assembly."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from langchain_core.messages import AIMessage, AnyMessage, HumanMessage, SystemMessage

from dental_coach.context import GroundingContext

NO_ENTRIES_MARKER = "No knowledge base entries are available."
UNAVAILABLE_MARKER = (
    "The knowledge base could not be loaded for this conversation. "
    "No grounding is available."
)
NOT_COVERED_PHRASE = "isn't covered in our current resources"

SYSTEM_PROMPT_TEMPLATE = """You are the **AI Coach** for dental practices: an experienced practice-management consultant who helps dentists, office managers and front-desk teams run a better practice.

## Tone & Style
- Professional, encouraging and practical. Speak like a trusted colleague, not a textbook.
- Keep answers focused: 1-3 short paragraphs unless the user asks for depth.
- Prefer concrete steps, scripts and examples the team can use tomorrow.
- Never give clinical diagnoses or treatment advice for individual patients.

## Knowledge Base
The entries below are the practice's curated coaching material. Each entry starts with `### Title (type)` and entries are separated by `---`.

<knowledge_base>
{knowledge_context}
</knowledge_base>

## How to Use the Knowledge Base
1. Base your answer on the knowledge base entries whenever they cover the question.
2. List every entry you used in `relevantSources`, with its exact title, its type, and one sentence on why it is relevant.
3. If no entry covers the topic, say plainly that the topic {not_covered} before offering your own general recommendation, and leave `relevantSources` empty.
4. Never invent knowledge base entries, titles or quotes.
5. Only when your answer builds on a concrete knowledge base topic, include `suggestedResources` (titles of entries worth reading next) and one `learningCheck` on that topic. When nothing relevant exists, omit both fields entirely instead of making something up.

## Output Format
Reply with ONE JSON object and nothing else: no markdown fences, no text before or after it. Use exactly these keys:

{{
  "relevantSources": [
    {{"title": "<entry title>", "type": "<entry type>", "relevance": "<why it applies>"}}
  ],
  "response": "<your answer; separate paragraphs with \\n>",
  "suggestedResources": ["<entry title>"],
  "learningCheck": {{
    "question": "<one question about the topic>",
    "options": ["<option A>", "<option B>", "<option C>"],
    "correctAnswer": "<the option that is correct, copied exactly>"
  }}
}}

- `response` is required and must be a string.
- `relevantSources` and `suggestedResources` are arrays; they may be empty.
- `learningCheck` is optional; when present it needs at least two `options`.
"""

_ROLE_TO_MESSAGE = {
    "user": HumanMessage,
    "assistant": AIMessage,
}


def render_knowledge_section(context: GroundingContext) -> str:
    """Return the text placed between the ``<knowledge_base>`` tags."""
    if not context.available:
        return UNAVAILABLE_MARKER
    if context.is_empty:
        return NO_ENTRIES_MARKER
    return context.text


def build_system_prompt(context: GroundingContext) -> str:
    """Build the complete instruction message for *context*.

    The result depends only on the knowledge block, so identical knowledge
    sets always produce identical prompts.
    """
    return SYSTEM_PROMPT_TEMPLATE.format(
        knowledge_context=render_knowledge_section(context),
        not_covered=NOT_COVERED_PHRASE,
    )


def to_langchain_messages(history: Iterable[Mapping[str, str]]) -> list[AnyMessage]:
    """Convert ``{"role", "content"}`` dicts into LangChain messages.

    Raises ``ValueError`` for roles other than ``user`` and ``assistant``.
    """
    messages: list[AnyMessage] = []
    for turn in history:
        try:
            message_cls = _ROLE_TO_MESSAGE[turn["role"]]
        except KeyError:
            raise ValueError(f"Unsupported chat role: {turn.get('role')!r}") from None
        messages.append(message_cls(content=turn["content"]))
    return messages


def build_messages(
    context: GroundingContext,
    history: Iterable[Mapping[str, str]],
) -> list[AnyMessage]:
    """Instruction message first, then the whole conversation so far."""
    return [SystemMessage(content=build_system_prompt(context))] + to_langchain_messages(history)
