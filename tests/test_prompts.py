from datetime import datetime, timedelta, timezone

import pytest

from agentswitcher.agent import Kind
from agentswitcher.prompts import (
    PromptStandard,
    build_agent_prompt,
    build_agent_prompt_with_standards,
    build_compaction_prompt,
    build_compaction_prompt_with_standards,
    describe_agent,
)
from agentswitcher.store import Message, Session

UTC = timezone.utc


def _at(hour, minute, second):
    return datetime(2026, 5, 9, hour, minute, second, tzinfo=UTC)


@pytest.fixture
def agent_prompt():
    session = Session(agent=Kind.CODEX, summary="Keep using Go.")
    recent = [
        Message(role="user", content="Write tests.", created_at=_at(1, 2, 3)),
        Message(role="assistant", content="I will add unit tests.", created_at=_at(1, 3, 4)),
    ]
    rules = [PromptStandard(path="/tmp/STANDARDS.md", content="Always write table-driven tests.")]
    return build_agent_prompt_with_standards(session, rules, recent, "Add repo coverage")


AGENT_PROMPT_FRAGMENTS = [
    "This conversation is " "agent-agnostic.",
    "Treat it as one continuous conversation even if "
    "the selected runtime changes between turns.",
    "Do not infer your current identity "
    "from prior assistant messages.",
    "If the user asks about identity, model, or provider, "
    "explain that the conversation is agent-agnostic",
    "External standards " "documents.",
    "Standard file: /tmp/STANDARDS.md\nAlways write table-driven tests.",
    "Conversation summary:\n" "Keep using Go.",
    "[2026-05-09T01:02:03Z] USER:\nWrite tests.",
    "[2026-05-09T01:03:04Z] ASSISTANT:\nI will add unit tests.",
    "Latest user message:\n" "Add repo coverage",
]


@pytest.mark.parametrize("fragment", AGENT_PROMPT_FRAGMENTS)
def test_agent_prompt_contains_fragment(agent_prompt, fragment):
    assert fragment in agent_prompt


def test_agent_prompt_is_not_agent_specific(agent_prompt):
    assert "existing codex conversation" not in agent_prompt
    assert agent_prompt.endswith("Add repo coverage")


def test_build_agent_prompt_without_standards_or_summary():
    got = build_agent_prompt(Session(agent=Kind.CLAUDE), [], "  hello  ")
    assert "External standards documents." not in got
    assert "Conversation summary:" not in got
    assert "Recent transcript:" not in got
    assert got.endswith("Latest user message:\nhello")


def test_build_agent_prompt_formats_offset_times():
    moment = datetime(2026, 5, 9, 1, 2, 3, tzinfo=timezone(timedelta(hours=2)))
    got = build_agent_prompt(Session(), [Message(role="user", content="x", created_at=moment)], "y")
    assert "[2026-05-09T01:02:03+02:00] USER:" in got


@pytest.fixture
def compaction_prompt():
    session = Session(summary="Previous summary.")
    history = [Message(role="user", content="Need more tests.", created_at=_at(2, 0, 0))]
    rules = [PromptStandard(path="/tmp/testing.md", content="Never summarize this document.")]
    return build_compaction_prompt_with_standards(session, history, rules)


COMPACTION_FRAGMENTS = [
    "This conversation is agent-agnostic, and "
    "the selected runtime may change over time.",
    "Keep the summary " "under 600 words.",
    "Do not summarize or restate " "external standards documents.",
    "Do not preserve transient provider or model branding "
    "unless it materially affects future work.",
    "Existing summary:\n" "Previous summary.",
    "Excluded external standards files:\n" "- /tmp/testing.md",
    "[2026-05-09T02:00:00Z] USER:\nNeed more tests.",
]


@pytest.mark.parametrize("fragment", COMPACTION_FRAGMENTS)
def test_compaction_prompt_contains_fragment(compaction_prompt, fragment):
    assert fragment in compaction_prompt


def test_compaction_prompt_excludes_standard_content(compaction_prompt):
    assert "Never summarize this document." not in compaction_prompt


def test_build_compaction_prompt_without_summary():
    got = build_compaction_prompt(Session(summary="   "), [])
    assert "Existing summary:" not in got
    assert "Excluded external standards files:" not in got
    assert got.endswith("New conversation content:\n")


@pytest.mark.parametrize(
    ("kind", "expected"),
    [(Kind.CLAUDE, "Claude"), ("custom", "custom")],
)
def test_describe_agent_falls_back_to_kind(kind, expected):
    assert describe_agent(kind) == expected