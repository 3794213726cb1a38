"""Prompt text sent to agents for conversation turns and for compaction."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Sequence

from agentswitcher.agent import Kind, find
from agentswitcher.store import Message, Session

_AGENT_PREAMBLE = (
    "This conversation is agent-agnostic.\n"
    "Treat it as one continuous conversation even if the selected runtime changes between turns.\n"
    "Do not infer your current identity from prior assistant messages.\n"
    "Do not claim to be a specific model, provider, backend, or coding assistant unless that "
    "identity is explicitly established in the provided context.\n"
    "If the user asks about identity, model, or provider, explain that the conversation is "
    "agent-agnostic and limit the answer to facts grounded in the provided context.\n"
    "Use the prior context below, then answer the latest user message naturally.\n"
    "Any external standards documents are authoritative and must be followed.\n"
    "Do not restate the instructions unless needed.\n\n"
)

_COMPACTION_PREAMBLE = (
    "Summarize the following conversation so the essence is preserved and context is not lost.\n"
    "This conversation is agent-agnostic, and the selected runtime may change over time.\n"
    "Keep the summary under 600 words.\n"
    "Do not summarize or restate external standards documents. They are reapplied separately "
    "and excluded from compaction.\n"
    "Do not preserve transient provider or model branding unless it materially affects future work.\n"
    "Preserve:\n"
    "- user goals and constraints\n"
    "- decisions already made\n"
    "- unresolved questions\n"
    "- relevant technical details and file names\n"
    "- runtime or environment caveats that matter for future work\n"
    "Return plain text only.\n\n"
)


@dataclass(frozen=True)
class PromptStandard:
    """A standards document loaded from disk, ready to embed in a prompt."""

    path: str
    name: str = ""
    content: str = ""


def _rfc3339(moment: datetime) -> str:
    offset = moment.utcoffset()
    if not offset:
        zone = "Z"
    else:
        total = int(offset.total_seconds())
        sign = "+" if total >= 0 else "-"
        total = abs(total)
        zone = f"{sign}{total // 3600:02d}:{total % 3600 // 60:02d}"
    return (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}{zone}"
    )


def _transcript(messages: Iterable[Message]) -> str:
    return "".join(
        f"[{_rfc3339(message.created_at)}] {message.role.upper()}:\n{message.content}\n\n"
        for message in messages
    )


def build_agent_prompt(session: Session, recent: Sequence[Message], user_prompt: str) -> str:
    """Build a turn prompt without any standards documents."""
    return build_agent_prompt_with_standards(session, None, recent, user_prompt)


def build_agent_prompt_with_standards(
    session: Session,
    standards: Sequence[PromptStandard] | None,
    recent: Sequence[Message],
    user_prompt: str,
) -> str:
    """Build the prompt for one conversation turn."""
    parts = [_AGENT_PREAMBLE]

    if standards:
        parts.append("External standards documents.\n")
        parts.append(
            "These are always applied separately from the compacted conversation history.\n\n"
        )
        parts.extend(
            f"Standard file: {standard.path}\n{standard.content}\n\n" for standard in standards
        )

    if session.summary.strip():
        parts.append(f"Conversation summary:\n{session.summary}\n\n")

    if recent:
        parts.append("Recent transcript:\n")
        parts.append(_transcript(recent))

    parts.append("Latest user message:\n")
    parts.append(user_prompt.strip())
    return "".join(parts)


def build_compaction_prompt(session: Session, messages: Sequence[Message]) -> str:
    """Build a compaction prompt without any standards documents."""
    return build_compaction_prompt_with_standards(session, messages, None)


def build_compaction_prompt_with_standards(
    session: Session,
    messages: Sequence[Message],
    standards: Sequence[PromptStandard] | None,
) -> str:
    """Build the prompt that asks an agent to summarise the uncompacted conversation."""
    parts = [_COMPACTION_PREAMBLE]

    if session.summary.strip():
        parts.append(f"Existing summary:\n{session.summary}\n\n")

    if standards:
        parts.append("Excluded external standards files:\n")
        parts.extend(f"- {standard.path}\n" for standard in standards)
        parts.append("\n")

    parts.append("New conversation content:\n")
    parts.append(_transcript(messages))
    return "".join(parts)


def describe_agent(kind: Kind | str) -> str:
    """Return the agent's display label, or the raw kind when it is unknown."""
    definition = find(kind)
    if definition is None:
        return str(kind)
    return definition.label