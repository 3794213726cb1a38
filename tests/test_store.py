import re
import time

import pytest

from agentswitcher.agent import Kind
from agentswitcher.store import (
    Repository,
    StoreError,
    default_title,
    make_title,
    new_uuid,
)


@pytest.fixture
def repo(tmp_path):
    repository = Repository(str(tmp_path / "test.db"))
    yield repository
    repository.close()


def _paths(standards):
    return [s.path for s in standards]


def test_replace_standards_and_list_standards(repo):
    session = repo.create_session(Kind.CODEX)
    time.sleep(0.002)
    repo.replace_standards(session.id, ["/tmp/b.md", "/tmp/a.md"])

    assert _paths(repo.list_standards(session.id)) == ["/tmp/a.md", "/tmp/b.md"]

    updated = repo.get_session(session.id)
    assert updated.updated_at > session.updated_at

    repo.replace_standards(session.id, ["/tmp/c.md"])
    assert _paths(repo.list_standards(session.id)) == ["/tmp/c.md"]


def test_get_context_snapshot_returns_recent_messages_in_ascending_order(repo):
    session = repo.create_session(Kind.CODEX)
    repo.replace_standards(session.id, ["/tmp/rules.md"])
    for i in range(1, 14):
        repo.add_exchange(session.id, f"user-{i:02d}", f"assistant-{i:02d}")

    snapshot = repo.get_context_snapshot(session.id)

    assert _paths(snapshot.standards) == ["/tmp/rules.md"]
    assert len(snapshot.recent_messages) == 24
    assert snapshot.recent_messages[0].content == "user-02"
    assert snapshot.recent_messages[-1].content == "assistant-13"


def test_get_messages_for_compaction_excludes_compacted_turns(repo):
    session = repo.create_session(Kind.CODEX)
    for i in range(1, 4):
        repo.add_exchange(session.id, f"prompt-{i}", f"reply-{i}")
    repo.save_compaction(session.id, "summary", 2)

    got = repo.get_messages_for_compaction(session.id)
    assert [m.content for m in got] == ["prompt-3", "reply-3"]


def test_add_exchange_and_compaction_state(repo):
    session = repo.create_session(Kind.CLAUDE)

    updated = repo.add_exchange(session.id, "   first prompt   ", " first reply ")
    assert updated.title == "first prompt"
    assert updated.user_prompt_count == 1
    assert repo.need_compaction(updated) is False

    for i in range(2, 13):
        updated = repo.add_exchange(session.id, f"prompt {i}", f"reply {i}")
    assert updated.title == "first prompt"
    assert repo.need_compaction(updated) is True

    compacted = repo.save_compaction(session.id, "  compacted summary  ", 12)
    assert compacted.summary == "compacted summary"
    assert compacted.compacted_prompt_count == 12
    assert repo.need_compaction(compacted) is False


def test_add_exchange_stores_trimmed_messages(repo):
    session = repo.create_session(Kind.GEMINI)
    repo.add_exchange(session.id, "  ask  ", "  answer  ")
    messages = repo.list_messages(session.id)
    assert [(m.role, m.content) for m in messages] == [("user", "ask"), ("assistant", "answer")]


def test_add_exchange_for_missing_session_fails(repo):
    with pytest.raises(StoreError):
        repo.add_exchange("missing", "prompt", "reply")


def test_update_session_agent(repo):
    session = repo.create_session(Kind.CODEX)
    time.sleep(0.002)
    updated = repo.update_session_agent(session.id, Kind.CLAUDE)

    assert updated.id == session.id
    assert updated.agent == Kind.CLAUDE
    assert updated.updated_at > session.updated_at


def test_get_session_round_trip_and_missing(repo):
    session = repo.create_session(Kind.PI)
    loaded = repo.get_session(session.id)
    assert loaded == session
    with pytest.raises(StoreError, match="get session nope"):
        repo.get_session("nope")


def test_list_sessions_filters_by_agent_and_orders(repo):
    first = repo.create_session(Kind.CODEX)
    time.sleep(0.002)
    second = repo.create_session(Kind.CLAUDE)
    time.sleep(0.002)
    third = repo.create_session(Kind.CODEX)

    assert [s.id for s in repo.list_sessions(Kind.CODEX, 10)] == [third.id, first.id]
    assert [s.id for s in repo.list_all_sessions(10)] == [third.id, second.id, first.id]
    assert [s.id for s in repo.list_all_sessions(1)] == [third.id]

    time.sleep(0.002)
    repo.update_session_agent(first.id, Kind.CODEX)
    assert repo.list_all_sessions(10)[0].id == first.id


def test_unknown_agent_kind_is_kept(repo):
    session = repo.create_session("custom")
    assert session.title == "New session"
    assert repo.get_session(session.id).agent == "custom"


def test_create_session_default_title(repo):
    session = repo.create_session(Kind.GEMINI)
    assert session.title == "New Gemini session"
    assert session.user_prompt_count == 0
    assert session.summary == ""


def test_make_title():
    assert make_title("   ", Kind.CODEX) == "New Codex session"
    assert make_title("x" * 60, Kind.CODEX) == "x" * 48 + "..."
    assert make_title("x" * 48, Kind.CODEX) == "x" * 48


def test_default_title():
    assert default_title(Kind.CLAUDE) == "New Claude session"
    assert default_title("custom") == "New session"


def test_new_uuid_format():
    value = new_uuid()
    assert re.fullmatch(r"[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}", value)
    assert new_uuid() != value


def test_repository_context_manager_closes(tmp_path):
    with Repository(str(tmp_path / "ctx.db")) as repository:
        session = repository.create_session(Kind.CODEX)
    with Repository(str(tmp_path / "ctx.db")) as reopened:
        assert reopened.get_session(session.id).id == session.id
    with pytest.raises(StoreError):
        repository.get_session(session.id)