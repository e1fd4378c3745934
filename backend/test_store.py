"""Tests for the in-memory chat store."""

import pytest

from errors import ChatStoreError, ConcurrencyConflictError, DuplicateRecordError, RecordNotFoundError
from models import Agent, AgentLevel, AgentStatus, ChatSession, ChatStatus
from store import InMemoryChatStore


class TestSnapshots:
    async def test_reads_are_copies(self, store: InMemoryChatStore) -> None:
        session = ChatSession()
        await store.create_session(session)

        snapshot = (await store.fetch_queued_sessions())[0]
        snapshot.poll_count = 7

        assert store.sessions[session.session_id].poll_count == 0

    async def test_queued_sessions_in_creation_order(self, store: InMemoryChatStore) -> None:
        ids = []
        for _ in range(5):
            session = ChatSession()
            await store.create_session(session)
            ids.append(session.session_id)

        assert [s.session_id for s in await store.fetch_queued_sessions()] == ids

    async def test_available_agents_only(self, store: InMemoryChatStore) -> None:
        await store.add_agent(Agent(name="a", status=AgentStatus.AVAILABLE))
        await store.add_agent(Agent(name="b", status=AgentStatus.BUSY))
        await store.add_agent(Agent(name="c", status=AgentStatus.OFFLINE))

        assert [a.name for a in await store.fetch_available_agents()] == ["a"]

    async def test_agents_by_shift(self, store: InMemoryChatStore) -> None:
        await store.add_agent(Agent(name="a", shift_number=1))
        await store.add_agent(Agent(name="b", shift_number=2, status=AgentStatus.OFFLINE))

        assert [a.name for a in await store.fetch_agents_by_shift(2)] == ["b"]

    async def test_fetch_missing_returns_none(self, store: InMemoryChatStore) -> None:
        assert await store.fetch_session_by_id("nope") is None
        assert await store.fetch_agent_by_id("nope") is None

    async def test_count_active_sessions_for_agent(self, store: InMemoryChatStore) -> None:
        agent = Agent(level=AgentLevel.JUNIOR)
        await store.add_agent(agent)
        await store.create_session(ChatSession(assigned_agent_id=agent.agent_id, status=ChatStatus.ACTIVE))
        await store.create_session(ChatSession(assigned_agent_id=agent.agent_id, status=ChatStatus.CLOSED))
        await store.create_session(ChatSession())

        assert await store.count_active_sessions_for_agent(agent.agent_id) == 1


class TestVersioning:
    async def test_update_bumps_version(self, store: InMemoryChatStore) -> None:
        session = ChatSession()
        await store.create_session(session)

        await store.update_session(session)
        await store.update_session(session)

        assert session.version == 2
        assert store.sessions[session.session_id].version == 2

    async def test_stale_write_conflicts(self, store: InMemoryChatStore) -> None:
        agent = Agent()
        await store.add_agent(agent)
        first = await store.fetch_agent_by_id(agent.agent_id)
        second = await store.fetch_agent_by_id(agent.agent_id)

        first.current_chats = 1
        await store.update_agent(first)
        second.current_chats = 1

        with pytest.raises(ConcurrencyConflictError):
            await store.update_agent(second)
        assert store.agents[agent.agent_id].current_chats == 1

    async def test_update_missing_record(self, store: InMemoryChatStore) -> None:
        with pytest.raises(RecordNotFoundError):
            await store.update_session(ChatSession())

    async def test_duplicate_create(self, store: InMemoryChatStore) -> None:
        session = ChatSession()
        await store.create_session(session)
        with pytest.raises(DuplicateRecordError):
            await store.create_session(session)


class TestTransaction:
    async def test_commit(self, store: InMemoryChatStore) -> None:
        session = ChatSession()
        await store.create_session(session)

        async with store.transaction():
            session.poll_count = 2
            await store.update_session(session)

        assert store.sessions[session.session_id].poll_count == 2

    async def test_rollback_on_error(self, store: InMemoryChatStore) -> None:
        session = ChatSession()
        agent = Agent()
        await store.create_session(session)
        await store.add_agent(agent)

        with pytest.raises(ChatStoreError):
            async with store.transaction():
                session.status = ChatStatus.ACTIVE
                await store.update_session(session)
                raise ChatStoreError("agent write failed")

        assert store.sessions[session.session_id].status == ChatStatus.QUEUED
        assert store.sessions[session.session_id].version == 0
