"""
Shared pytest fixtures for the chat queue test suite.
"""

from typing import Callable, List

import pytest

from live_agent_system import ChatQueueService
from models import Agent, AgentLevel, ChatSession
from store import InMemoryChatStore


@pytest.fixture
def store() -> InMemoryChatStore:
    """Empty in-memory store."""
    return InMemoryChatStore()


@pytest.fixture
def service(store: InMemoryChatStore) -> ChatQueueService:
    return ChatQueueService(store)


@pytest.fixture
def add_agents(store: InMemoryChatStore) -> Callable[..., List[Agent]]:
    """Seed `count` agents of one tier directly into the store."""

    def _add(count: int, level: AgentLevel, **fields) -> List[Agent]:
        agents = []
        for i in range(count):
            agent = Agent(name=f"{level.name.lower()}-{i}", level=level, **fields)
            store.agents[agent.agent_id] = agent
            agents.append(agent)
        return agents

    return _add


@pytest.fixture
def add_queued(store: InMemoryChatStore) -> Callable[..., List[ChatSession]]:
    """Seed `count` queued chat sessions directly into the store."""

    def _add(count: int, **fields) -> List[ChatSession]:
        sessions = []
        for _ in range(count):
            session = ChatSession(**fields)
            store.sessions[session.session_id] = session
            sessions.append(session)
        return sessions

    return _add
