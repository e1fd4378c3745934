"""
Record store contract consumed by the queue engine, plus an in-memory
implementation used by the bundled host and the test suite.

Every read returns a snapshot (a copy); changes only become visible to other
callers through an explicit update. Updates use optimistic versioning: the
caller's `version` must match the stored one or ConcurrencyConflictError is
raised.
"""
import asyncio
import copy
from contextlib import asynccontextmanager
from typing import AsyncContextManager, Dict, List, Optional, Protocol

from errors import ConcurrencyConflictError, DuplicateRecordError, RecordNotFoundError
from models import Agent, AgentStatus, ChatSession, ChatStatus


class ChatStore(Protocol):
    """Persistence operations the queue engine relies on."""

    async def fetch_available_agents(self) -> List[Agent]: ...

    async def fetch_queued_sessions(self) -> List[ChatSession]: ...

    async def create_session(self, session: ChatSession) -> None: ...

    async def update_session(self, session: ChatSession) -> None: ...

    async def update_agent(self, agent: Agent) -> None: ...

    async def fetch_session_by_id(self, session_id: str) -> Optional[ChatSession]: ...

    async def count_active_sessions_for_agent(self, agent_id: str) -> int: ...

    async def fetch_agent_by_id(self, agent_id: str) -> Optional[Agent]: ...

    async def fetch_agents_by_shift(self, shift_number: int) -> List[Agent]: ...

    def transaction(self) -> AsyncContextManager[None]:
        """Async context manager; writes inside it commit or roll back together."""
        ...


class InMemoryChatStore:
    """Dict-backed ChatStore."""

    def __init__(self):
        self.agents: Dict[str, Agent] = {}
        self.sessions: Dict[str, ChatSession] = {}
        self._tx_lock = asyncio.Lock()

    # Agents

    async def add_agent(self, agent: Agent) -> Agent:
        """Register an agent (shift management)."""
        if agent.agent_id in self.agents:
            raise DuplicateRecordError("agent", agent.agent_id)
        self.agents[agent.agent_id] = agent.model_copy(deep=True)
        return agent

    async def fetch_available_agents(self) -> List[Agent]:
        return [
            agent.model_copy(deep=True)
            for agent in self.agents.values()
            if agent.status == AgentStatus.AVAILABLE
        ]

    async def fetch_agent_by_id(self, agent_id: str) -> Optional[Agent]:
        agent = self.agents.get(agent_id)
        return agent.model_copy(deep=True) if agent else None

    async def fetch_agents_by_shift(self, shift_number: int) -> List[Agent]:
        return [
            agent.model_copy(deep=True)
            for agent in self.agents.values()
            if agent.shift_number == shift_number
        ]

    async def update_agent(self, agent: Agent) -> None:
        self._check_version("agent", self.agents.get(agent.agent_id), agent.agent_id, agent.version)
        agent.version += 1
        self.agents[agent.agent_id] = agent.model_copy(deep=True)

    # Chat sessions

    async def fetch_queued_sessions(self) -> List[ChatSession]:
        """Queued sessions in creation order."""
        return [
            session.model_copy(deep=True)
            for session in self.sessions.values()
            if session.status == ChatStatus.QUEUED
        ]

    async def create_session(self, session: ChatSession) -> None:
        if session.session_id in self.sessions:
            raise DuplicateRecordError("chat session", session.session_id)
        self.sessions[session.session_id] = session.model_copy(deep=True)

    async def update_session(self, session: ChatSession) -> None:
        self._check_version(
            "chat session", self.sessions.get(session.session_id), session.session_id, session.version
        )
        session.version += 1
        self.sessions[session.session_id] = session.model_copy(deep=True)

    async def fetch_session_by_id(self, session_id: str) -> Optional[ChatSession]:
        session = self.sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    async def count_active_sessions_for_agent(self, agent_id: str) -> int:
        return sum(
            1
            for session in self.sessions.values()
            if session.assigned_agent_id == agent_id and session.status == ChatStatus.ACTIVE
        )

    @asynccontextmanager
    async def transaction(self):
        """Serialize a group of writes; restore the previous state if any fails."""
        async with self._tx_lock:
            agents = copy.deepcopy(self.agents)
            sessions = copy.deepcopy(self.sessions)
            try:
                yield
            except BaseException:
                self.agents = agents
                self.sessions = sessions
                raise

    @staticmethod
    def _check_version(kind: str, stored, record_id: str, version: int):
        if stored is None:
            raise RecordNotFoundError(kind, record_id)
        if stored.version != version:
            raise ConcurrencyConflictError(kind, record_id, version, stored.version)
