"""
Live agent queue: admission control, tiered assignment and liveness sweeps.

None of the classes here hold state between calls. Each operation reads a
snapshot from the store, decides, and writes the outcome back.
"""
import logging
import math
import time
from typing import List, Optional

from capacity import MAX_CONCURRENCY, calculate_overflow_capacity, calculate_team_capacity
from errors import RecordNotFoundError
from models import Agent, ChatSession, ChatStatus, utc_now
from observability import (
    record_admission,
    record_assignment,
    record_session_expired,
    record_sweep_duration,
    trace_operation,
)
from store import ChatStore

logger = logging.getLogger(__name__)

# Queue may hold this many times the team's effective capacity
QUEUE_MULTIPLIER = 1.5

# Sweeps a queued chat may go without polling before it is marked inactive
POLL_LIMIT = 3


def chat_limit(agent: Agent) -> int:
    """Concurrent chats an agent may hold: its own limit, capped at the nominal one."""
    return min(agent.max_concurrency, MAX_CONCURRENCY)


class AdmissionController:
    """Decides whether an incoming chat may enter the queue."""

    def __init__(self, store: ChatStore):
        self.store = store

    async def queue_session(self, session: ChatSession, is_office_hours: bool) -> bool:
        """
        Admit `session` if the queue has room, persisting it on acceptance.

        Outside office hours a full queue rejects straight away; during office
        hours the fixed overflow reserve is added before deciding.

        Args:
            session: The new chat session
            is_office_hours: Whether overflow staffing may be drawn upon

        Returns:
            True if the session was queued, False if rejected
        """
        with trace_operation("chat.queue_session", {"chat.office_hours": is_office_hours}) as span:
            agents = await self.store.fetch_available_agents()
            total_capacity = math.floor(calculate_team_capacity(agents) * QUEUE_MULTIPLIER)

            queued_count = len(await self.store.fetch_queued_sessions())
            overflow_used = False

            if queued_count >= total_capacity:
                if not is_office_hours:
                    return self._reject(session, queued_count, total_capacity, overflow_used)

                total_capacity += calculate_overflow_capacity()
                overflow_used = True
                if queued_count >= total_capacity:
                    return self._reject(session, queued_count, total_capacity, overflow_used)

            await self.store.create_session(session)
            record_admission(True, overflow_used)
            if span is not None:
                span.set_attribute("chat.accepted", True)
            logger.info(
                "Queued chat %s (%d/%d queued, overflow=%s)",
                session.session_id, queued_count + 1, total_capacity, overflow_used
            )
            return True

    @staticmethod
    def _reject(session: ChatSession, queued_count: int, total_capacity: int, overflow_used: bool) -> bool:
        record_admission(False, overflow_used)
        logger.info(
            "Rejected chat %s: queue full (%d/%d, overflow=%s)",
            session.session_id, queued_count, total_capacity, overflow_used
        )
        return False


class AssignmentScheduler:
    """
    Hands queued chats to available agents.

    Agents are ranked by tier, then by current load, so the cheapest tier is
    saturated before any chat reaches a more senior agent.
    """

    def __init__(self, store: ChatStore):
        self.store = store

    async def assign_pending(self) -> None:
        """Assign queued chats in order until no agent has room left."""
        start_time = time.time()
        with trace_operation("chat.assign_pending") as span:
            queued_chats = await self.store.fetch_queued_sessions()
            available_agents = await self.store.fetch_available_agents()

            assigned = 0
            for chat in queued_chats:
                agent = self.select_agent(available_agents)
                if agent is None:
                    logger.info(
                        "No agent capacity left; %d chat(s) stay queued",
                        len(queued_chats) - assigned
                    )
                    break
                await self._assign(chat, agent)
                assigned += 1

            if span is not None:
                span.set_attribute("chat.assigned", assigned)
                span.set_attribute("chat.queued", len(queued_chats))

        record_sweep_duration("assign", (time.time() - start_time) * 1000)
        if assigned:
            logger.info("Assigned %d of %d queued chat(s)", assigned, len(queued_chats))

    @staticmethod
    def select_agent(agents: List[Agent]) -> Optional[Agent]:
        """Lowest tier, least loaded agent still under its chat limit."""
        for agent in sorted(agents, key=lambda a: (a.level, a.current_chats)):
            if agent.current_chats < chat_limit(agent):
                return agent
        return None

    async def _assign(self, chat: ChatSession, agent: Agent) -> None:
        chat.assigned_agent_id = agent.agent_id
        chat.is_active = True
        chat.status = ChatStatus.ACTIVE
        agent.current_chats += 1

        async with self.store.transaction():
            await self.store.update_session(chat)
            await self.store.update_agent(agent)

        record_assignment(agent.level.name.lower())
        logger.debug(
            "Chat %s -> agent %s (%s, %d chats)",
            chat.session_id, agent.agent_id, agent.level.name, agent.current_chats
        )


class LivenessMonitor:
    """Expires queued chats whose client has stopped polling."""

    def __init__(self, store: ChatStore, poll_limit: int = POLL_LIMIT):
        self.store = store
        self.poll_limit = poll_limit

    async def monitor_polling(self) -> None:
        """Advance every queued chat's poll counter, expiring exhausted ones."""
        start_time = time.time()
        with trace_operation("chat.monitor_polling") as span:
            sessions = await self.store.fetch_queued_sessions()
            expired = 0

            for session in sessions:
                if session.poll_count >= self.poll_limit:
                    if session.is_active:
                        expired += 1
                        record_session_expired()
                    session.is_active = False
                else:
                    session.poll_count += 1
                await self.store.update_session(session)

            if span is not None:
                span.set_attribute("chat.expired", expired)

        record_sweep_duration("monitor", (time.time() - start_time) * 1000)
        if expired:
            logger.info("Marked %d queued chat(s) inactive", expired)


class ChatQueueService:
    """Wires the queue components to a single store."""

    def __init__(self, store: ChatStore):
        self.store = store
        self.admission = AdmissionController(store)
        self.scheduler = AssignmentScheduler(store)
        self.monitor = LivenessMonitor(store)

    async def queue_session(self, session: ChatSession, is_office_hours: bool) -> bool:
        return await self.admission.queue_session(session, is_office_hours)

    async def assign_pending(self) -> None:
        await self.scheduler.assign_pending()

    async def monitor_polling(self) -> None:
        await self.monitor.monitor_polling()

    async def get_session(self, session_id: str) -> ChatSession:
        session = await self.store.fetch_session_by_id(session_id)
        if session is None:
            raise RecordNotFoundError("chat session", session_id)
        return session

    async def record_poll(self, session_id: str) -> ChatSession:
        """
        Register a heartbeat from the customer's client.

        Resets the poll counter so the liveness sweep starts counting again.
        Closed sessions are returned unchanged.
        """
        session = await self.get_session(session_id)
        if session.status == ChatStatus.CLOSED:
            return session

        session.poll_count = 0
        session.last_poll_at = utc_now()
        session.is_active = True
        await self.store.update_session(session)
        return session

    async def close_session(self, session_id: str) -> ChatSession:
        """Close a chat and release its slot on the assigned agent."""
        async with self.store.transaction():
            session = await self.get_session(session_id)
            if session.status == ChatStatus.CLOSED:
                return session

            if session.assigned_agent_id:
                agent = await self.store.fetch_agent_by_id(session.assigned_agent_id)
                if agent is not None:
                    agent.current_chats = max(agent.current_chats - 1, 0)
                    await self.store.update_agent(agent)

            session.status = ChatStatus.CLOSED
            session.is_active = False
            await self.store.update_session(session)

        logger.info("Closed chat %s", session_id)
        return session

    async def count_active_sessions(self, agent_id: str) -> int:
        return await self.store.count_active_sessions_for_agent(agent_id)

    async def agents_on_shift(self, shift_number: int) -> List[Agent]:
        return await self.store.fetch_agents_by_shift(shift_number)
