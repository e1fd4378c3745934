"""
Data models for the live chat queue.
"""
import uuid
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime, timezone
from enum import Enum, IntEnum


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class AgentLevel(IntEnum):
    """Seniority tiers, ordered cheapest first."""
    JUNIOR = 0
    MID_LEVEL = 1
    SENIOR = 2
    TEAM_LEAD = 3


class AgentStatus(str, Enum):
    """Availability of a live agent."""
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"


class ChatStatus(str, Enum):
    """Possible states for a chat session."""
    QUEUED = "queued"
    ACTIVE = "active"
    CLOSED = "closed"


class Agent(BaseModel):
    """A live support agent."""
    agent_id: str = Field(default_factory=new_id)
    name: str = ""
    level: AgentLevel = AgentLevel.JUNIOR
    max_concurrency: int = Field(default=10, ge=0)
    current_chats: int = Field(default=0, ge=0)
    shift_number: int = 0
    status: AgentStatus = AgentStatus.AVAILABLE
    version: int = 0


class ChatSession(BaseModel):
    """A customer chat waiting for, or being served by, an agent."""
    session_id: str = Field(default_factory=new_id)
    assigned_agent_id: Optional[str] = None
    is_active: bool = True
    status: ChatStatus = ChatStatus.QUEUED
    created_at: datetime = Field(default_factory=utc_now)
    poll_count: int = Field(default=0, ge=0)
    last_poll_at: Optional[datetime] = None
    version: int = 0


class QueueChatRequest(BaseModel):
    """Request from the customer chat endpoint to join the queue."""
    is_office_hours: Optional[bool] = None


class QueueChatResponse(BaseModel):
    """Admission decision for a chat request."""
    accepted: bool
    session_id: Optional[str] = None
    status: Optional[ChatStatus] = None


class AgentCreateRequest(BaseModel):
    """Registration of an agent by shift management."""
    name: str
    level: AgentLevel = AgentLevel.JUNIOR
    max_concurrency: int = Field(default=10, ge=0)
    shift_number: int = 0
    status: AgentStatus = AgentStatus.AVAILABLE


class AgentList(BaseModel):
    agents: List[Agent] = Field(default_factory=list)
