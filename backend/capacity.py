"""
Capacity model for the support team.

Converts a roster of agents into the number of chats the team can be credited
with handling, plus the fixed overflow reserve used during office hours.
"""
import math
from typing import Dict, Iterable

from models import Agent, AgentLevel

# Nominal concurrent chats per agent
MAX_CONCURRENCY = 10

# Fraction of nominal concurrency credited as effective capacity per tier
EFFICIENCY_MULTIPLIERS: Dict[AgentLevel, float] = {
    AgentLevel.JUNIOR: 0.4,
    AgentLevel.MID_LEVEL: 0.6,
    AgentLevel.SENIOR: 0.8,
    AgentLevel.TEAM_LEAD: 0.5,
}
DEFAULT_EFFICIENCY = EFFICIENCY_MULTIPLIERS[AgentLevel.JUNIOR]

# Overflow reserve: 6 junior-equivalent agents
OVERFLOW_TEAM_SIZE = 6


def efficiency_multiplier(level) -> float:
    """Return the efficiency credited to a tier, junior rate if unknown."""
    return EFFICIENCY_MULTIPLIERS.get(level, DEFAULT_EFFICIENCY)


def calculate_team_capacity(agents: Iterable[Agent]) -> int:
    """
    Effective chat capacity of the given agents.

    Args:
        agents: Agents to credit (normally the available roster)

    Returns:
        Sum of max_concurrency x tier efficiency, floored
    """
    capacity = sum(
        agent.max_concurrency * efficiency_multiplier(agent.level)
        for agent in agents
    )
    return math.floor(capacity)


def calculate_overflow_capacity() -> int:
    """Fixed overflow reserve, independent of who is online."""
    return math.floor(MAX_CONCURRENCY * DEFAULT_EFFICIENCY * OVERFLOW_TEAM_SIZE)
