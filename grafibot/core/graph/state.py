"""
Agent state for LangGraph.
Defines the structure carried between the agent and tools nodes.
"""

from typing import Annotated, TypedDict

from langgraph.graph.message import add_messages


class AgentState(TypedDict):
    """
    State of one conversation turn.

    Attributes:
        messages: Prior history plus the turn's messages (accumulated by add_messages)
        tool_rounds: Tool round-trips already executed in this turn
    """
    messages: Annotated[list, add_messages]
    tool_rounds: int
