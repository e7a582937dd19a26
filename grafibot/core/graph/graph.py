"""
LangGraph agent graph.
Orchestrates the model/tool loop for one conversation turn.
"""

import logging

from langchain_core.language_models import BaseChatModel
from langchain_core.tools import BaseTool
from langgraph.graph import END, START, StateGraph

from grafibot.config import settings
from grafibot.core.graph.nodes import make_agent_node, make_router, make_tools_node
from grafibot.core.graph.prompts import build_system_prompt
from grafibot.core.graph.state import AgentState

logger = logging.getLogger(__name__)


def create_graph(
    model: BaseChatModel,
    tools: list[BaseTool],
    max_tool_rounds: int | None = None,
) -> StateGraph:
    """
    Create the agent graph.

    Flow:
        START -> agent -> (tools -> agent)* -> END

    The agent node goes to tools while the model requests tool calls and
    fewer than `max_tool_rounds` rounds have run in the turn.
    """
    max_tool_rounds = max_tool_rounds or settings.max_tool_rounds
    graph = StateGraph(AgentState)

    # Add nodes
    graph.add_node("agent", make_agent_node(model, tools, build_system_prompt(tools)))
    graph.add_node("tools", make_tools_node(tools))

    # Define flow
    graph.add_edge(START, "agent")
    graph.add_conditional_edges("agent", make_router(max_tool_rounds), ["tools", END])
    graph.add_edge("tools", "agent")

    return graph


def compile_graph(
    model: BaseChatModel,
    tools: list[BaseTool],
    max_tool_rounds: int | None = None,
):
    """Build and compile the agent graph (no checkpointer; history is stored outside)."""
    compiled = create_graph(model, tools, max_tool_rounds).compile()
    logger.info(f"Agent graph compiled with {len(tools)} tools")
    return compiled
