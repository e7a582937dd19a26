"""
Graph nodes for the sales agent.
Each node takes the state and returns a partial state update.
"""

import logging
from typing import Callable

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, SystemMessage, ToolMessage
from langchain_core.runnables import RunnableConfig
from langchain_core.tools import BaseTool
from langgraph.graph import END

from grafibot.core.graph.state import AgentState

logger = logging.getLogger(__name__)


def make_agent_node(model: BaseChatModel, tools: list[BaseTool], system_prompt: str) -> Callable:
    """Node that asks the tool-bound model for its next step."""
    bound_model = model.bind_tools(tools)

    async def agent(state: AgentState, config: RunnableConfig) -> dict:
        messages = [SystemMessage(content=system_prompt), *state["messages"]]
        response = await bound_model.ainvoke(messages, config)

        if isinstance(response, AIMessage) and response.tool_calls:
            names = ", ".join(call["name"] for call in response.tool_calls)
            logger.info(f"Agent requested tools: {names}")
        return {"messages": [response]}

    return agent


def make_tools_node(tools: list[BaseTool]) -> Callable:
    """Node that executes the requested tool calls one after another."""
    tools_by_name = {tool.name: tool for tool in tools}

    async def run_tools(state: AgentState, config: RunnableConfig) -> dict:
        last_message = state["messages"][-1]
        results = []

        for call in last_message.tool_calls:
            tool = tools_by_name.get(call["name"])
            if tool is None:
                logger.warning(f"Model requested unknown tool: {call['name']}")
                results.append(
                    ToolMessage(
                        content=f"Herramienta desconocida: {call['name']}",
                        name=call["name"],
                        tool_call_id=call["id"],
                    )
                )
                continue

            result = await tool.ainvoke(
                {"name": call["name"], "args": call["args"], "id": call["id"], "type": "tool_call"},
                config,
            )
            results.append(result)

        return {
            "messages": results,
            "tool_rounds": state.get("tool_rounds", 0) + 1,
        }

    return run_tools


def make_router(max_tool_rounds: int) -> Callable:
    """Conditional edge out of the agent node."""

    def route(state: AgentState) -> str:
        last_message = state["messages"][-1]
        if not isinstance(last_message, AIMessage) or not last_message.tool_calls:
            return END
        if state.get("tool_rounds", 0) >= max_tool_rounds:
            logger.warning(f"Tool round limit ({max_tool_rounds}) reached, ending turn")
            return END
        return "tools"

    return route
