"""
LangGraph sales agent.
Provides the model/tool loop and per-turn conversation handling.
"""

from grafibot.core.graph.graph import compile_graph, create_graph
from grafibot.core.graph.responses import FileReply, extract_final_response, render_tool_payload
from grafibot.core.graph.service import APOLOGY_MESSAGE, ConversationService
from grafibot.core.graph.state import AgentState
from grafibot.core.graph.tools import build_tools

__all__ = [
    "AgentState",
    "APOLOGY_MESSAGE",
    "ConversationService",
    "FileReply",
    "build_tools",
    "compile_graph",
    "create_graph",
    "extract_final_response",
    "render_tool_payload",
]
