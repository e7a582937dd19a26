"""
Conversation service - runs one turn of the agent per inbound message.

A turn loads the stored history, runs the agent graph on it plus the new
user message, extracts the reply and appends the turn's messages to the
history. Turns of the same conversation are serialized; nothing is stored
when a turn fails.
"""

import logging
import uuid

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from grafibot.config import settings
from grafibot.core.errors import DecisionProcessError
from grafibot.core.graph.responses import FileReply, Reply, extract_final_response
from grafibot.core.locks import KeyedLock
from grafibot.core.quotes.engine import QuoteEngine
from grafibot.db.stores import HistoryStore

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = (
    "Lo siento, tuve un problema interno al procesar tu solicitud. "
    "Por favor, intenta de nuevo más tarde."
)
RESET_MESSAGE = "Listo, empecemos de nuevo. Tu historial y tu cotización fueron borrados."


class ConversationService:
    """Entry point for inbound messages of any channel."""

    def __init__(
        self,
        graph,
        history_store: HistoryStore,
        quote_engine: QuoteEngine,
        turn_locks: KeyedLock | None = None,
        recursion_limit: int | None = None,
    ):
        self.graph = graph
        self.history_store = history_store
        self.quote_engine = quote_engine
        self.turn_locks = turn_locks if turn_locks is not None else KeyedLock()
        self.recursion_limit = recursion_limit or settings.recursion_limit

    async def handle_turn(self, conversation_id: str, text: str) -> Reply:
        """
        Process one user message.

        Args:
            conversation_id: Stable id of the conversation (sender number)
            text: User's message text

        Returns:
            Reply text, or FileReply when a quote document was generated.
            Any failure yields a generic apology and leaves history untouched.
        """
        async with self.turn_locks.hold(conversation_id):
            try:
                history = await self.history_store.get_messages(conversation_id)
                user_message = HumanMessage(content=text, id=str(uuid.uuid4()))

                produced = await self._decide(conversation_id, history, user_message)
                reply = extract_final_response(produced)

                await self.history_store.append_messages(
                    conversation_id,
                    [user_message, *self._closing_messages(produced, reply)],
                )
            except Exception as e:
                logger.error(
                    f"Turn failed for conversation {conversation_id}: {e}", exc_info=True
                )
                return APOLOGY_MESSAGE

        logger.info(f"Turn completed for conversation {conversation_id}")
        return reply

    async def reset(self, conversation_id: str) -> str:
        """Forget the conversation history and empty its quote."""
        async with self.turn_locks.hold(conversation_id):
            await self.history_store.clear(conversation_id)
            await self.quote_engine.clear(conversation_id)
        logger.info(f"Conversation {conversation_id} reset")
        return RESET_MESSAGE

    async def _decide(
        self,
        conversation_id: str,
        history: list[BaseMessage],
        user_message: HumanMessage,
    ) -> list[BaseMessage]:
        """Run the graph and return the messages produced after the user message."""
        config = {
            "configurable": {"thread_id": conversation_id},
            "recursion_limit": self.recursion_limit,
        }
        try:
            result = await self.graph.ainvoke(
                {"messages": [*history, user_message], "tool_rounds": 0},
                config=config,
            )
        except Exception as e:
            raise DecisionProcessError(f"Agent graph failed: {e}") from e

        messages = result.get("messages", [])
        for i, message in enumerate(messages):
            if message.id == user_message.id:
                return messages[i + 1:]
        raise DecisionProcessError("User message missing from graph output")

    @staticmethod
    def _closing_messages(produced: list[BaseMessage], reply: Reply) -> list[BaseMessage]:
        """
        Messages to persist after the user message.

        A trailing tool request that was never executed (round limit) is
        replaced so every stored tool call has its result, and the reply
        itself is stored when it did not come from the model verbatim.
        """
        messages = list(produced)
        if messages and isinstance(messages[-1], AIMessage) and messages[-1].tool_calls:
            messages.pop()

        reply_text = reply.message if isinstance(reply, FileReply) else reply
        last = messages[-1] if messages else None
        if not (isinstance(last, AIMessage) and last.content == reply_text):
            messages.append(AIMessage(content=reply_text))
        return messages
