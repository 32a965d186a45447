# app/agent/runner.py
#
# The BRIDGE between the chat arbiter and the LangGraph engine.
# It exposes one single function: generate_reply()
#
#   arbiter calls generate_reply(message, history)  →  GeneratedReply(text, requires_human)
#
# The arbiter doesn't care about LangGraph internals, nodes, or state.
#
# Failure contract: generate_reply() NEVER raises. Any error (no API key,
# network, rate limit, bad tool call) becomes the fixed fallback text with
# requires_human forced to True: a broken bot always escalates.

import logging
from typing import List, Optional, Sequence

from langchain_core.messages import AIMessage, HumanMessage

from app.agent.graph import HUMAN_TRIGGERS, compiled_graph
from app.agent.state import ConversationTurn, GeneratedReply, fallback_reply

logger = logging.getLogger(__name__)

EMPTY_REPLY_TEXT = "I'm sorry, I'm having trouble connecting right now. Please try again or call us."


def to_langchain_messages(history: Sequence[ConversationTurn]) -> List:
    """Customer turns become HumanMessages, everything else the assistant side."""
    return [
        HumanMessage(content=turn.text) if turn.role == "customer" else AIMessage(content=turn.text)
        for turn in history
    ]


def needs_human(user_message: str, reply_text: str) -> bool:
    """
    The reply needs a person if the bot promised one, or the customer
    asked for one in so many words.
    """
    if "team member" in reply_text.lower():
        return True
    text = user_message.lower()
    return any(trigger in text for trigger in HUMAN_TRIGGERS)


async def generate_reply(
    user_message: str,
    history: Sequence[ConversationTurn] = (),
    customer_id: Optional[str] = None,
) -> GeneratedReply:
    """
    Runs the support graph for one customer message.

    Args:
        user_message: The text the customer just sent
        history:      The prior conversation, oldest first
        customer_id:  Passed to the tools so they only see this customer's orders

    Returns:
        GeneratedReply with the reply text and the "requires human" signal
    """
    input_state = {
        "messages": to_langchain_messages(history) + [HumanMessage(content=user_message)],
        "current_intent": "",
        "requires_human": False,
    }
    config = {"configurable": {"customer_id": customer_id}}

    try:
        final_state = await compiled_graph.ainvoke(input_state, config=config)
    except Exception as e:
        logger.error("❌ Agent error: %s: %s", type(e).__name__, e)
        return fallback_reply()

    last_message = final_state["messages"][-1]
    text = last_message.content if hasattr(last_message, "content") else str(last_message)
    if not isinstance(text, str) or not text.strip():
        text = EMPTY_REPLY_TEXT

    requires_human = bool(final_state.get("requires_human")) or needs_human(user_message, text)

    logger.info("✅ Agent reply (requires_human=%s): '%s'", requires_human, text[:100])
    return GeneratedReply(text=text, requires_human=requires_human)
