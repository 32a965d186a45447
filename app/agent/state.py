# app/agent/state.py
#
# This file defines the "brain state" of the automated support agent,
# plus the two small shapes that cross the boundary to the chat arbiter.
#
# AgentState is a whiteboard passed between every node in the LangGraph
# graph. Each node can READ from it and WRITE to it.
#
# Unlike a checkpointed bot, the agent keeps NO memory of its own: the record
# store owns the conversation, and the runner rebuilds the message list from
# the stored thread on every call.

from typing import TypedDict, Annotated, List

from langgraph.graph.message import add_messages
from pydantic import BaseModel

from app.core.config import settings


def trim_messages(existing: list, new: list):
    """
    Keeps the history lean to prevent rate-limit and token-bloat problems.
    """
    combined = add_messages(existing, new)
    return combined[-settings.history_window:]


class AgentState(TypedDict):
    """
    The complete memory snapshot of the agent during one reply.
    """

    # ── Chat history (trimmed) ────────────────────────────────────────────────
    messages: Annotated[list, trim_messages]

    # ── Current Intent ────────────────────────────────────────────────────────
    # "question" → pricing / order / general question, the LLM answers
    # "handoff"  → the customer asked for a person
    current_intent: str

    # ── Human Escalation Flag ─────────────────────────────────────────────────
    # When True the graph routes to the handoff node instead of the LLM,
    # and the arbiter flags the reply as needing human attention.
    requires_human: bool


class ConversationTurn(BaseModel):
    """One role-tagged entry of the prior conversation."""
    role: str   # "customer" or "support"
    text: str


class GeneratedReply(BaseModel):
    """What the response generator hands back to the arbiter."""
    text: str
    requires_human: bool = False


def fallback_reply() -> GeneratedReply:
    """What the customer sees when the generator fails. Always escalates."""
    return GeneratedReply(
        text=f"Our staff will be with you shortly. Please feel free to call us at {settings.contact_phone}",
        requires_human=True,
    )
