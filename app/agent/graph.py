# app/agent/graph.py
#
# The automated support agent, a LangGraph state machine.
#
# Our graph looks like this:
#
#   [START]
#      ↓
#   [router_node]  ← reads the message, decides whether a human is needed
#      ↓ (conditional)
#      ├─── "question" ──→ [agent_node] ← LLM thinks + uses tools
#      │                        ↓
#      │                  (conditional: did LLM call a tool?)
#      │                      ├─── YES → [tools_node] → back to [agent_node]
#      │                      └─── NO  → [END]
#      │
#      └─── "human needed" ──→ [handoff_node] → [END]
#
# No checkpointer: the conversation lives in the record store and is passed
# in by the runner on every call.

import logging

from langgraph.graph import StateGraph, START, END
from langgraph.prebuilt import ToolNode
from langchain_groq import ChatGroq
from langchain_core.messages import SystemMessage, AIMessage

from app.agent.state import AgentState
from app.agent.tools import ALL_TOOLS
from app.core.config import settings

logger = logging.getLogger(__name__)

HANDOFF_TEXT = "I'll notify a team member to take over right away."


# =============================================================================
# STEP 1: Initialize the LLM
# =============================================================================
def get_llm():
    if not settings.groq_api_key:
        raise RuntimeError("GROQ_API_KEY is not configured")

    llm = ChatGroq(
        api_key=settings.groq_api_key,
        model=settings.groq_model,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
    )
    return llm.bind_tools(ALL_TOOLS)


# =============================================================================
# STEP 2: The System Prompt
# =============================================================================
SYSTEM_PROMPT = f"""You are a friendly and efficient customer support agent for "{settings.business_name}",
a laundry pickup, wash and delivery service.
Your tone is professional yet welcoming. Keep replies short, this is a chat window.

- Use check_order_status() or list_my_orders() before saying anything about an order
- Never promise a delivery time or a price you were not given
- Contact number: {settings.contact_phone}

IMPORTANT: If a customer seems frustrated, asks for something you can't handle,
or explicitly asks for a human, say "{HANDOFF_TEXT}"
"""


# =============================================================================
# STEP 3: Router Node
# Rule-based, runs FIRST, no LLM call.
# =============================================================================
HUMAN_TRIGGERS = [
    "human", "admin", "manager", "real person",
    "speak to someone", "talk to someone", "frustrated", "angry",
]


def router_node(state: AgentState) -> dict:
    """
    Looks at the latest customer message and decides whether it goes to the
    LLM or straight to a person.
    """
    last_message = state["messages"][-1]
    text = last_message.content.lower() if hasattr(last_message, "content") else ""

    if any(trigger in text for trigger in HUMAN_TRIGGERS):
        logger.info("🔀 Router: HUMAN ESCALATION")
        return {"current_intent": "handoff", "requires_human": True}

    logger.debug("🔀 Router: QUESTION")
    return {"current_intent": "question", "requires_human": False}


# =============================================================================
# STEP 4: Agent Node
# =============================================================================
def agent_node(state: AgentState) -> dict:
    """
    The core AI node. The LLM reads the conversation and either:
    A) Responds directly with text
    B) Calls a tool (check_order_status, list_my_orders)
    """
    llm = get_llm()
    messages = [SystemMessage(content=SYSTEM_PROMPT)] + state["messages"]

    response = llm.invoke(messages)
    logger.debug("🤖 LLM response type: %s", "tool_call" if response.tool_calls else "text")

    return {"messages": [response]}


# =============================================================================
# STEP 5: Tools Node
# =============================================================================
tools_node = ToolNode(ALL_TOOLS)


# =============================================================================
# STEP 6: Handoff Node
# The arbiter does the actual escalation; this only writes the holding reply.
# =============================================================================
def handoff_node(state: AgentState) -> dict:
    logger.info("🚨 ESCALATION: customer asked for a person")
    return {"messages": [AIMessage(content=HANDOFF_TEXT)]}


# =============================================================================
# STEP 7: Conditional Edge Functions
# =============================================================================
def route_after_router(state: AgentState) -> str:
    if state.get("requires_human"):
        return "handoff_node"
    return "agent_node"


def route_after_agent(state: AgentState) -> str:
    last_message = state["messages"][-1]
    if hasattr(last_message, "tool_calls") and last_message.tool_calls:
        return "tools_node"
    return END


# =============================================================================
# STEP 8: Build and Compile the Graph
# =============================================================================
def build_graph():
    builder = StateGraph(AgentState)

    builder.add_node("router_node", router_node)
    builder.add_node("agent_node", agent_node)
    builder.add_node("tools_node", tools_node)
    builder.add_node("handoff_node", handoff_node)

    builder.add_edge(START, "router_node")
    builder.add_conditional_edges(
        "router_node",
        route_after_router,
        {
            "agent_node": "agent_node",
            "handoff_node": "handoff_node"
        }
    )
    builder.add_conditional_edges(
        "agent_node",
        route_after_agent,
        {
            "tools_node": "tools_node",
            END: END
        }
    )
    builder.add_edge("tools_node", "agent_node")
    builder.add_edge("handoff_node", END)

    return builder.compile()


# Build the graph once when the module loads
compiled_graph = build_graph()
