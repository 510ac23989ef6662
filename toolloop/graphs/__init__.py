"""LangGraph implementation of the agent loop."""

from toolloop.graphs.agent_loop import AgentLoop, AgentLoopConfig, build_graph
from toolloop.graphs.state import ConversationState

__all__ = ["AgentLoop", "AgentLoopConfig", "ConversationState", "build_graph"]
