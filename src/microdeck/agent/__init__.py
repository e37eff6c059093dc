"""Agent communication: HTTP client and ping retry policy."""

from microdeck.agent.client import AgentClient, AgentClientFactory, HTTPAgentClient
from microdeck.agent.retry import PingDecision, PingRetryPolicy, wait_for_agent

__all__ = [
    "AgentClient",
    "AgentClientFactory",
    "HTTPAgentClient",
    "PingDecision",
    "PingRetryPolicy",
    "wait_for_agent",
]
