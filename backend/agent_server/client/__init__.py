"""
Agent Server client.
"""

from .agent_client import AgentClient, ClientOptions
from .sandbox import SandboxProvider

__all__ = ["AgentClient", "ClientOptions", "SandboxProvider"]
