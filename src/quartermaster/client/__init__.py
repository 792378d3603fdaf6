from quartermaster.client.agent_client import AgentClient

__all__ = ["AgentClient"]
