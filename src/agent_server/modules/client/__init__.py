from .client import AgentClient, AgentClientError
from .formatting import format_element, format_screen_state, is_relevant

__all__ = ["AgentClient", "AgentClientError", "format_element", "format_screen_state", "is_relevant"]
