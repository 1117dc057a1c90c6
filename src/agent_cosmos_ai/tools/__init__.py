"""Agent Cosmos AI tools - wallet tools exposed to agents."""

from agent_cosmos_ai.tools import cosmos_tools  # noqa: F401
from agent_cosmos_ai.tools.registry import ActionResult, Tool, ToolDefinition, ToolRegistry, tool  # noqa: F401
