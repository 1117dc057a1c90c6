"""Tool registry - register and discover tools for agents."""

from __future__ import annotations

import inspect
import json
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable


@dataclass
class ToolDefinition:
    """LLM-facing description of a tool (JSON schema parameters)."""

    name: str
    description: str
    parameters: dict[str, Any]


@dataclass
class ActionResult:
    """Structured outcome of a tool run, for hosts that want more than text."""

    success: bool
    text: str
    content: dict[str, Any] = field(default_factory=dict)


@dataclass
class Tool:
    name: str
    description: str
    parameters: dict[str, Any]
    func: Callable[..., Any] | Callable[..., Awaitable[Any]]
    is_async: bool = False
    similes: list[str] = field(default_factory=list)
    examples: list[list[dict[str, Any]]] = field(default_factory=list)

    def to_definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=self.parameters,
        )

    async def run(self, **kwargs) -> ActionResult:
        if self.is_async:
            result = await self.func(**kwargs)
        else:
            result = self.func(**kwargs)
        if isinstance(result, ActionResult):
            return result
        if isinstance(result, str):
            return ActionResult(success=not result.startswith("Error"), text=result)
        return ActionResult(success=True, text=json.dumps(result, default=str), content=result)

    async def execute(self, **kwargs) -> str:
        return (await self.run(**kwargs)).text


class ToolRegistry:
    """Global registry of available tools."""

    _instance: ToolRegistry | None = None
    _tools: dict[str, Tool]

    def __init__(self):
        self._tools = {}
        self._aliases: dict[str, str] = {}

    @classmethod
    def get(cls) -> ToolRegistry:
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def register(self, tool: Tool) -> None:
        self._tools[tool.name] = tool
        for alias in [tool.name, *tool.similes]:
            self._aliases[alias.lower()] = tool.name

    def get_tool(self, name: str) -> Tool | None:
        """Look a tool up by name or simile (case-insensitive)."""
        if name in self._tools:
            return self._tools[name]
        canonical = self._aliases.get(name.lower())
        return self._tools.get(canonical) if canonical else None

    def get_tools(self, names: list[str] | None = None) -> list[Tool]:
        if names is None:
            return list(self._tools.values())
        return [self._tools[n] for n in names if n in self._tools]

    def list_names(self) -> list[str]:
        return list(self._tools.keys())


def _extract_parameters(func: Callable) -> dict:
    """Extract JSON Schema parameters from function type hints."""
    sig = inspect.signature(func)
    properties = {}
    required = []

    type_map = {
        str: "string",
        int: "integer",
        float: "number",
        bool: "boolean",
        list: "array",
        dict: "object",
        "str": "string",
        "int": "integer",
        "float": "number",
        "bool": "boolean",
    }

    for name, param in sig.parameters.items():
        if name in ("self", "cls"):
            continue

        json_type = type_map.get(param.annotation, "string")
        properties[name] = {"type": json_type}

        if param.default is inspect.Parameter.empty:
            required.append(name)

    schema: dict[str, Any] = {
        "type": "object",
        "properties": properties,
    }
    if required:
        schema["required"] = required
    return schema


def tool(
    name: str,
    description: str,
    parameters: dict[str, Any] | None = None,
    similes: list[str] | None = None,
    examples: list[list[dict[str, Any]]] | None = None,
):
    """Decorator to register a function as a tool.

    Usage:
        @tool("check_balance", "Check the wallet balance")
        def check_balance(denom: str = "") -> str:
            ...
    """

    def decorator(func: Callable) -> Callable:
        params = parameters if parameters is not None else _extract_parameters(func)
        t = Tool(
            name=name,
            description=description,
            parameters=params,
            func=func,
            is_async=inspect.iscoroutinefunction(func),
            similes=list(similes or []),
            examples=list(examples or []),
        )
        ToolRegistry.get().register(t)
        return func

    return decorator
