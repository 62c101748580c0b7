import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Protocol

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Dict[str, Any]], Awaitable[Any] | Any]


@dataclass
class AgentTool:
    name: str
    description: str
    parameters: Dict[str, Any]
    handler: ToolHandler
    source: str = field(default="local")

    async def __call__(self, arguments: Dict[str, Any]) -> Any:
        result = self.handler(arguments)
        if asyncio.iscoroutine(result):
            result = await result
        return result

    def as_descriptor(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }


class ToolHost(Protocol):
    """Anything the router can publish tools to."""

    def register_tool(self, tool: AgentTool, *, optional: bool = False) -> None: ...


class ToolRegistry:
    """In-process tool host.

    Optional tools are registered inactive unless their name is allow-listed;
    `set_active` can flip them later.
    """

    def __init__(self, allowed: Optional[Iterable[str]] = None) -> None:
        self.allowed = set(allowed or ())
        self._tools: Dict[str, AgentTool] = {}
        self._active: Dict[str, bool] = {}
        self._optional: Dict[str, bool] = {}

    def register_tool(self, tool: AgentTool, *, optional: bool = False) -> None:
        if tool.name in self._tools:
            logger.debug(
                "Tool %s from %s replaces the one from %s",
                tool.name,
                tool.source,
                self._tools[tool.name].source,
            )
        self._tools[tool.name] = tool
        self._optional[tool.name] = optional
        self._active[tool.name] = not optional or tool.name in self.allowed
        logger.debug("Registered tool %s (source=%s optional=%s)", tool.name, tool.source, optional)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def names(self) -> List[str]:
        return list(self._tools)

    def is_active(self, name: str) -> bool:
        return name in self._tools and self._active.get(name, False)

    def list_exposed(self) -> List[Dict[str, Any]]:
        return [tool.as_descriptor() for name, tool in self._tools.items() if self._active.get(name, False)]

    def get(self, name: str) -> AgentTool:
        return self._tools[name]

    async def execute(self, name: str, arguments: Dict[str, Any]) -> Any:
        if not self.is_active(name):
            raise KeyError(f"Tool '{name}' is not registered or not active")
        return await self._tools[name](arguments)

    def summary(self) -> List[Dict[str, str | bool]]:
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "source": tool.source,
                "optional": self._optional.get(tool.name, False),
                "active": self._active.get(tool.name, False),
            }
            for tool in self._tools.values()
        ]

    def set_active(self, name: str, active: bool) -> None:
        if name not in self._tools:
            raise KeyError(f"Tool '{name}' is not registered")
        self._active[name] = bool(active)


__all__ = [
    "AgentTool",
    "ToolHandler",
    "ToolHost",
    "ToolRegistry",
]
