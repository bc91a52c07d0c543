"""
Registry mapping tool names to handlers.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..types import ToolDefinition
from .base import ParamMetadata, Tool
from .decorators import tool

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Name -> Tool lookup used by dispatch().

    Tools can be registered directly or with the registry's decorator, and the
    registry yields the definitions to pass to Chat.with_tools().
    """

    def __init__(self, tools: Optional[Iterable[Tool]] = None) -> None:
        self._tools: Dict[str, Tool] = {}
        for tool_instance in tools or ():
            self.register(tool_instance)

    def register(self, tool_instance: Tool) -> None:
        """Register a Tool instance, replacing any tool with the same name."""
        if tool_instance.name in self._tools:
            logger.warning("Replacing already registered tool '%s'", tool_instance.name)
        self._tools[tool_instance.name] = tool_instance

    def get(self, name: str) -> Optional[Tool]:
        """Get a tool by name."""
        return self._tools.get(name)

    def list_tools(self) -> List[Tool]:
        """Return all registered tools in registration order."""
        return list(self._tools.values())

    def definitions(self) -> List[ToolDefinition]:
        """Return the definitions of all registered tools, in registration order."""
        return [tool_instance.definition() for tool_instance in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def tool(
        self,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        param_metadata: Optional[Dict[str, ParamMetadata]] = None,
        injected_kwargs: Optional[Dict[str, Any]] = None,
    ) -> Callable[[Callable[..., Any]], Tool]:
        """
        Decorator to register a function as a tool in this registry.

        Returns:
            Decorator that returns the registered Tool instance.
        """

        def decorator(func: Callable[..., Any]) -> Tool:
            tool_instance = tool(
                name=name,
                description=description,
                param_metadata=param_metadata,
                injected_kwargs=injected_kwargs,
            )(func)
            self.register(tool_instance)
            return tool_instance

        return decorator
