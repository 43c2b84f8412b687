"""
FastMCP registration of the tool dictionaries.

Handlers take the raw ``arguments`` dict and validate it themselves, so a
plain ``mcp.tool()(handler)`` would advertise a single opaque ``arguments``
parameter. ``DeskTool`` advertises the tool dict's ``inputSchema`` instead and
hands the client's arguments to the handler unchanged.
"""

from typing import Any

from fastmcp.tools import FunctionTool, Tool
from fastmcp.tools.tool import ToolResult


class DeskTool(Tool):
    """Tool whose advertised parameters come from a Pydantic request model."""

    handler_tool: FunctionTool

    @classmethod
    def from_tool_dict(cls, tool: dict[str, Any]) -> "DeskTool":
        handler_tool = Tool.from_function(
            tool["handler"],
            name=tool["name"],
            description=tool["description"],
        )
        return cls(
            name=tool["name"],
            description=tool["description"],
            parameters=tool["inputSchema"],
            output_schema=handler_tool.output_schema,
            handler_tool=handler_tool,
        )

    async def run(self, arguments: dict[str, Any]) -> ToolResult:
        return await self.handler_tool.run({"arguments": arguments})
