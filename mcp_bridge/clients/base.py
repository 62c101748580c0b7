from contextlib import AsyncExitStack
from typing import Any, Dict, List, Optional

from fastmcp import Client
from fastmcp.client.transports import ClientTransport
from mcp.types import CallToolResult, Implementation

from ..catalog import ToolDescriptor

CLIENT_INFO = Implementation(name="mcp-bridge", version="0.1.0")


class MCPSession:
    """One long-lived connection to an MCP server through the FastMCP Client.

    The client context is held open on an exit stack between `connect()` and
    `close()`, so every call reuses the same handshake and, for stdio, the same
    subprocess.
    """

    def __init__(self, server_name: str, transport: ClientTransport, client_name: str) -> None:
        self.server_name = server_name
        self.transport = transport
        self.client = Client(
            transport,
            name=f"{client_name}/{server_name}",
            client_info=CLIENT_INFO,
        )
        self._stack: Optional[AsyncExitStack] = None

    @property
    def is_connected(self) -> bool:
        return self._stack is not None and self.client.is_connected()

    async def connect(self) -> None:
        stack = AsyncExitStack()
        await stack.enter_async_context(self.client)
        self._stack = stack

    async def list_tools(self) -> List[ToolDescriptor]:
        tools = await self.client.list_tools()
        return [ToolDescriptor.from_mcp(tool) for tool in tools]

    async def call_tool(self, tool_name: str, arguments: Dict[str, Any]) -> CallToolResult:
        # The raw MCP result keeps the server's isError flag instead of raising ToolError.
        return await self.client.call_tool_mcp(tool_name, arguments or {})

    async def close(self) -> None:
        stack, self._stack = self._stack, None
        try:
            if stack is not None:
                await stack.aclose()
        finally:
            await self.client.close()


__all__ = ["CLIENT_INFO", "MCPSession"]
