from typing import Any, Dict, Literal, Optional

from fastmcp.client.transports import SSETransport, StreamableHttpTransport

from .base import MCPSession


class MCPHttpSession(MCPSession):
    """Persistent network session for an MCP server (SSE or streamable HTTP)."""

    def __init__(
        self,
        server_name: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        kind: Literal["sse", "http"] = "http",
        sse_read_timeout: Any = None,
    ) -> None:
        self.url = url
        self.headers = headers or {}
        self.kind = kind

        transport_cls = SSETransport if kind == "sse" else StreamableHttpTransport
        transport = transport_cls(
            url=self.url,
            headers=self.headers,
            sse_read_timeout=sse_read_timeout,
        )
        super().__init__(server_name, transport, client_name=f"mcp-bridge-{kind}")
