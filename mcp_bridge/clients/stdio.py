import os
from typing import Dict, List, Optional

from fastmcp.client.transports import StdioTransport

from .base import MCPSession


class MCPProcessSession(MCPSession):
    """Persistent stdio session for an MCP server spawned as a subprocess."""

    def __init__(
        self,
        server_name: str,
        command: str,
        args: Optional[List[str]] = None,
        env: Optional[Dict[str, str]] = None,
        cwd: Optional[str] = None,
    ) -> None:
        self.command = command
        self.args = args or []
        # Overrides win over the inherited process environment.
        self.env = {**os.environ, **(env or {})}
        self.cwd = cwd

        transport = StdioTransport(
            command=self.command,
            args=self.args,
            env=self.env,
            cwd=cwd,
            keep_alive=True,
        )
        super().__init__(server_name, transport, client_name="mcp-bridge-stdio")
