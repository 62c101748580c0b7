import logging
from typing import Any, Awaitable, Callable, Dict, List, Protocol

from ..catalog import ToolDescriptor
from ..config import RemoteServerConfig, ServerConfig, StdioServerConfig
from ..errors import ConfigurationError, ServerConnectionError
from ..naming import resolve_env_placeholders, resolve_mapping
from .base import MCPSession
from .http import MCPHttpSession
from .stdio import MCPProcessSession

logger = logging.getLogger(__name__)


class Session(Protocol):
    """What the pool and router need from a connected server."""

    async def list_tools(self) -> List[ToolDescriptor]: ...

    async def call_tool(self, tool_name: str, arguments: Dict[str, Any]) -> Any: ...

    async def close(self) -> None: ...


Connector = Callable[[str, ServerConfig], Awaitable[Session]]


def build_session(server_name: str, config: ServerConfig) -> MCPSession:
    """Create an unconnected session with every `${VAR}` placeholder resolved."""
    if isinstance(config, StdioServerConfig):
        return MCPProcessSession(
            server_name,
            command=resolve_env_placeholders(config.command),
            args=[resolve_env_placeholders(arg) for arg in config.args],
            env=resolve_mapping(config.env),
            cwd=config.cwd,
        )
    if isinstance(config, RemoteServerConfig):
        url = resolve_env_placeholders(config.url)
        return MCPHttpSession(
            server_name,
            url=url,
            headers=resolve_mapping(config.headers),
            kind=config.transport_kind(url),
        )
    raise ConfigurationError(server_name, "must specify 'command' or 'url'")


async def connect_session(server_name: str, config: ServerConfig) -> MCPSession:
    session = build_session(server_name, config)
    try:
        await session.connect()
    except Exception as exc:
        try:
            await session.close()
        except Exception:
            logger.debug("Error closing half-open session for %s", server_name, exc_info=True)
        raise ServerConnectionError(server_name, exc) from exc

    logger.info("Connected to MCP server %s", server_name)
    return session


__all__ = [
    "Connector",
    "MCPHttpSession",
    "MCPProcessSession",
    "MCPSession",
    "Session",
    "build_session",
    "connect_session",
]
