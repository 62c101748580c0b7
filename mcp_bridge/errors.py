from typing import Optional


class BridgeError(Exception):
    """Base class for every error raised by the bridge."""


class ConfigurationError(BridgeError):
    def __init__(self, server: Optional[str], message: str) -> None:
        self.server = server
        prefix = f"Server {server}: " if server else ""
        super().__init__(f"{prefix}{message}")


class UnknownServerError(BridgeError):
    def __init__(self, server: str) -> None:
        self.server = server
        super().__init__(f"No config for MCP server '{server}'")


class ServerConnectionError(BridgeError):
    """Connecting to a server failed. The next call may try again."""

    def __init__(self, server: str, cause: BaseException | str) -> None:
        self.server = server
        self.cause = cause
        super().__init__(f"Failed to connect to MCP server '{server}': {cause}")


class InvocationError(BridgeError):
    def __init__(self, server: str, tool: str, cause: BaseException | str) -> None:
        self.server = server
        self.tool = tool
        self.cause = cause
        super().__init__(f"MCP error ({server}/{tool}): {cause}")


class CacheError(BridgeError):
    def __init__(self, path: object, message: str) -> None:
        self.path = path
        super().__init__(f"Tool cache {path}: {message}")


__all__ = [
    "BridgeError",
    "CacheError",
    "ConfigurationError",
    "InvocationError",
    "ServerConnectionError",
    "UnknownServerError",
]
