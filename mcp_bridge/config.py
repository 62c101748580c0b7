import json
import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

PLUGIN_ID = "mcp-bridge"
DEFAULT_CONFIG_PATH = "config/mcp.toml"
DEFAULT_CACHE_PATH = ".mcp-tools-cache.json"

DiscoveryMode = Literal["eager", "cached"]


class _ServerConfigBase(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    enabled: bool = True
    tool_prefix: bool = Field(default=True, alias="toolPrefix")


class StdioServerConfig(_ServerConfigBase):
    """A server spawned as a local process and spoken to over stdin/stdout."""

    command: str
    args: List[str] = Field(default_factory=list)
    env: Dict[str, str] = Field(default_factory=dict)
    cwd: Optional[str] = None
    transport: Literal["stdio"] = "stdio"


class RemoteServerConfig(_ServerConfigBase):
    """A server reached over the network (SSE or streamable HTTP)."""

    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    transport: Optional[Literal["sse", "http"]] = None

    def transport_kind(self, url: Optional[str] = None) -> Literal["sse", "http"]:
        if self.transport:
            return self.transport
        path = urlparse(url or self.url).path.rstrip("/")
        return "sse" if path.endswith("/sse") else "http"


ServerConfig = StdioServerConfig | RemoteServerConfig


def parse_server_config(name: str, raw: Any) -> ServerConfig:
    if isinstance(raw, (StdioServerConfig, RemoteServerConfig)):
        return raw
    if not isinstance(raw, Mapping):
        raise ConfigurationError(name, f"config must be an object, got {type(raw).__name__}")

    has_command = bool(raw.get("command"))
    has_url = bool(raw.get("url"))
    if has_command and has_url:
        raise ConfigurationError(name, "specify either 'command' or 'url', not both")
    if not has_command and not has_url:
        raise ConfigurationError(name, "must specify 'command' or 'url'")

    model = StdioServerConfig if has_command else RemoteServerConfig
    try:
        return model.model_validate(dict(raw))
    except ValidationError as exc:
        raise ConfigurationError(name, str(exc)) from exc


@dataclass
class BridgeConfig:
    servers: Dict[str, ServerConfig] = field(default_factory=dict)
    optional: bool = False
    mode: DiscoveryMode = "cached"
    cache_path: Path = field(default_factory=lambda: Path(DEFAULT_CACHE_PATH))
    allow: List[str] = field(default_factory=list)

    def enabled_servers(self) -> Dict[str, ServerConfig]:
        return {name: server for name, server in self.servers.items() if server.enabled}


def _section(data: Dict[str, Any]) -> Dict[str, Any]:
    """Pick the bridge section out of a host config, an `[mcp]` table, or a bare file."""
    plugins = data.get("plugins")
    if isinstance(plugins, dict):
        entry = (plugins.get("entries") or {}).get(PLUGIN_ID) or {}
        if isinstance(entry.get("config"), dict):
            return entry["config"]
    if isinstance(data.get("mcp"), dict):
        return data["mcp"]
    return data


def parse_bridge_config(raw: Mapping[str, Any]) -> BridgeConfig:
    section = _section(dict(raw))

    servers_raw = section.get("servers")
    if servers_raw is None:
        servers_raw = section.get("mcpServers") or {}
    if not isinstance(servers_raw, Mapping):
        raise TypeError("mcp servers must be a table keyed by server name")

    servers: Dict[str, ServerConfig] = {}
    for name, server_raw in servers_raw.items():
        try:
            servers[name] = parse_server_config(name, server_raw)
        except ConfigurationError as exc:
            logger.error("Skipping MCP server: %s", exc)

    mode = os.getenv("MCP_BRIDGE_MODE") or section.get("mode") or "cached"
    if mode not in ("eager", "cached"):
        raise ValueError(f"mode must be 'eager' or 'cached', got {mode!r}")

    cache_path = os.getenv("MCP_BRIDGE_CACHE") or section.get("cache_path") or DEFAULT_CACHE_PATH
    allow = section.get("allow") or []

    return BridgeConfig(
        servers=servers,
        optional=bool(section.get("optional", False)),
        mode=mode,
        cache_path=Path(cache_path),
        allow=[str(item) for item in allow],
    )


def _load_raw(path: Path) -> Dict[str, Any]:
    # Let errors propagate if the file is missing or malformed.
    text = path.read_text()
    if path.suffix.lower() == ".json":
        return json.loads(text)
    return tomllib.loads(text)


def load_bridge_config(path: str | Path | None = None) -> BridgeConfig:
    """Load bridge config from TOML or JSON (path, then MCP_BRIDGE_CONFIG, then config/mcp.toml)."""
    config_path = Path(path or os.getenv("MCP_BRIDGE_CONFIG", DEFAULT_CONFIG_PATH))
    config = parse_bridge_config(_load_raw(config_path))
    logger.debug("Loaded %d MCP server(s) from %s", len(config.servers), config_path)
    return config


__all__ = [
    "BridgeConfig",
    "RemoteServerConfig",
    "ServerConfig",
    "StdioServerConfig",
    "load_bridge_config",
    "parse_bridge_config",
    "parse_server_config",
]
