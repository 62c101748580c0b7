"""Tool catalog model and the on-disk cache written by `python -m mcp_bridge.discover`.

The cache lets the bridge register tools at startup without connecting to any
server; connections are then made lazily on the first call.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import CacheError

logger = logging.getLogger(__name__)

CACHE_VERSION = 1


def empty_schema() -> Dict[str, Any]:
    return {"type": "object", "properties": {}}


class ToolDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    description: Optional[str] = None
    input_schema: Optional[Dict[str, Any]] = Field(default=None, alias="inputSchema")

    @classmethod
    def from_mcp(cls, tool: Any) -> "ToolDescriptor":
        """Build a descriptor from an `mcp.types.Tool` (or anything shaped like one)."""
        name = getattr(tool, "name", None)
        if not name:
            raise ValueError(f"MCP tool missing name: {tool}")
        return cls(
            name=name,
            description=getattr(tool, "description", None),
            input_schema=getattr(tool, "inputSchema", None),
        )

    @classmethod
    def coerce(cls, tool: Any) -> "ToolDescriptor":
        if isinstance(tool, cls):
            return tool
        if isinstance(tool, Mapping):
            return cls.model_validate(tool)
        return cls.from_mcp(tool)

    def schema_or_default(self) -> Dict[str, Any]:
        return self.input_schema or empty_schema()


class CatalogEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    server: str
    tools: List[ToolDescriptor] = Field(default_factory=list)
    discovered_at: str = Field(alias="discoveredAt")

    @classmethod
    def now(cls, server: str, tools: List[ToolDescriptor]) -> "CatalogEntry":
        return cls(server=server, tools=tools, discovered_at=datetime.now(timezone.utc).isoformat())


class CatalogDocument(BaseModel):
    version: Literal[1]
    servers: List[CatalogEntry]


def load_catalog(path: str | Path) -> List[CatalogEntry]:
    cache_path = Path(path)
    try:
        raw = json.loads(cache_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise CacheError(cache_path, "not found") from exc
    except (OSError, ValueError) as exc:
        raise CacheError(cache_path, f"unreadable ({exc})") from exc

    if not isinstance(raw, dict):
        raise CacheError(cache_path, "expected a JSON object")
    if raw.get("version") != CACHE_VERSION:
        raise CacheError(cache_path, f"unsupported version {raw.get('version')!r}")
    if not isinstance(raw.get("servers"), list):
        raise CacheError(cache_path, "'servers' must be a list")

    try:
        document = CatalogDocument.model_validate(raw)
    except ValidationError as exc:
        raise CacheError(cache_path, str(exc)) from exc
    return document.servers


def write_catalog(path: str | Path, entries: List[CatalogEntry]) -> Path:
    cache_path = Path(path)
    document = CatalogDocument(version=CACHE_VERSION, servers=entries)
    payload = document.model_dump(by_alias=True, exclude_none=True)
    cache_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    logger.debug("Wrote %d catalog entr(ies) to %s", len(entries), cache_path)
    return cache_path


__all__ = [
    "CACHE_VERSION",
    "CatalogDocument",
    "CatalogEntry",
    "ToolDescriptor",
    "empty_schema",
    "load_catalog",
    "write_catalog",
]
