"""Discover MCP tools and cache their schemas for the bridge to register at startup.

Run with: python -m mcp_bridge.discover [--config config/mcp.toml] [--output .mcp-tools-cache.json]
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from .catalog import CatalogEntry, ToolDescriptor, write_catalog
from .clients import Connector, connect_session
from .config import ServerConfig, load_bridge_config

logger = logging.getLogger(__name__)


async def discover_server(
    server_name: str,
    config: ServerConfig,
    connector: Connector = connect_session,
) -> CatalogEntry:
    session = await connector(server_name, config)
    try:
        tools = [ToolDescriptor.coerce(tool) for tool in await session.list_tools()]
    finally:
        try:
            await session.close()
        except Exception:
            logger.debug("Error closing discovery session for %s", server_name, exc_info=True)
    return CatalogEntry.now(server_name, tools)


async def discover_all(
    servers: Mapping[str, ServerConfig],
    connector: Connector = connect_session,
) -> List[CatalogEntry]:
    entries: List[CatalogEntry] = []
    for name, config in servers.items():
        if not config.enabled:
            continue
        try:
            entry = await discover_server(name, config, connector)
        except Exception as exc:
            print(f"  {name}: FAILED - {exc}", file=sys.stderr)
            continue

        print(f"  {name}: {len(entry.tools)} tool(s) discovered")
        for tool in entry.tools:
            summary = tool.description[:80] if tool.description else "(no description)"
            print(f"    - {tool.name}: {summary}")
        entries.append(entry)
    return entries


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Discover MCP server tools and write the bridge tool cache.")
    parser.add_argument("--config", default=None, help="Bridge config file (default: $MCP_BRIDGE_CONFIG or config/mcp.toml)")
    parser.add_argument("--output", default=None, help="Cache file to write (default: cache_path from the config)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = parse_args(argv)
    config = load_bridge_config(args.config)

    servers = config.enabled_servers()
    if not servers:
        print("No MCP servers configured. Pass --config or set MCP_BRIDGE_CONFIG.", file=sys.stderr)
        return 1

    print(f"Discovering tools from {len(servers)} server(s)...\n")
    entries = asyncio.run(discover_all(servers, connector=connect_session))

    output = write_catalog(Path(args.output) if args.output else config.cache_path, entries)
    total = sum(len(entry.tools) for entry in entries)
    print(f"\nCache written to {output}")
    print(f"Total: {total} tool(s) from {len(entries)} server(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
