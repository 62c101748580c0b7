"""Backend call example using the ToolRouter directly (no HTTP).
Run with: python examples/backend_example.py [tool_name]
"""
import asyncio
import json
import sys

from mcp_bridge import build_default_router


async def main(tool_name: str | None) -> None:
    # Router uses config/mcp.toml (or $MCP_BRIDGE_CONFIG).
    router = await build_default_router()
    try:
        for registration in router.registrations:
            print(f"{registration.local_name}: {registration.description}")

        if tool_name:
            result = await router.call(tool_name, {})
            print(f"\n{tool_name} ->\n", json.dumps(result.as_dict(), indent=2))
    finally:
        await router.stop()


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else None))
