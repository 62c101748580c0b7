"""Simple script/notebook-style example to call the bridge HTTP API."""
import argparse
import asyncio
import json

import httpx

DEFAULT_BASE_URL = "http://localhost:8000"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Call the MCP bridge HTTP API.")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL, help=f"API base URL (default: {DEFAULT_BASE_URL})")
    parser.add_argument("--tool", help="Local tool name to call")
    parser.add_argument("--arguments", default="{}", help="JSON object of tool arguments")
    return parser.parse_args()


async def main(base_url: str, tool: str | None, arguments: str) -> None:
    async with httpx.AsyncClient(base_url=base_url, timeout=30.0) as client:
        r = await client.get("/api/tools")
        r.raise_for_status()
        print("Tools:", json.dumps(r.json(), indent=2))

        r = await client.get("/api/servers")
        r.raise_for_status()
        print("\nServers:", r.json())

        if tool:
            r = await client.post(f"/api/tools/{tool}/call", json={"arguments": json.loads(arguments)})
            r.raise_for_status()
            print(f"\n{tool} ->", json.dumps(r.json(), indent=2))


if __name__ == "__main__":
    args = parse_args()
    asyncio.run(main(args.base_url, args.tool, args.arguments))
