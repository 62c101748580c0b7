import asyncio
import json
from pathlib import Path

import pytest
from mcp.types import CallToolResult, TextContent

from fakes import CountingConnector, FakeSession
from mcp_bridge.catalog import CatalogEntry, ToolDescriptor, write_catalog
from mcp_bridge.config import BridgeConfig, StdioServerConfig, parse_server_config
from mcp_bridge.errors import ServerConnectionError
from mcp_bridge.pool import ConnectionPool
from mcp_bridge.registry import ToolRegistry
from mcp_bridge.router import CachedCatalog, LiveDiscovery, ToolRouter, normalize_result

LIST_TASKS = {"name": "list_tasks", "description": "List open tasks", "inputSchema": {"type": "object", "properties": {}}}
TASKS_CONTENT = [{"type": "text", "text": '["write tests"]'}]


def _run(coro):
    return asyncio.run(coro)


def _router(servers, connector, *, source=None, **config_kwargs):
    config = BridgeConfig(servers={name: parse_server_config(name, raw) for name, raw in servers.items()}, **config_kwargs)
    registry = ToolRegistry(allowed=config.allow)
    pool = ConnectionPool(config.servers, connector=connector)
    router = ToolRouter(config, registry, catalog_source=source or LiveDiscovery(), pool=pool)
    return router, registry


def test_eager_end_to_end_forwards_call_and_returns_content() -> None:
    session = FakeSession(tools=[LIST_TASKS], results={"list_tasks": {"content": TASKS_CONTENT}})
    connector = CountingConnector(sessions={"todo": session})
    router, registry = _router({"todo": {"command": "todo-mcp"}}, connector)

    async def main():
        await router.start()
        return await registry.execute("todo_list_tasks", {})

    result = _run(main())
    assert session.calls == [("list_tasks", {})]
    assert result.as_dict() == {"content": TASKS_CONTENT, "isError": False}
    assert connector.calls == ["todo"]
    assert [r.local_name for r in router.registrations] == ["todo_list_tasks"]


def test_registration_description_and_default_schema() -> None:
    connector = CountingConnector(sessions={"todo": FakeSession(tools=[{"name": "list_tasks"}])})
    router, registry = _router({"todo": {"command": "todo-mcp"}}, connector)

    _run(router.start())
    tool = registry.get("todo_list_tasks")
    assert tool.description == "MCP tool from todo (MCP: todo/list_tasks)"
    assert tool.parameters == {"type": "object", "properties": {}}
    assert tool.source == "mcp:todo"

    registration = router.route("todo_list_tasks")
    assert registration.server_name == "todo"
    assert registration.remote_name == "list_tasks"


def test_described_tool_keeps_its_description_with_origin() -> None:
    connector = CountingConnector(sessions={"todo": FakeSession(tools=[LIST_TASKS])})
    router, registry = _router({"todo": {"command": "todo-mcp"}}, connector)

    _run(router.start())
    assert registry.get("todo_list_tasks").description == "List open tasks (MCP: todo/list_tasks)"


def test_connection_failure_becomes_error_result() -> None:
    entries = [CatalogEntry.now("todo", [ToolDescriptor.coerce(LIST_TASKS)])]
    connector = CountingConnector()
    connector.failing["todo"] = ServerConnectionError("todo", "spawn failed")

    class StaticSource:
        async def load(self, servers, pool):
            return entries

    router, registry = _router({"todo": {"command": "todo-mcp"}}, connector, source=StaticSource())

    async def main():
        await router.start()
        return await registry.execute("todo_list_tasks", {})

    result = _run(main())
    assert result.is_error is True
    assert len(result.content) == 1
    assert result.content[0]["type"] == "text"
    assert "todo/list_tasks" in result.content[0]["text"]
    assert "spawn failed" in result.content[0]["text"]


def test_remote_exception_becomes_error_result() -> None:
    session = FakeSession(tools=[LIST_TASKS], call_error=RuntimeError("boom"))
    router, _ = _router({"todo": {"command": "todo-mcp"}}, CountingConnector(sessions={"todo": session}))

    async def main():
        await router.start()
        return await router.call("todo_list_tasks", {"limit": 3})

    result = _run(main())
    assert result.as_dict() == {
        "content": [{"type": "text", "text": "MCP error (todo/list_tasks): boom"}],
        "isError": True,
    }
    assert session.calls == [("list_tasks", {"limit": 3})]


def test_remote_error_flag_is_propagated() -> None:
    session = FakeSession(
        tools=[LIST_TASKS],
        results={"list_tasks": CallToolResult(content=[TextContent(type="text", text="bad input")], isError=True)},
    )
    router, _ = _router({"todo": {"command": "todo-mcp"}}, CountingConnector(sessions={"todo": session}))

    async def main():
        await router.start()
        return await router.call("todo_list_tasks")

    result = _run(main())
    assert result.as_dict() == {"content": [{"type": "text", "text": "bad input"}], "isError": True}


def test_unknown_local_tool_is_error_result() -> None:
    router, _ = _router({}, CountingConnector())
    result = _run(router.call("nope_nothing", {}))
    assert result.is_error
    assert "nope_nothing" in result.content[0]["text"]


@pytest.mark.parametrize(
    "raw, text",
    [
        ({"tasks": []}, json.dumps({"tasks": []})),
        ("plain", "plain"),
        (None, "null"),
    ],
)
def test_results_without_content_are_wrapped_as_text(raw, text) -> None:
    result = normalize_result(raw)
    assert result.as_dict() == {"content": [{"type": "text", "text": text}], "isError": False}


def test_eager_mode_skips_servers_that_fail() -> None:
    connector = CountingConnector(sessions={"todo": FakeSession(tools=[LIST_TASKS])})
    connector.failing["linear"] = ServerConnectionError("linear", "401 Unauthorized")
    router, registry = _router(
        {"todo": {"command": "todo-mcp"}, "linear": {"url": "https://mcp.linear.app/sse"}},
        connector,
    )

    registrations = _run(router.start())
    assert [r.local_name for r in registrations] == ["todo_list_tasks"]
    assert registry.names() == ["todo_list_tasks"]


def test_eager_mode_skips_disabled_servers() -> None:
    connector = CountingConnector(sessions={"todo": FakeSession(tools=[LIST_TASKS])})
    router, registry = _router(
        {"todo": {"command": "todo-mcp"}, "off": {"command": "off-mcp", "enabled": False}},
        connector,
    )

    _run(router.start())
    assert connector.calls == ["todo"]
    assert registry.names() == ["todo_list_tasks"]


def test_deferred_mode_connects_on_first_call(tmp_path: Path) -> None:
    cache = tmp_path / "cache.json"
    write_catalog(
        cache,
        [
            CatalogEntry.now("todo", [ToolDescriptor.coerce(LIST_TASKS)]),
            CatalogEntry.now("removed", [ToolDescriptor(name="gone")]),
            CatalogEntry.now("off", [ToolDescriptor(name="sleep")]),
        ],
    )
    session = FakeSession(results={"list_tasks": {"content": TASKS_CONTENT}})
    connector = CountingConnector(sessions={"todo": session})
    router, registry = _router(
        {"todo": {"command": "todo-mcp"}, "off": {"command": "off-mcp", "enabled": False}},
        connector,
        source=CachedCatalog(cache),
    )

    async def main():
        await router.start()
        assert connector.calls == []
        return await registry.execute("todo_list_tasks", {})

    result = _run(main())
    assert registry.names() == ["todo_list_tasks"]
    assert connector.calls == ["todo"]
    assert result.content == TASKS_CONTENT


def test_deferred_mode_with_wrong_cache_version_registers_nothing(tmp_path: Path) -> None:
    cache = tmp_path / "cache.json"
    cache.write_text(json.dumps({"version": 2, "servers": [{"server": "todo", "tools": [LIST_TASKS], "discoveredAt": "x"}]}))
    connector = CountingConnector()
    router, registry = _router({"todo": {"command": "todo-mcp"}}, connector, source=CachedCatalog(cache))

    registrations = _run(router.start())
    assert registrations == []
    assert len(registry) == 0
    assert connector.calls == []


def test_deferred_mode_without_cache_registers_nothing(tmp_path: Path) -> None:
    config = BridgeConfig(servers={"todo": StdioServerConfig(command="todo-mcp")}, cache_path=tmp_path / "missing.json")
    router = ToolRouter(config)
    assert isinstance(router.catalog_source, CachedCatalog)
    assert _run(router.start()) == []


def test_name_collision_without_prefix_last_registration_wins() -> None:
    connector = CountingConnector(
        sessions={
            "alpha": FakeSession(tools=[{"name": "search"}], results={"search": {"content": [{"type": "text", "text": "alpha"}]}}),
            "beta": FakeSession(tools=[{"name": "Search"}], results={"Search": {"content": [{"type": "text", "text": "beta"}]}}),
        }
    )
    router, registry = _router(
        {
            "alpha": {"command": "alpha-mcp", "toolPrefix": False},
            "beta": {"command": "beta-mcp", "toolPrefix": False},
        },
        connector,
    )

    async def main():
        await router.start()
        return await registry.execute("search", {})

    result = _run(main())
    assert [(r.local_name, r.server_name, r.remote_name) for r in router.registrations] == [("search", "beta", "Search")]
    assert registry.names() == ["search"]
    assert result.content == [{"type": "text", "text": "beta"}]


def test_optional_tools_need_allow_listing() -> None:
    connector = CountingConnector(sessions={"todo": FakeSession(tools=[LIST_TASKS, {"name": "add_task"}])})
    router, registry = _router(
        {"todo": {"command": "todo-mcp"}},
        connector,
        optional=True,
        allow=["todo_add_task"],
    )

    _run(router.start())
    assert not registry.is_active("todo_list_tasks")
    assert registry.is_active("todo_add_task")
    with pytest.raises(KeyError):
        _run(registry.execute("todo_list_tasks", {}))


def test_start_is_idempotent_and_stop_closes_sessions() -> None:
    session = FakeSession(tools=[LIST_TASKS])
    connector = CountingConnector(sessions={"todo": session})
    router, registry = _router({"todo": {"command": "todo-mcp"}}, connector)

    async def main():
        async with router:
            await router.start()
        return router.pool.status()

    status = _run(main())
    assert connector.calls == ["todo"]
    assert len(registry) == 1
    assert session.closed
    assert status == {"todo": False}
