import asyncio
import json

import mcp.types as types
import pytest

from services.metrics import metrics
from services.schemas import GetOrdersInput, UpdateOrderStatusInput
from services.tool_server import ToolError, ToolServer, build_mcp_server


@pytest.fixture
def server():
    server = ToolServer("test-server")

    @server.operation("list_orders", "List orders", GetOrdersInput)
    def list_orders(params):
        return {"status": params.status, "limit": params.limit}

    @server.operation("update", "Update status", UpdateOrderStatusInput)
    def update(params):
        raise ToolError(f"Order {params.order_id} not found")

    @server.operation("explode", "Always fails", GetOrdersInput)
    def explode(params):
        raise RuntimeError("boom")

    return server


def test_catalog_lists_every_operation_with_schema(server):
    catalog = server.list_operations()
    assert [op["name"] for op in catalog] == ["list_orders", "update", "explode"]
    schema = catalog[0]["inputSchema"]
    assert schema["type"] == "object"
    assert {"status", "limit", "days_back", "email"} <= set(schema["properties"])
    assert "required" not in schema
    assert set(catalog[1]["inputSchema"]["required"]) == {"order_id", "status"}


def test_success_payload_is_json_text(server):
    result = server.invoke("list_orders", {"status": "PENDING"})
    assert result["isError"] is False
    assert result["content"][0]["type"] == "text"
    assert json.loads(result["content"][0]["text"]) == {"status": "PENDING", "limit": 20}


def test_missing_arguments_use_defaults(server):
    result = server.invoke("list_orders", None)
    assert json.loads(result["content"][0]["text"]) == {"status": None, "limit": 20}


def test_validation_enumerates_every_bad_field(server):
    result = server.invoke("list_orders", {"status": "LOST", "limit": 0, "email": "nope"})
    text = result["content"][0]["text"]
    assert result["isError"] is True
    assert text.startswith("Validation error: ")
    for field in ("status", "limit", "email"):
        assert f"{field}: " in text


def test_shipped_without_tracking_is_a_validation_error(server):
    result = server.invoke("update", {"order_id": "A1B2C3D4", "status": "SHIPPED"})
    assert result["isError"] is True
    assert "tracking_number is required" in result["content"][0]["text"]


def test_business_errors_are_error_results(server):
    result = server.invoke("update", {"order_id": "A1B2C3D4", "status": "PENDING"})
    assert result == {
        "isError": True,
        "content": [{"type": "text", "text": "Error: Order A1B2C3D4 not found"}],
    }


def test_unexpected_errors_do_not_escape(server):
    result = server.invoke("explode", {})
    assert result["isError"] is True
    assert result["content"][0]["text"] == "Error: boom"


def test_unknown_tool(server):
    result = server.invoke("drop_tables", {})
    assert result["isError"] is True
    assert result["content"][0]["text"] == "Unknown tool: drop_tables"


def test_non_object_arguments_are_rejected(server):
    result = server.invoke("list_orders", ["PENDING"])
    assert result["isError"] is True
    assert result["content"][0]["text"].startswith("Validation error:")


def test_invocations_are_counted(server):
    server.invoke("list_orders", {})
    server.invoke("explode", {})
    assert metrics.get_counter("tool_calls_total", {"server": "test-server", "tool": "list_orders", "success": "true"}) == 1
    assert metrics.get_counter("tool_calls_total", {"server": "test-server", "tool": "explode", "success": "false"}) == 1


def test_duplicate_operation_names_are_rejected(server):
    with pytest.raises(ValueError):
        server.operation("list_orders", "again", GetOrdersInput)(lambda params: None)


def test_shutdown_runs_hooks_even_when_one_fails():
    server = ToolServer("hooks")
    closed = []
    server.on_shutdown(lambda: closed.append("first"))
    server.on_shutdown(lambda: (_ for _ in ()).throw(RuntimeError("close failed")))
    server.shutdown()
    assert closed == ["first"]


def test_mcp_binding_advertises_catalog(server):
    mcp_server = build_mcp_server(server)
    handler = mcp_server.request_handlers[types.ListToolsRequest]

    result = asyncio.run(handler(types.ListToolsRequest(method="tools/list")))

    tools = result.root.tools
    assert [tool.name for tool in tools] == ["list_orders", "update", "explode"]
    assert tools[0].inputSchema["properties"]["limit"]["maximum"] == 100


def test_mcp_binding_routes_calls_and_errors(server):
    mcp_server = build_mcp_server(server)
    handler = mcp_server.request_handlers[types.CallToolRequest]

    def call(name, arguments):
        request = types.CallToolRequest(
            method="tools/call", params=types.CallToolRequestParams(name=name, arguments=arguments)
        )
        return asyncio.run(handler(request)).root

    ok = call("list_orders", {"status": "PENDING"})
    assert not ok.isError
    assert json.loads(ok.content[0].text) == {"status": "PENDING", "limit": 20}

    failed = call("update", {"order_id": "ABC", "status": "PENDING"})
    assert failed.isError
    assert "Order ABC not found" in failed.content[0].text
