"""Named, schema-validated admin operations exposed as MCP tools over stdio.

A ``ToolServer`` is a plain registry that can be driven directly (tests, other
Python callers) through ``list_operations`` and ``invoke``. ``serve_stdio``
binds it to the MCP protocol.
"""
from __future__ import annotations

import asyncio
import json
import logging
import signal
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from pydantic import BaseModel

from burbar_admin.logging import correlation_context
from services.metrics import record_error, record_tool_call
from services.schemas import validate_args

logger = logging.getLogger(__name__)


class ToolError(Exception):
    """Business failure inside a tool; reported to the caller as an error result."""


@dataclass(frozen=True)
class Operation:
    name: str
    description: str
    schema: Type[BaseModel]
    handler: Callable[[Any], Any]


def text_result(text: str, *, is_error: bool = False) -> Dict[str, Any]:
    return {"isError": is_error, "content": [{"type": "text", "text": text}]}


def _render(data: Any) -> str:
    if isinstance(data, str):
        return data
    return json.dumps(data, indent=2, default=str, ensure_ascii=False)


class ToolServer:
    def __init__(
        self,
        name: str,
        version: str = "1.0.0",
        *,
        expected_errors: Tuple[Type[Exception], ...] = (),
    ):
        self.name = name
        self.version = version
        self.expected_errors = (ToolError,) + tuple(expected_errors)
        self._operations: Dict[str, Operation] = {}
        self._shutdown_hooks: List[Callable[[], None]] = []

    def operation(self, name: str, description: str, schema: Type[BaseModel]):
        """Decorator registering ``handler(validated_input)`` under ``name``."""

        def decorator(handler: Callable[[Any], Any]) -> Callable[[Any], Any]:
            if name in self._operations:
                raise ValueError(f"Duplicate operation: {name}")
            self._operations[name] = Operation(name, description, schema, handler)
            return handler

        return decorator

    def on_shutdown(self, hook: Callable[[], None]) -> None:
        self._shutdown_hooks.append(hook)

    def shutdown(self) -> None:
        for hook in reversed(self._shutdown_hooks):
            try:
                hook()
            except Exception:
                logger.exception("Shutdown hook failed for %s", self.name)

    def operation_names(self) -> List[str]:
        return list(self._operations)

    def list_operations(self) -> List[Dict[str, Any]]:
        return [
            {"name": op.name, "description": op.description, "inputSchema": op.schema.model_json_schema()}
            for op in self._operations.values()
        ]

    def invoke(self, name: str, args: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Validate ``args`` and run the operation; never raises."""
        with correlation_context():
            start = time.perf_counter()
            result = self._invoke(name, args)
            record_tool_call(self.name, name, (time.perf_counter() - start) * 1000, not result["isError"])
            return result

    def _invoke(self, name: str, args: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        op = self._operations.get(name)
        if op is None:
            logger.warning("Unknown tool requested on %s: %s", self.name, name)
            return text_result(f"Unknown tool: {name}", is_error=True)

        validated, problem = validate_args(op.schema, args)
        if problem is not None:
            logger.info("Rejected %s.%s input: %s", self.name, name, problem)
            return text_result(problem, is_error=True)

        try:
            data = op.handler(validated)
        except self.expected_errors as exc:
            logger.info("%s.%s failed: %s", self.name, name, exc)
            return text_result(f"Error: {exc}", is_error=True)
        except Exception as exc:
            logger.exception("%s.%s crashed", self.name, name)
            record_error(self.name, type(exc).__name__)
            return text_result(f"Error: {exc}", is_error=True)
        return text_result(_render(data))


def build_mcp_server(tool_server: ToolServer) -> Server:
    server = Server(tool_server.name, version=tool_server.version)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return [
            types.Tool(name=op["name"], description=op["description"], inputSchema=op["inputSchema"])
            for op in tool_server.list_operations()
        ]

    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: Optional[Dict[str, Any]]) -> List[types.TextContent]:
        result = await asyncio.to_thread(tool_server.invoke, name, arguments)
        text = result["content"][0]["text"]
        if result["isError"]:
            # The lowlevel server turns a raised exception into an isError result.
            raise ToolError(text)
        return [types.TextContent(type="text", text=text)]

    return server


def _raise_interrupt(signum, frame) -> None:
    raise KeyboardInterrupt


async def _serve(server: Server) -> None:
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def serve_stdio(tool_server: ToolServer) -> None:
    """Run until stdin closes or SIGINT/SIGTERM, then release handles."""
    server = build_mcp_server(tool_server)
    signal.signal(signal.SIGTERM, _raise_interrupt)
    logger.info("%s tool server running on stdio", tool_server.name)
    try:
        asyncio.run(_serve(server))
    except KeyboardInterrupt:
        logger.info("%s tool server interrupted", tool_server.name)
    finally:
        tool_server.shutdown()
        logger.info("%s tool server stopped", tool_server.name)
