import asyncio
import json
from typing import Any

import structlog
from mcp import types
from mcp.server.lowlevel import Server

from cost_explorer_mcp.billing.errors import error_kind
from cost_explorer_mcp.billing.query_engine import CostQueryEngine
from .tools import COST_EXPLORER_TOOLS, TOOLS_BY_NAME
from .validators import validate_tool_arguments

log = structlog.get_logger()


def error_result(message: str) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=f"Error: {message}")],
        isError=True,
    )


def success_result(data: dict[str, Any]) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=json.dumps(data, indent=2, default=str))],
        isError=False,
    )


class MCPProtocolHandler:
    """
    Bridges MCP tool requests onto the query engine.

    Every outcome, success or failure, comes back as a CallToolResult; callers
    tell the two apart by ``isError``, never by an exception.
    """

    def __init__(self, engine: CostQueryEngine):
        self.engine = engine

    def get_tools_list(self) -> list[types.Tool]:
        return [
            types.Tool(name=t["name"], description=t["description"], inputSchema=t["inputSchema"])
            for t in COST_EXPLORER_TOOLS
        ]

    def tool_exists(self, tool_name: str) -> bool:
        return tool_name in TOOLS_BY_NAME

    async def call_tool(self, tool_name: str, arguments: dict[str, Any] | None) -> types.CallToolResult:
        if not self.tool_exists(tool_name):
            log.warning("mcp_unknown_tool", tool=tool_name)
            return error_result(f"Unknown tool: {tool_name}")

        log.info("mcp_tool_call", tool=tool_name)
        try:
            validate_tool_arguments(tool_name, arguments)
            # boto3 blocks; keep the stdio loop responsive while it runs
            data = await asyncio.to_thread(self.engine.execute, arguments or {})
        except Exception as e:
            # kind and code only; upstream messages can carry account IDs and ARNs
            log.error(
                "mcp_tool_call_failed",
                tool=tool_name,
                kind=error_kind(e),
                error_code=getattr(e, "code", None),
            )
            return error_result(str(e))

        return success_result(data)


def build_server(handler: MCPProtocolHandler, name: str, version: str) -> Server:
    server = Server(name, version=version)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return handler.get_tools_list()

    # Arguments are validated by validate_tool_arguments so errors keep our wording
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        return await handler.call_tool(name, arguments)

    return server
