"""
AWS Cost Explorer MCP server entry point.

Serves the get_cost_and_usage tool over stdio. AWS_REGION is required;
without it the process logs the problem and exits with status 1 before
serving anything.
"""

import asyncio
import sys

import structlog
from mcp.server.stdio import stdio_server
from pydantic import ValidationError

from cost_explorer_mcp.billing.cost_explorer_client import create_cost_explorer_client
from cost_explorer_mcp.billing.query_engine import CostQueryEngine
from cost_explorer_mcp.config import Settings, get_settings
from cost_explorer_mcp.logging_setup import configure_logging
from cost_explorer_mcp.mcp.server import MCPProtocolHandler, build_server

log = structlog.get_logger()


def load_settings() -> Settings:
    try:
        return get_settings()
    except ValidationError as e:
        configure_logging()
        missing = [".".join(str(p) for p in err["loc"]).upper() for err in e.errors()]
        log.error("config_invalid", error=f"Missing required environment variable: {', '.join(missing)}")
        sys.exit(1)


async def serve(settings: Settings) -> None:
    engine = CostQueryEngine(create_cost_explorer_client(settings))
    server = build_server(MCPProtocolHandler(engine), settings.server_name, settings.server_version)

    async with stdio_server() as (read_stream, write_stream):
        log.info("mcp_server_started", transport="stdio", region=settings.aws_region)
        await server.run(read_stream, write_stream, server.create_initialization_options())


def run() -> None:
    settings = load_settings()
    configure_logging(settings.log_level, settings.json_logs)

    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        log.info("mcp_server_stopped")
    except Exception as e:
        log.error("mcp_server_fatal", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    run()
