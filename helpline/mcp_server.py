"""MCP server for helpline.

Lets an AI coding agent hand a stuck problem to human support: the agent
sends its conversation, workspace and diagnostics, helpline stores the
session and files a support ticket.

Usage:
    uv run python -m helpline.mcp_server

Configure in Claude Code (~/.claude.json):
    {
      "mcpServers": {
        "helpline": {
          "command": "uv",
          "args": ["run", "--directory", "/path/to/helpline", "python", "-m", "helpline.mcp_server"],
          "env": {"USE_MOCK_API": "true"}
        }
      }
    }
"""

from __future__ import annotations

import logging

import mcp.server.stdio
import mcp.types as types
from mcp.server import Server

from helpline.config import Config
from helpline.log import setup_logging
from helpline.schemas import HelpRequest
from helpline.service import HelpService

logger = logging.getLogger(__name__)

server = Server("helpline")

_service: HelpService | None = None


def get_service() -> HelpService:
    global _service
    if _service is None:
        _service = HelpService.from_config(Config.load())
    return _service


@server.list_tools()
async def list_tools() -> list[types.Tool]:
    return [
        types.Tool(
            name="request_help",
            description=(
                "Request help from a human support team when you are stuck. "
                "Captures the conversation, workspace state, diagnostics and "
                "previous fix attempts, stores them as a help session and files "
                "a support ticket. Call this instead of repeating failed fixes. "
                "DO NOT SEND SENSITIVE DATA like API keys or personal information."
            ),
            inputSchema=HelpRequest.model_json_schema(by_alias=True),
        ),
        types.Tool(
            name="get_help_session",
            description="Retrieve the captured context of a previous help session",
            inputSchema={
                "type": "object",
                "properties": {
                    "sessionId": {
                        "type": "string",
                        "description": "The session ID returned by request_help",
                    },
                },
                "required": ["sessionId"],
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[types.TextContent]:
    try:
        return await _dispatch_tool(name, arguments, get_service())
    except Exception as e:
        logger.exception(f"Tool {name} failed")
        return [types.TextContent(type="text", text=f"Error: {e}")]


async def _dispatch_tool(
    name: str, arguments: dict, service: HelpService
) -> list[types.TextContent]:
    """Route a tool call to the appropriate handler."""
    if name == "request_help":
        text = await service.request_help(arguments)
    elif name == "get_help_session":
        session_id = (arguments or {}).get("sessionId")
        if not isinstance(session_id, str) or not session_id:
            text = "Error: sessionId is required"
        else:
            text = service.get_session(session_id)
    else:
        text = f"Unknown tool: {name}"
    return [types.TextContent(type="text", text=text)]


async def main() -> None:
    config = Config.load()
    setup_logging(config.log_level, config.sessions_dir)
    for issue in config.validate():
        logger.warning(f"Config: {issue}")
    logger.info(
        f"helpline MCP server starting ({'mock' if config.use_mock_api else 'live'} API, "
        f"sessions in {config.sessions_dir})"
    )

    async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


if __name__ == "__main__":
    import asyncio
    asyncio.run(main())
