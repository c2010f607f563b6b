"""
Main entry point for Docker MCP Server
"""

import argparse
import asyncio
import dataclasses
import importlib
import logging
import os
import sys
from types import ModuleType

from .containerspec.policy import DEFAULT_POLICY
from .core.server import MCPServer
from .core.transport import StdioTransport
from .runtime.settings import configure
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)

DEFAULT_SERVER_NAME = "docker-mcp-server"
TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in TRUE_VALUES


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        print(f"Warning: ignoring non-numeric {name}={raw!r}", file=sys.stderr)
        return default


def load_tool_modules(tools_path: str | None) -> list[ModuleType]:
    """Import the comma-separated module names in `tools_path`, skipping ones that fail"""
    modules = []
    for path in (tools_path or "").split(","):
        path = path.strip()
        if not path:
            continue
        try:
            modules.append(importlib.import_module(path))
        except ImportError as e:
            logger.warning(f"Could not import tool module '{path}': {e}")
    return modules


async def run_stdio_server(
    tool_modules: list[ModuleType] | None = None,
    server_name: str | None = None,
) -> None:
    """Serve the built-in Docker tools, plus any extra tool modules, over stdio"""
    server = MCPServer(name=server_name or DEFAULT_SERVER_NAME)
    server.load_default_tools()
    for module in tool_modules or []:
        server.tool_registry.auto_discover_tools(module)
    await server.run(StdioTransport())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docker-mcp-server",
        description="Docker MCP Server - Docker management over the Model Context Protocol (stdio)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
  DOCKER_MCP_SERVER_NAME       Server name identifier
  DOCKER_MCP_LOG_LEVEL         Logging level (DEBUG, INFO, WARNING, ERROR)
  DOCKER_MCP_TOOLS_PATH        Comma-separated extra tool modules
  DOCKER_MCP_COMMAND_TIMEOUT   Timeout in seconds for docker CLI commands
  DOCKER_MCP_ALLOW_ROOT        Allow containers to run as root (1/true/yes)
  DOCKER_HOST                  Docker daemon address (read by the Docker SDK)

Examples:
  # Run with stdio (for MCP clients)
  docker-mcp-server

  # Verbose logging to stderr
  docker-mcp-server --log-level DEBUG
""",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=os.getenv("DOCKER_MCP_LOG_LEVEL", "INFO").upper(),
        help="Logging level (default: INFO, env: DOCKER_MCP_LOG_LEVEL)",
    )
    parser.add_argument(
        "--server-name",
        default=os.getenv("DOCKER_MCP_SERVER_NAME", DEFAULT_SERVER_NAME),
        help="Server name identifier (env: DOCKER_MCP_SERVER_NAME)",
    )
    parser.add_argument(
        "--tools-path",
        default=os.getenv("DOCKER_MCP_TOOLS_PATH"),
        help="Comma-separated extra tool modules (env: DOCKER_MCP_TOOLS_PATH)",
    )
    parser.add_argument(
        "--command-timeout",
        type=float,
        default=_env_float("DOCKER_MCP_COMMAND_TIMEOUT", 300.0),
        help="Timeout in seconds for docker CLI commands (default: 300, env: DOCKER_MCP_COMMAND_TIMEOUT)",
    )
    parser.add_argument(
        "--allow-root-user",
        action="store_true",
        default=_env_flag("DOCKER_MCP_ALLOW_ROOT"),
        help="Allow containers to run as root (env: DOCKER_MCP_ALLOW_ROOT)",
    )
    return parser


def cli_main(argv: list[str] | None = None) -> None:
    """CLI entry point"""
    args = build_parser().parse_args(argv)

    setup_logging(level=args.log_level)

    policy = DEFAULT_POLICY
    if args.allow_root_user:
        logger.warning("Root container users are allowed by configuration")
        policy = dataclasses.replace(DEFAULT_POLICY, allow_root_user=True)
    configure(server_name=args.server_name, command_timeout=args.command_timeout, policy=policy)

    try:
        asyncio.run(
            run_stdio_server(
                tool_modules=load_tool_modules(args.tools_path),
                server_name=args.server_name,
            )
        )
    except KeyboardInterrupt:
        print("Server stopped by user", file=sys.stderr)
        sys.exit(0)
    except Exception as e:
        print(f"Server error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    cli_main()
