"""Library Desk MCP Server - FastMCP Implementation

Exposes the circulation desk of a library or bookstore over MCP.

Features exposed:
- Resources: active / overdue / due-soon loans, loan details, member history,
  library settings, override audit trail
- Tools: checkout, return, renewal, eligibility check, late fee preview,
  settings update
"""

import logging
import signal
import sys
from typing import Any

from fastmcp import FastMCP

from .config import get_config
from .database.session import get_db_manager, reset_db_manager
from .identity import get_staff_context
from .observability import initialize_observability
from .resources import all_resources
from .tools import all_tools
from .tools.registration import DeskTool

# Initialize logging - stderr for logs, stdout for MCP protocol
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)

logger = logging.getLogger(__name__)

config = get_config()
logging.getLogger().setLevel(config.log_level)

mcp = FastMCP(
    name=config.server_name,
    version=config.server_version,
    instructions=(
        "Library Desk MCP Server - circulation desk for a library or bookstore. "
        "Use resources to see active, overdue and due-soon loans, a member's history "
        "and the current policy. Use tools to check books out, return them (late fees "
        "must be marked paid or waived), renew loans, and check a member's eligibility "
        "before lending."
    ),
)

for resource in all_resources:
    uri = resource.get("uri_template", resource.get("uri"))
    if not uri:
        logger.error("Resource missing URI: %s", resource)
        continue

    logger.debug("Registering resource: %s with URI: %s", resource["name"], uri)
    try:
        mcp.resource(
            uri,
            name=resource["name"],
            description=resource["description"],
            mime_type=resource["mime_type"],
        )(resource["handler"])
    except Exception:
        logger.exception("Failed to register resource %s", resource["name"])
        raise

logger.info("Registered %d resources", len(all_resources))

for tool in all_tools:
    logger.debug("Registering tool: %s", tool["name"])
    try:
        mcp.add_tool(DeskTool.from_tool_dict(tool))
    except Exception:
        logger.exception("Failed to register tool %s", tool["name"])
        raise

logger.info("Registered %d tools", len(all_tools))


def prepare_database() -> None:
    """Create missing tables and check the connection before serving."""
    manager = get_db_manager()
    manager.init_database()
    if not manager.verify_connection():
        raise RuntimeError(f"Cannot connect to database at {manager.database_url}")


def run_server() -> None:
    """
    Run the MCP server on the configured transport.

    stdio: stdin receives JSON-RPC requests, stdout sends responses.
    streamable_http: serves on ``http_host``:``http_port``.
    """
    if config.debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug mode enabled - verbose protocol logging active")
    else:
        logging.getLogger("fastmcp").setLevel(logging.WARNING)

    def signal_handler(signum: int, _frame: Any) -> None:
        logger.info("Received signal %s, initiating shutdown...", signum)
        reset_db_manager()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        if config.transport == "stdio":
            logger.info("MCP Server ready on stdio")
            mcp.run(transport="stdio")
        else:
            logger.info("MCP Server ready on http://%s:%d", config.http_host, config.http_port)
            mcp.run(transport="streamable-http", host=config.http_host, port=config.http_port)
    except Exception:
        logger.exception("Fatal error in MCP server")
        sys.exit(1)
    finally:
        reset_db_manager()


def main() -> None:
    """Entry point of the ``library-desk-mcp`` command."""
    try:
        staff = get_staff_context(config)
        logger.info("=" * 60)
        logger.info("Library Desk MCP Server")
        logger.info("Version: %s", config.server_version)
        logger.info("Transport: %s", config.transport)
        logger.info("Account: %s (%s), staff: %s", staff.owner_id, staff.role.value, staff.actor)
        logger.info("Debug Mode: %s", config.debug)
        logger.info("=" * 60)

        initialize_observability()
        prepare_database()
        run_server()

    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception:
        logger.exception("Failed to start MCP server")
        sys.exit(1)


if __name__ == "__main__":
    main()
