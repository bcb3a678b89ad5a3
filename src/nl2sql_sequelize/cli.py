"""Command-line entrypoint for the nl2sql-sequelize FastMCP server.

Running ``nl2sql-sequelize-mcp`` starts the server with FastMCP's default
transport. The Sequelize project is taken from ``NL2SQL_SEQUELIZE_PROJECT_ROOT``
(or the current directory).
"""

from __future__ import annotations

import traceback

from fastmcp.utilities.logging import get_logger

from nl2sql_sequelize.server import mcp

# Configure a module-level logger for local server logs.
_logger = get_logger(__name__)


def main() -> None:
    """Start the nl2sql-sequelize FastMCP server via CLI."""
    try:
        mcp.run()
    except KeyboardInterrupt:
        _logger.info("Interrupted by user. Exiting cleanly.")
    except Exception:  # noqa: BLE001
        traceback.print_exc(limit=1)


if __name__ == "__main__":
    # Delegate to main() so behavior is consistent across execution paths.
    main()
