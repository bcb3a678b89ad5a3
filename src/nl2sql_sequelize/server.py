"""FastMCP server implementation for nl2sql-sequelize."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import dotenv
from fastmcp import FastMCP
from fastmcp.utilities.logging import get_logger
from starlette.requests import Request
from starlette.responses import JSONResponse

from nl2sql_sequelize.retrieval.mcp_tools import register_schema_tools
from nl2sql_sequelize.services.schema_service_manager import SchemaServiceManager

# Load environment variables
dotenv.load_dotenv()

# Configure a module-level logger for local server logs.
_logger = get_logger(__name__)


# -- Context Manager for SchemaService initialization -------------------
@asynccontextmanager
async def lifespan(_mcp_instance: FastMCP) -> AsyncGenerator[None]:
    """FastMCP lifespan context manager for schema service initialization."""
    manager = SchemaServiceManager.get_instance()
    try:
        _logger.info("Starting SchemaService initialization in background during lifespan startup")
        manager.start_background_initialization()
        yield
    finally:
        _logger.info("Shutting down SchemaService during lifespan shutdown")
        await manager.shutdown()


# Create the main MCP server instance with lifespan
mcp = FastMCP(
    instructions=(
        "This provides a natural language to SQL Model Context Protocol server for "
        "Sequelize projects. It reads the project's model definitions and selects the "
        "models, columns and associations needed to write SQL for a question."
    ),
    lifespan=lifespan,
)

# -- Tool Registration -------------------------------------------------------
register_schema_tools(mcp)


# -- Health Check ----------------------------------------------------------
@mcp.custom_route("/health", methods=["GET"])
async def health_check(_request: Request) -> JSONResponse:
    manager = SchemaServiceManager.get_instance()
    return JSONResponse(
        {
            "status": "healthy",
            "service": "mcp-server",
            "schema_phase": manager.status().phase.name,
        }
    )
