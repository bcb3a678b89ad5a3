"""MCP tool registration for schema extraction and retrieval features.

Exposes a `register_schema_tools` function that attaches tools to a FastMCP
instance while delegating actual logic to the service obtained via
`SchemaServiceManager`.
"""

from __future__ import annotations

from typing import Annotated

from fastmcp import Context, FastMCP
from fastmcp.utilities.logging import get_logger
from pydantic import Field

from nl2sql_sequelize.extraction.exceptions import SchemaExtractionError
from nl2sql_sequelize.models import (
    InitStatus,
    ModelDetail,
    ModelSelectionReason,
    RelevantModelsResult,
    ReloadResult,
    SchemaOverview,
)
from nl2sql_sequelize.services.schema_service import SchemaService
from nl2sql_sequelize.services.schema_service_manager import SchemaServiceManager

_logger = get_logger(__name__)
MAX_QUERY_DISPLAY = 100

_STATUS_DESCRIPTIONS = {
    "IDLE": "Starting: loading the embedding model and reading model files.",
    "STARTING": "Starting: loading the embedding model and reading model files.",
    "RUNNING": "Initializing: parsing model files and computing model embeddings.",
    "READY": "Ready for queries.",
    "FAILED": "Initialization failed; see error_message.",
    "STOPPED": "Stopped.",
}


def _preview(query: str) -> str:
    return query[:MAX_QUERY_DISPLAY] + ("..." if len(query) > MAX_QUERY_DISPLAY else "")


def register_schema_tools(mcp: FastMCP, manager: SchemaServiceManager | None = None) -> None:
    """Register schema orientation and model retrieval tools.

    Provides tools designed for LLM agents to find the Sequelize models a
    question touches and to read their columns and associations before writing
    SQL.
    """

    mgr = manager or SchemaServiceManager.get_instance()

    async def _service(ctx: Context) -> SchemaService:
        try:
            return await mgr.get_schema_service()
        except (RuntimeError, ValueError) as exc:
            await ctx.error(f"Schema service not ready: {exc}")
            raise

    @mcp.tool
    async def get_init_status(_ctx: Context) -> InitStatus:  # pyright: ignore[reportUnusedFunction]
        """Initialization status for first-step readiness checks.

        Use this as your first action. If phase != READY, relay the description to the user and
        instruct them to retry later.
        """
        state = mgr.status()
        phase = state.phase.name
        desc = _STATUS_DESCRIPTIONS.get(phase, "Unknown.")

        model_count: int | None = None
        watching = False
        if mgr.is_initialized:
            service = await mgr.get_schema_service()
            model_count = len(service.snapshot)
            watching = service.tracker.is_watching
            if service.tracker.last_reload_error is not None:
                desc = "Ready; the last automatic reload failed, serving the previous schema."
            elif not service.index_is_current:
                desc = "Ready; the search index is rebuilt for the new schema on the next query."

        return InitStatus(
            phase=phase,
            attempts=state.attempts,
            started_at=state.started_at,
            completed_at=state.completed_at,
            error_message=state.error_message,
            description=desc,
            model_count=model_count,
            watching=watching,
        )

    @mcp.tool
    async def get_schema_overview(  # pyright: ignore[reportUnusedFunction]
        ctx: Context,
    ) -> SchemaOverview:
        """List every model with its table name and the full schema description.

        Also reports model files that could not be parsed, so missing models can be explained.
        """
        _logger.info("Retrieving schema overview")
        schema_service = await _service(ctx)
        result = schema_service.get_schema_overview()
        _logger.info("Retrieved schema overview with %d models", result.total_models)
        return result

    @mcp.tool
    async def find_relevant_models(  # pyright: ignore[reportUnusedFunction]
        ctx: Context,
        query: Annotated[
            str,
            Field(
                description=(
                    "The user's question, optionally rewritten to focus on the entities and "
                    "attributes it mentions."
                )
            ),
        ],
        *,
        top_k: Annotated[
            int | None,
            Field(ge=1, le=50, description="Maximum models selected by semantic similarity"),
        ] = None,
        threshold: Annotated[
            float | None,
            Field(ge=-1.0, le=1.0, description="Minimum semantic similarity score"),
        ] = None,
        include_related: Annotated[
            bool,
            Field(description="Also include models one association or reference away"),
        ] = True,
    ) -> RelevantModelsResult:
        """Select the models needed to answer a natural-language question.

        Returns the models in schema order with columns and associations, plus a schema
        description restricted to them that can be given directly to SQL generation.
        """
        _logger.info("Finding relevant models for: %s", _preview(query))
        schema_service = await _service(ctx)
        try:
            result = await schema_service.find_relevant_models(
                query, top_k=top_k, threshold=threshold, include_related=include_related
            )
        except SchemaExtractionError as exc:
            await ctx.error(f"Model retrieval failed: {exc}")
            raise
        _logger.info("Selected %d models", len(result.models))
        return result

    @mcp.tool
    async def explain_model_selection(  # pyright: ignore[reportUnusedFunction]
        ctx: Context,
        query: Annotated[str, Field(description="The question to explain the selection for")],
        *,
        top_k: Annotated[
            int | None,
            Field(ge=1, le=50, description="Maximum models selected by semantic similarity"),
        ] = None,
        threshold: Annotated[
            float | None,
            Field(ge=-1.0, le=1.0, description="Minimum semantic similarity score"),
        ] = None,
        include_related: Annotated[
            bool,
            Field(description="Also consider models one association or reference away"),
        ] = True,
    ) -> list[ModelSelectionReason]:
        """Explain, per model, which signals (semantic, keyword, relationship) select it.

        Useful when an expected model is missing from find_relevant_models.
        """
        _logger.info("Explaining model selection for: %s", _preview(query))
        schema_service = await _service(ctx)
        try:
            return await schema_service.explain_model_selection(
                query, top_k=top_k, threshold=threshold, include_related=include_related
            )
        except SchemaExtractionError as exc:
            await ctx.error(f"Model retrieval failed: {exc}")
            raise

    @mcp.tool
    async def get_model_info(  # pyright: ignore[reportUnusedFunction]
        ctx: Context,
        name: Annotated[str, Field(description="Model name as listed in the schema overview")],
    ) -> ModelDetail:
        """Explain one model: table name, columns with types and constraints, and associations."""
        _logger.info("Retrieving model information for: %s", name)
        schema_service = await _service(ctx)
        try:
            result = schema_service.get_model_info(name)
        except KeyError as exc:
            await ctx.error(f"Model not found: {exc}")
            raise
        _logger.info("Retrieved model information for %s (%d columns)", name, len(result.columns))
        return result

    @mcp.tool
    async def reload_schema(ctx: Context) -> ReloadResult:  # pyright: ignore[reportUnusedFunction]
        """Re-read all model files now and rebuild the search index.

        On failure the previous schema keeps being served.
        """
        _logger.info("Reloading schema on request")
        schema_service = await _service(ctx)
        try:
            result = await schema_service.reload_schema()
        except SchemaExtractionError as exc:
            await ctx.error(f"Schema reload failed: {exc}")
            raise
        _logger.info("Reloaded schema with %d models", result.total_models)
        return result

    # Hint to static analyzers that nested functions are intentionally used
    _ = (
        get_init_status,
        get_schema_overview,
        find_relevant_models,
        explain_model_selection,
        get_model_info,
        reload_schema,
    )
