"""Pydantic models for MCP tool I/O.

Minimal, task-focused models used by the MCP server tools and builders.
Keeping surface area small avoids overengineering and simplifies maintenance.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

# -----------------------
# MCP Response Models
# -----------------------


class FieldDetail(BaseModel):
    """Column information optimized for SQL generation."""

    name: str = Field(description="Attribute (column) name")
    data_type: str | None = Field(description="Declared data type as written in the model")
    nullable: bool = Field(description="Whether NULL values are allowed")
    is_primary_key: bool = Field(description="Whether this column is the primary key")
    is_unique: bool = Field(description="Whether values must be unique")
    default: str | None = Field(default=None, description="Declared default value (source text)")
    allowed_values: list[str] | None = Field(
        default=None, description="Allowed values for ENUM columns; authoritative when present"
    )
    references: str | None = Field(
        default=None, description="Referenced 'model_or_table(column)' for foreign keys"
    )


class AssociationDetail(BaseModel):
    """Declared relationship to another model."""

    kind: Literal["hasMany", "hasOne", "belongsTo", "belongsToMany"] = Field(
        description="Sequelize association kind"
    )
    target: str = Field(description="Target model name (may not be an extracted model)")
    foreign_key: str | None = Field(default=None, description="Declared foreignKey option")
    alias: str | None = Field(default=None, description="Declared 'as' alias")


class ModelDetail(BaseModel):
    """Comprehensive model details for SQL development."""

    name: str = Field(description="Model name")
    table_name: str = Field(description="Database table name")
    description: str | None = Field(default=None, description="Model comment, if declared")
    columns: list[FieldDetail] = Field(description="All attributes in declaration order")
    associations: list[AssociationDetail] = Field(description="Declared associations")
    primary_keys: list[str] = Field(default_factory=list, description="Primary key columns")
    source_file: str | None = Field(default=None, description="File the model was read from")
    search_text: str | None = Field(
        default=None, description="Text embedded for semantic search (get_model_info only)"
    )


class ModelSummary(BaseModel):
    """One-line model entry for orientation."""

    name: str = Field(description="Model name")
    table_name: str = Field(description="Database table name")
    field_count: int = Field(description="Number of attributes")
    association_count: int = Field(description="Number of associations")


class DiagnosticInfo(BaseModel):
    """Problem recorded while extracting the schema."""

    file: str = Field(description="File the problem was found in")
    kind: Literal["model", "association", "duplicate", "read"] = Field(
        description="Which extraction step reported the problem"
    )
    message: str = Field(description="Human-readable description")


class SchemaOverview(BaseModel):
    """High-level schema overview for SQL context."""

    models_dir: str = Field(description="Directory the schema was extracted from")
    total_models: int = Field(description="Total number of extracted models")
    models: list[ModelSummary] = Field(description="Models in file-name order")
    schema_description: str = Field(description="Full human-readable schema description")
    diagnostics: list[DiagnosticInfo] = Field(
        default_factory=list, description="Files that could not be fully read"
    )
    last_reload_error: str | None = Field(
        default=None, description="Error of the most recent automatic reload, if it failed"
    )


class RelevantModelsResult(BaseModel):
    """Models needed to answer a specific query."""

    query: str = Field(description="The natural language query being analyzed")
    models: list[ModelDetail] = Field(description="Relevant models in schema order")
    schema_description: str = Field(
        description="Schema description restricted to the relevant models"
    )


class ModelSelectionReason(BaseModel):
    """Why a model was selected for a query."""

    model: str = Field(description="Model name")
    vector_score: float = Field(description="Semantic similarity score")
    keyword_match: bool = Field(description="Matched a query keyword")
    related: bool = Field(description="One relationship away from a matched model")
    reason: str = Field(description="Human-readable summary of the signals")


class ReloadResult(BaseModel):
    """Outcome of an explicit schema reload."""

    total_models: int = Field(description="Number of models after the reload")
    diagnostics: list[DiagnosticInfo] = Field(
        default_factory=list, description="Problems recorded during the reload"
    )


class InitStatus(BaseModel):
    """Initialization status for schema service readiness."""

    phase: Literal["IDLE", "STARTING", "RUNNING", "READY", "FAILED", "STOPPED"]
    attempts: int = 0
    started_at: float | None = None
    completed_at: float | None = None
    error_message: str | None = None
    # Minimal descriptive text to help LLMs reason about progression
    description: str | None = Field(default=None, description="Short status description")
    model_count: int | None = Field(default=None, description="Models in the current schema")
    watching: bool = Field(default=False, description="Whether model files are being watched")
