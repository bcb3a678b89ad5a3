"""Response builders for nl2sql-sequelize.

This module contains builder classes that construct response models from
extraction and retrieval results. Each builder is responsible for transforming
the immutable extraction data classes into structured models suitable for MCP
responses.
"""

from __future__ import annotations

from collections.abc import Iterable

from nl2sql_sequelize.extraction.assembler import describe_entities
from nl2sql_sequelize.extraction.models import (
    Entity,
    ModelField,
    ParseDiagnostic,
    SchemaSnapshot,
)
from nl2sql_sequelize.models import (
    AssociationDetail,
    DiagnosticInfo,
    FieldDetail,
    ModelDetail,
    ModelSelectionReason,
    ModelSummary,
    RelevantModelsResult,
    SchemaOverview,
)
from nl2sql_sequelize.retrieval.engine import SelectionExplanation


def build_diagnostics(diagnostics: Iterable[ParseDiagnostic]) -> list[DiagnosticInfo]:
    """Convert extraction diagnostics into response models."""
    return [
        DiagnosticInfo(file=diag.path.name, kind=diag.kind, message=diag.message)
        for diag in diagnostics
    ]


class ModelDetailBuilder:
    """Builder for ModelDetail objects."""

    @staticmethod
    def build(entity: Entity, search_text: str | None = None) -> ModelDetail:
        """Build full model details.

        Args:
            entity: Extracted model
            search_text: Canonical embedding text, when it should be shown

        Returns:
            ModelDetail with every field and association
        """
        return ModelDetail(
            name=entity.name,
            table_name=entity.storage_name,
            description=entity.description or None,
            columns=[ModelDetailBuilder._build_field(field) for field in entity.fields],
            associations=[
                AssociationDetail(
                    kind=association.kind.value,
                    target=association.target,
                    foreign_key=association.foreign_key,
                    alias=association.alias,
                )
                for association in entity.associations
            ],
            primary_keys=[field.name for field in entity.fields if field.primary_key],
            source_file=entity.source_path.name if entity.source_path else None,
            search_text=search_text,
        )

    @staticmethod
    def _build_field(field: ModelField) -> FieldDetail:
        references = None
        if field.references is not None:
            references = f"{field.references.target}({field.references.target_field})"
        return FieldDetail(
            name=field.name,
            data_type=field.type,
            nullable=field.nullable,
            is_primary_key=field.primary_key,
            is_unique=field.unique,
            default=field.default.render() if field.default is not None else None,
            allowed_values=list(field.enum_values) if field.enum_values is not None else None,
            references=references,
        )


class SchemaOverviewBuilder:
    """Builder for SchemaOverview objects."""

    @staticmethod
    def build(snapshot: SchemaSnapshot, last_reload_error: str | None = None) -> SchemaOverview:
        """Build a schema overview from a snapshot.

        Args:
            snapshot: Current schema snapshot
            last_reload_error: Message of the last failed automatic reload, if any

        Returns:
            SchemaOverview with model list, description and diagnostics
        """
        return SchemaOverview(
            models_dir=str(snapshot.models_dir),
            total_models=len(snapshot),
            models=[
                ModelSummary(
                    name=entity.name,
                    table_name=entity.storage_name,
                    field_count=len(entity.fields),
                    association_count=len(entity.associations),
                )
                for entity in snapshot.entities
            ],
            schema_description=snapshot.description,
            diagnostics=build_diagnostics(snapshot.diagnostics),
            last_reload_error=last_reload_error,
        )


class RelevantModelsResultBuilder:
    """Builder for RelevantModelsResult objects."""

    @staticmethod
    def build(query: str, entities: list[Entity]) -> RelevantModelsResult:
        """Build the retrieval result for a query.

        Args:
            query: Natural language query being analyzed
            entities: Selected models in snapshot order

        Returns:
            RelevantModelsResult with model details and the subset description
        """
        return RelevantModelsResult(
            query=query,
            models=[ModelDetailBuilder.build(entity) for entity in entities],
            schema_description=describe_entities(entities),
        )


def build_selection_reasons(
    explanations: Iterable[SelectionExplanation],
) -> list[ModelSelectionReason]:
    """Convert engine explanations into response models."""
    return [
        ModelSelectionReason(
            model=item.model,
            vector_score=item.vector_score,
            keyword_match=item.keyword,
            related=item.related,
            reason=item.reason,
        )
        for item in explanations
    ]
