"""Builders package for nl2sql-sequelize.

This package contains builder classes responsible for constructing response models
from extraction and retrieval results. Builders transform the immutable schema
data classes into structured models suitable for MCP tool responses.

Main Components:
- ModelDetailBuilder: Builds ModelDetail objects
- SchemaOverviewBuilder: Builds SchemaOverview objects
- RelevantModelsResultBuilder: Builds RelevantModelsResult objects
"""

from .response_builders import (
    ModelDetailBuilder,
    RelevantModelsResultBuilder,
    SchemaOverviewBuilder,
    build_diagnostics,
    build_selection_reasons,
)

__all__ = [
    "ModelDetailBuilder",
    "RelevantModelsResultBuilder",
    "SchemaOverviewBuilder",
    "build_diagnostics",
    "build_selection_reasons",
]
