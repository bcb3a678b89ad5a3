"""nl2sql-sequelize package for natural language to SQL over Sequelize projects.

Provides Model Context Protocol (FastMCP) server capabilities that read a
project's Sequelize model definitions and select the schema a natural-language
question needs.
"""

from nl2sql_sequelize.models import (
    AssociationDetail,
    FieldDetail,
    ModelDetail,
    RelevantModelsResult,
    SchemaOverview,
)
from nl2sql_sequelize.services import ConfigService, SchemaService

__all__ = [  # noqa: RUF022
    # Core models
    "AssociationDetail",
    "FieldDetail",
    "ModelDetail",
    "RelevantModelsResult",
    "SchemaOverview",
    # Services
    "ConfigService",
    "SchemaService",
]
