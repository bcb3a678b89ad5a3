"""Services package for nl2sql-sequelize.

This package contains service classes that handle business logic and orchestration
for the nl2sql-sequelize application. Services are responsible for coordinating
between the extraction and retrieval modules and the response builders.

Main Components:
- ConfigService: Environment-driven configuration
- SchemaService: Schema extraction and retrieval orchestration
- SchemaServiceManager: Process-wide service lifecycle
"""

from .config_service import ConfigService, ServiceConfig
from .schema_service import SchemaService
from .schema_service_manager import SchemaServiceManager

__all__ = [
    "ConfigService",
    "SchemaService",
    "SchemaServiceManager",
    "ServiceConfig",
]
