"""Schema extraction for Sequelize model directories.

Reads the model definition files of a project statically (nothing is
executed) and turns them into an immutable schema snapshot that is kept in
sync with the files while they change.

Main Components:
- parse_model_file: One model file to an Entity
- consolidate_associations / merge_associations: Centralized association files
- analyze_project: Whole models directory to a SchemaSnapshot
- LiveSchemaTracker: Current snapshot, reload and file watching
- Data Models: Entity, ModelField, Association, SchemaSnapshot and friends
- Exceptions: Structured error handling for the different failure modes

Example Usage:
    >>> from nl2sql_sequelize.extraction import create_live_schema
    >>>
    >>> tracker = await create_live_schema("/path/to/project")
    >>> snapshot = tracker.current()
    >>> print(snapshot.description)
    >>> await tracker.start_watch(on_changed=lambda: print("schema changed"))
"""

from .assembler import analyze_project, describe_entities
from .associations import consolidate_associations, merge_associations, parse_association_file
from .constants import RelationKind
from .exceptions import (
    AssociationParseError,
    DiscoveryError,
    EmbeddingError,
    ModelParseError,
    ReloadError,
    SchemaExtractionError,
)
from .models import (
    Association,
    Entity,
    ForeignReference,
    LiteralValue,
    ModelField,
    ParseDiagnostic,
    RawExpression,
    SchemaSnapshot,
)
from .parser import parse_model_file
from .tracker import (
    LiveSchemaTracker,
    SchemaFileEvent,
    SchemaFileEventKind,
    create_live_schema,
)

__all__ = [
    "Association",
    "AssociationParseError",
    "DiscoveryError",
    "EmbeddingError",
    "Entity",
    "ForeignReference",
    "LiteralValue",
    "LiveSchemaTracker",
    "ModelField",
    "ModelParseError",
    "ParseDiagnostic",
    "RawExpression",
    "RelationKind",
    "ReloadError",
    "SchemaExtractionError",
    "SchemaFileEvent",
    "SchemaFileEventKind",
    "SchemaSnapshot",
    "analyze_project",
    "consolidate_associations",
    "create_live_schema",
    "describe_entities",
    "merge_associations",
    "parse_association_file",
    "parse_model_file",
]
