"""Schema assembly from a project's models directory.

``analyze_project`` is the single entry point used by the live tracker. It
discovers the model files, parses them one at a time, merges the centralized
associations, and generates the human-readable schema description that is
handed to the downstream generation step.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from pathlib import Path

from fastmcp.utilities.logging import get_logger

from .associations import consolidate_associations, merge_associations
from .constants import Constants
from .exceptions import DiscoveryError, ModelParseError
from .models import Entity, ModelField, ParseDiagnostic, SchemaSnapshot
from .parser import parse_model_file

# Logger
_logger = get_logger("schema_extraction.assembler")

_EXCLUDED_NAMES = frozenset(Constants.DEDICATED_ASSOCIATION_FILES + Constants.AGGREGATOR_FILES)


def resolve_models_dir(project_root: Path | str) -> Path:
    """Return ``<project_root>/models``.

    Raises:
        DiscoveryError: If the directory does not exist
    """
    models_dir = Path(project_root) / Constants.MODELS_DIRNAME
    if not models_dir.is_dir():
        msg = f"Models directory not found: {models_dir}"
        raise DiscoveryError(msg)
    return models_dir


def is_model_file(name: str) -> bool:
    """True when ``name`` is a candidate model definition file."""
    if not name.endswith(Constants.SOURCE_EXTENSIONS):
        return False
    if name in _EXCLUDED_NAMES:
        return False
    if name.endswith(Constants.DECLARATION_SUFFIX):
        return False
    return not name.endswith(Constants.TEST_SUFFIXES)


def list_model_files(models_dir: Path) -> list[Path]:
    """List candidate model files directly inside ``models_dir``, sorted by name.

    Raises:
        DiscoveryError: If there are no candidate files
    """
    files = sorted(
        (path for path in models_dir.iterdir() if path.is_file() and is_model_file(path.name)),
        key=lambda path: path.name,
    )
    if not files:
        msg = f"No model files found in {models_dir}"
        raise DiscoveryError(msg)
    return files


async def analyze_project(project_root: Path | str) -> SchemaSnapshot:
    """Build a schema snapshot for a project.

    Args:
        project_root: Directory containing the ``models`` directory

    Returns:
        A new immutable SchemaSnapshot

    Raises:
        DiscoveryError: If the models directory or model files are missing, or
            no file yields a valid model
    """
    models_dir = resolve_models_dir(project_root)
    files = list_model_files(models_dir)
    _logger.info("Analyzing %d model files in %s", len(files), models_dir)

    entities: list[Entity] = []
    diagnostics: list[ParseDiagnostic] = []
    seen_names: set[str] = set()

    for path in files:
        try:
            content = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            _logger.warning("Failed to read model file %s: %s", path.name, exc)
            diagnostics.append(ParseDiagnostic(path=path, kind="read", message=str(exc)))
            continue

        try:
            entity = parse_model_file(content, path.name, path)
        except ModelParseError as exc:
            _logger.warning("Failed to parse model file %s: %s", path.name, exc)
            diagnostics.append(ParseDiagnostic(path=path, kind="model", message=str(exc)))
            continue

        if entity is None:
            continue
        if entity.name in seen_names:
            msg = f"Model name {entity.name!r} already defined by an earlier file"
            _logger.warning("Skipping %s: %s", path.name, msg)
            diagnostics.append(ParseDiagnostic(path=path, kind="duplicate", message=msg))
            continue
        seen_names.add(entity.name)
        entities.append(entity)

    if not entities:
        msg = f"No valid models found in {models_dir}"
        raise DiscoveryError(msg)

    association_map, association_diagnostics = await consolidate_associations(models_dir)
    diagnostics.extend(association_diagnostics)
    merged = merge_associations(entities, association_map)

    snapshot = SchemaSnapshot(
        entities=merged,
        description=describe_entities(merged),
        models_dir=models_dir,
        diagnostics=tuple(diagnostics),
    )
    _logger.info(
        "Extracted %d models (%d diagnostics)", len(snapshot), len(snapshot.diagnostics)
    )
    return snapshot


def _field_line(field: ModelField) -> str:
    constraints: list[str] = []
    if field.primary_key:
        constraints.append("PRIMARY KEY")
    if not field.nullable:
        constraints.append("NOT NULL")
    if field.unique:
        constraints.append("UNIQUE")
    if field.default is not None:
        constraints.append(f"DEFAULT {field.default.render()}")
    if field.enum_values:
        constraints.append(f"ALLOWED VALUES: [{', '.join(field.enum_values)}]")
    if field.references is not None:
        ref = field.references
        constraints.append(f"REFERENCES {ref.target}({ref.target_field})")

    suffix = f" [{', '.join(constraints)}]" if constraints else ""
    return f"  - {field.name}: {field.type or 'unknown'}{suffix}"


def describe_entities(entities: Iterable[Entity]) -> str:
    """Render the human-readable schema description for ``entities``.

    Used for the full snapshot and for the subset returned by retrieval.
    """
    lines: list[str] = []
    for entity in entities:
        lines.append(f"Table: {entity.storage_name} (Model: {entity.name})")
        lines.append("Columns:")
        lines.extend(_field_line(field) for field in entity.fields)

        if entity.associations:
            lines.append("Associations:")
            for association in entity.associations:
                details: list[str] = []
                if association.foreign_key:
                    details.append(f"foreignKey: {association.foreign_key}")
                if association.alias:
                    details.append(f"as: {association.alias}")
                detail = f" ({', '.join(details)})" if details else ""
                lines.append(f"  - {association.kind.value} {association.target}{detail}")

        lines.append("")
    return "\n".join(lines)

