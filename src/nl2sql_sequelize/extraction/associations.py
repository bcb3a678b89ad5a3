"""Centralized association consolidation.

Projects often declare associations outside the model files, either in a
dedicated ``associations.js``/``associations.ts`` or in the ``index.js``/
``index.ts`` aggregator. Only one tier is read: when any dedicated file exists
the aggregator files are ignored entirely, so the same relation is never
picked up twice.

Functions:
- consolidate_associations(): Read the active tier into a per-model map
- parse_association_file(): Extract relation calls from one file
- merge_associations(): Add centralized associations to entities without duplicates
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from pathlib import Path

from fastmcp.utilities.logging import get_logger

from .constants import Constants
from .exceptions import AssociationParseError, SourceParseError
from .matchers import match_relation_call
from .models import Association, Entity, ParseDiagnostic
from .syntax import parse_source

# Logger
_logger = get_logger("schema_extraction.associations")

AssociationMap = dict[str, list[Association]]


def active_tier(models_dir: Path) -> list[Path]:
    """Return the centralized association files that will be read.

    Dedicated association files win over aggregator files; within a tier,
    files are returned in name order.
    """
    for tier in (Constants.DEDICATED_ASSOCIATION_FILES, Constants.AGGREGATOR_FILES):
        present = [models_dir / name for name in sorted(tier) if (models_dir / name).is_file()]
        if present:
            return present
    return []


def parse_association_file(content: str, filename: str) -> AssociationMap:
    """Extract every relation call from a centralized association file.

    Args:
        content: File text
        filename: File name, used to choose the grammar

    Returns:
        Associations keyed by declaring model name, in declaration order

    Raises:
        AssociationParseError: If the file cannot be parsed
    """
    try:
        tree = parse_source(content, filename)
    except SourceParseError as exc:
        raise AssociationParseError(str(exc), filename) from exc

    association_map: AssociationMap = {}
    for call in tree.calls():
        relation = match_relation_call(call, tree)
        if relation is None:
            continue
        association_map.setdefault(relation.source, []).append(relation.association)
    return association_map


async def consolidate_associations(
    models_dir: Path,
) -> tuple[AssociationMap, list[ParseDiagnostic]]:
    """Read the active tier of centralized association files.

    A file that fails to read or parse contributes nothing and is reported as
    a diagnostic; the tier choice is made before any file is read, so a broken
    dedicated file still suppresses the aggregator files.

    Returns:
        The merged association map and the diagnostics recorded
    """
    association_map: AssociationMap = {}
    diagnostics: list[ParseDiagnostic] = []

    for path in active_tier(models_dir):
        _logger.info("Reading centralized associations from %s", path.name)
        try:
            content = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            _logger.warning("Could not read association file %s: %s", path.name, exc)
            diagnostics.append(ParseDiagnostic(path=path, kind="read", message=str(exc)))
            continue

        try:
            file_map = parse_association_file(content, path.name)
        except AssociationParseError as exc:
            _logger.warning("Failed to parse association file %s: %s", path.name, exc)
            diagnostics.append(ParseDiagnostic(path=path, kind="association", message=str(exc)))
            continue

        for source, associations in file_map.items():
            association_map.setdefault(source, []).extend(associations)

    total = sum(len(items) for items in association_map.values())
    if total:
        _logger.info("Found %d centralized associations for %d models", total, len(association_map))
    return association_map, diagnostics


def merge_associations(
    entities: tuple[Entity, ...] | list[Entity], association_map: AssociationMap
) -> tuple[Entity, ...]:
    """Append centralized associations to the entities they belong to.

    An association is added only when no association already on the entity
    (declared in-file or merged earlier) has the same kind, target and alias.
    Entries for models that were not extracted are ignored.
    """
    merged: list[Entity] = []
    for entity in entities:
        extra = association_map.get(entity.name)
        if not extra:
            merged.append(entity)
            continue

        seen = {association.dedup_key for association in entity.associations}
        added: list[Association] = []
        for association in extra:
            if association.dedup_key in seen:
                continue
            seen.add(association.dedup_key)
            added.append(association)

        if added:
            _logger.debug("Merged %d centralized associations into %s", len(added), entity.name)
            merged.append(replace(entity, associations=entity.associations + tuple(added)))
        else:
            merged.append(entity)

    known = {entity.name for entity in entities}
    unknown = sorted(set(association_map) - known)
    if unknown:
        _logger.debug("Ignoring centralized associations for unknown models: %s", unknown)
    return tuple(merged)
