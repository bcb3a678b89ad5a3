"""Data models for extracted schema information.

This module contains the immutable data classes that represent a parsed model
directory. Every class is frozen and uses tuples for its collections, so a
``SchemaSnapshot`` can be shared between the tracker and in-flight retrievals
without copying.

Models:
- LiteralValue / RawExpression: tagged option values captured from source
- ForeignReference: ``references: { model, key }`` of a field
- ModelField: one column-like attribute of a model
- Association: a declared relationship between two models
- Entity: one extracted model definition
- ParseDiagnostic: a recorded, non-fatal extraction problem
- SchemaSnapshot: the complete extraction result with its description
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Union

from .constants import RelationKind


@dataclass(frozen=True)
class LiteralValue:
    """An option value written as a plain literal in source.

    Attributes:
        value: Python value of the literal (str, int, float, bool, or None)
        source: Literal text exactly as written, quotes included
    """

    value: str | int | float | bool | None
    source: str

    def render(self) -> str:
        return self.source


@dataclass(frozen=True)
class RawExpression:
    """An option value that is not a simple literal, kept as source text.

    Attributes:
        source: Expression text exactly as written
    """

    source: str

    def render(self) -> str:
        return self.source


OptionValue = Union[LiteralValue, RawExpression]


@dataclass(frozen=True)
class ForeignReference:
    """Foreign reference declared by a field.

    Attributes:
        target: Referenced model or table name (may not resolve)
        target_field: Referenced column name
    """

    target: str
    target_field: str


@dataclass(frozen=True)
class ModelField:
    """Profile of a single model attribute.

    Attributes:
        name: Attribute name as declared
        type: Declared type expression as source text, if any
        primary_key: True when ``primaryKey: true`` is declared
        nullable: False when ``allowNull: false`` is declared
        unique: True when ``unique: true`` is declared
        default: Declared ``defaultValue``, if any
        enum_values: Allowed values for ENUM-typed fields; authoritative when set
        references: Foreign reference, if declared
    """

    name: str
    type: str | None = None
    primary_key: bool = False
    nullable: bool = True
    unique: bool = False
    default: OptionValue | None = None
    enum_values: tuple[str, ...] | None = None
    references: ForeignReference | None = None


@dataclass(frozen=True)
class Association:
    """Declared relationship from one model to another.

    Attributes:
        kind: Relation kind
        target: Target model name as written (may not resolve)
        foreign_key: ``foreignKey`` option, if declared
        alias: ``as`` option, if declared
    """

    kind: RelationKind
    target: str
    foreign_key: str | None = None
    alias: str | None = None

    @property
    def dedup_key(self) -> tuple[str, str, str]:
        """Identity used when merging centralized declarations."""
        return (self.kind.value, self.target, self.alias or "")


@dataclass(frozen=True)
class Entity:
    """One extracted model definition.

    Attributes:
        name: Model name (file name without extension)
        storage_name: Table name declared via ``tableName`` or derived from ``name``
        fields: Ordered attributes
        associations: Ordered associations, in-file first then centralized
        description: Model ``comment`` option, empty when absent
        source_path: File the model was read from
    """

    name: str
    storage_name: str
    fields: tuple[ModelField, ...] = ()
    associations: tuple[Association, ...] = ()
    description: str = ""
    source_path: Path | None = None

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]


DiagnosticKind = Literal["model", "association", "duplicate", "read"]


@dataclass(frozen=True)
class ParseDiagnostic:
    """Non-fatal problem recorded while building a snapshot."""

    path: Path
    kind: DiagnosticKind
    message: str


@dataclass(frozen=True)
class SchemaSnapshot:
    """Complete, immutable result of one extraction run.

    A snapshot is never modified after construction; reloads build a new one
    and replace the reference held by the tracker.

    Attributes:
        entities: Models in file-name order
        description: Generated human-readable schema description
        models_dir: Directory the snapshot was extracted from
        diagnostics: Problems recorded while extracting
    """

    entities: tuple[Entity, ...]
    description: str
    models_dir: Path
    diagnostics: tuple[ParseDiagnostic, ...] = field(default_factory=tuple)

    @property
    def names(self) -> list[str]:
        return [entity.name for entity in self.entities]

    def get(self, name: str) -> Entity | None:
        """Return the entity called ``name``, if present."""
        for entity in self.entities:
            if entity.name == name:
                return entity
        return None

    def __len__(self) -> int:
        return len(self.entities)
