"""Model definition file parser.

This module turns the text of one model definition file into an ``Entity``.
It is a best-effort static reading of the file: option values are never
evaluated, and anything that is not a plain literal is kept as source text.

Functions:
- parse_model_file(): Parse a file into an Entity, or None when it is not a model
- parse_fields(): Extract attribute definitions from define/init calls
- parse_in_file_associations(): Extract association calls by call-site pattern
"""

from __future__ import annotations

from pathlib import Path, PurePath

from fastmcp.utilities.logging import get_logger
import tree_sitter

from .constants import IN_FILE_RELATION_PATTERNS, Constants
from .exceptions import ModelParseError, SourceParseError
from .matchers import match_define_call
from .models import Association, Entity, ForeignReference, LiteralValue, ModelField
from .syntax import (
    SourceTree,
    call_arguments,
    callee_method,
    is_object,
    is_plain_string,
    named_children,
    object_properties,
    option_value,
    parse_source,
    property_map,
    stripped_source,
    string_content,
)

# Logger
_logger = get_logger("schema_extraction.parser")


def parse_model_file(content: str, filename: str, path: Path | None = None) -> Entity | None:
    """Parse a model definition file.

    Args:
        content: File text
        filename: File name; the model name is the name without extension
        path: Full path recorded on the entity

    Returns:
        The parsed Entity, or None when the file declares no attributes

    Raises:
        ModelParseError: If the file cannot be parsed
    """
    model_name = PurePath(filename).stem

    storage_name = model_name.lower()
    table_match = Constants.TABLE_NAME_PATTERN.search(content)
    if table_match:
        storage_name = table_match.group(1)

    try:
        tree = parse_source(content, filename)
    except SourceParseError as exc:
        raise ModelParseError(str(exc), path or filename) from exc

    fields, description = parse_fields(tree)
    if not fields:
        _logger.debug("No attributes found in %s; not a model", filename)
        return None

    return Entity(
        name=model_name,
        storage_name=storage_name,
        fields=tuple(fields),
        associations=tuple(parse_in_file_associations(content)),
        description=description,
        source_path=path,
    )


def parse_fields(tree: SourceTree) -> tuple[list[ModelField], str]:
    """Extract attributes from every model definition call in the file.

    Returns:
        The attributes in source order, and the model ``comment`` option
        (empty when absent)
    """
    fields: list[ModelField] = []
    description = ""
    for call in tree.calls():
        define = match_define_call(call, tree)
        if define is None:
            continue
        for name, value in object_properties(define.attributes, tree):
            fields.append(_parse_field(name, value, tree))
        if define.options is not None and not description:
            comment = property_map(define.options, tree).get("comment")
            if comment is not None and is_plain_string(comment):
                description = string_content(comment, tree)
    return fields, description


def _parse_field(name: str, value: tree_sitter.Node, tree: SourceTree) -> ModelField:
    """Build a ModelField from an attribute's value node."""
    if not is_object(value):
        # Shorthand form: ``name: DataTypes.STRING``
        return ModelField(name=name, type=tree.text(value).strip())

    options = property_map(value, tree)
    field_type: str | None = None
    enum_values: tuple[str, ...] | None = None
    primary_key = False
    nullable = True
    unique = False
    default = None
    references: ForeignReference | None = None

    type_node = options.get("type")
    if type_node is not None:
        field_type = tree.text(type_node).strip()
        if Constants.ENUM_MARKER in field_type:
            enum_values = _enum_values(options.get("values"), type_node, tree)

    if _is_literal(options.get("primaryKey"), tree, value=True):
        primary_key = True
    if _is_literal(options.get("allowNull"), tree, value=False):
        nullable = False
    if _is_literal(options.get("unique"), tree, value=True):
        unique = True
    if "defaultValue" in options:
        default = option_value(options["defaultValue"], tree)

    ref_node = options.get("references")
    if ref_node is not None and is_object(ref_node):
        ref_options = property_map(ref_node, tree)
        model = ref_options.get("model")
        key = ref_options.get("key")
        if model is not None and key is not None:
            references = ForeignReference(
                target=stripped_source(model, tree), target_field=stripped_source(key, tree)
            )

    return ModelField(
        name=name,
        type=field_type,
        primary_key=primary_key,
        nullable=nullable,
        unique=unique,
        default=default,
        enum_values=enum_values,
        references=references,
    )


def _is_literal(node: tree_sitter.Node | None, tree: SourceTree, *, value: bool) -> bool:
    if node is None:
        return False
    parsed = option_value(node, tree)
    return isinstance(parsed, LiteralValue) and parsed.value is value


def _enum_values(
    values_node: tree_sitter.Node | None, type_node: tree_sitter.Node, tree: SourceTree
) -> tuple[str, ...] | None:
    """Read the allowed values of an ENUM attribute.

    The sibling ``values`` array wins; otherwise the arguments of an
    ``ENUM(...)`` call in the type expression are used.
    """
    elements: list[tree_sitter.Node] = []
    if values_node is not None and values_node.type == "array":
        elements = named_children(values_node)
    elif type_node.type == "call_expression":
        callee = callee_method(type_node, tree)
        function = type_node.child_by_field_name("function")
        if callee is not None:
            called = callee[1]
        else:
            called = tree.text(function) if function is not None else ""
        if called == Constants.ENUM_MARKER:
            elements = call_arguments(type_node)

    values = [_enum_element(element, tree) for element in elements]
    return tuple(values) if values else None


def _enum_element(node: tree_sitter.Node, tree: SourceTree) -> str:
    if is_plain_string(node):
        return string_content(node, tree)
    if node.type == "identifier":
        return tree.text(node)
    return stripped_source(node, tree)


def parse_in_file_associations(content: str) -> list[Association]:
    """Extract association calls from a model file by call-site pattern.

    Associations are returned grouped by kind (hasMany, hasOne, belongsTo,
    belongsToMany), each group in source order.
    """
    associations: list[Association] = []
    for kind, pattern in IN_FILE_RELATION_PATTERNS:
        for match in pattern.finditer(content):
            options = match.group(2) or ""
            fk_match = Constants.FOREIGN_KEY_OPTION_PATTERN.search(options)
            alias_match = Constants.ALIAS_OPTION_PATTERN.search(options)
            associations.append(
                Association(
                    kind=kind,
                    target=match.group(1),
                    foreign_key=fk_match.group(1) if fk_match else None,
                    alias=alias_match.group(1) if alias_match else None,
                )
            )
    return associations
