"""Call-shape matchers over the expression tree.

Each matcher looks at a single call expression and decides whether it has one
of the recognized shapes. They only use the generic queries in ``syntax``, so
aliased imports and wrapper containers (``models.User``, ``db.models.User``)
are handled in one place.

Recognized shapes:
- ``<any>.define(<name>, { <attributes> }, { <options> }?)``
- ``<Model>.init({ <attributes> }, { sequelize | tableName | modelName, ... })``
- ``<entityRef>.<hasMany|hasOne|belongsTo|belongsToMany>(<targetRef>, { <options> }?)``
"""

from __future__ import annotations

from dataclasses import dataclass

import tree_sitter

from .constants import Constants, RelationKind
from .models import Association
from .syntax import (
    SourceTree,
    call_arguments,
    callee_method,
    is_object,
    is_plain_string,
    object_properties,
    property_map,
    reference_name,
    stripped_source,
    string_content,
)


@dataclass(frozen=True)
class DefineCall:
    """A matched model definition call.

    Attributes:
        attributes: Object literal whose properties are the model attributes
        options: Model options object literal, when given
    """

    attributes: tree_sitter.Node
    options: tree_sitter.Node | None


@dataclass(frozen=True)
class RelationCall:
    """A matched association call."""

    source: str
    association: Association


def match_define_call(call: tree_sitter.Node, tree: SourceTree) -> DefineCall | None:
    """Match a ``define`` or class-style ``init`` model definition call."""
    callee = callee_method(call, tree)
    if callee is None:
        return None
    _, method = callee
    args = call_arguments(call)

    if method == Constants.DEFINE_METHOD:
        if len(args) >= 2 and is_object(args[1]):
            options = args[2] if len(args) >= 3 and is_object(args[2]) else None
            return DefineCall(attributes=args[1], options=options)
        return None

    if method == Constants.INIT_METHOD and len(args) >= 2:
        if is_object(args[0]) and is_object(args[1]):
            keys = {key for key, _ in object_properties(args[1], tree)}
            if keys & Constants.INIT_OPTION_MARKERS:
                return DefineCall(attributes=args[0], options=args[1])
    return None


def match_relation_call(call: tree_sitter.Node, tree: SourceTree) -> RelationCall | None:
    """Match ``<entityRef>.<relationKind>(<targetRef>, <options>?)``.

    Returns:
        The declaring model name and the association, or None when the call
        does not have the relation shape or a reference cannot be resolved
    """
    callee = callee_method(call, tree)
    if callee is None:
        return None
    obj, method = callee
    if method not in Constants.RELATION_KINDS:
        return None

    source = reference_name(obj, tree)
    if source is None:
        return None

    args = call_arguments(call)
    if not args:
        return None
    target = reference_name(args[0], tree)
    if target is None:
        return None

    foreign_key: str | None = None
    alias: str | None = None
    if len(args) >= 2 and is_object(args[1]):
        options = property_map(args[1], tree)
        if "foreignKey" in options:
            foreign_key = _name_or_source(options["foreignKey"], tree)
        if "as" in options:
            alias = _name_or_source(options["as"], tree)

    association = Association(
        kind=RelationKind(method), target=target, foreign_key=foreign_key, alias=alias
    )
    return RelationCall(source=source, association=association)


def _name_or_source(node: tree_sitter.Node, tree: SourceTree) -> str:
    """Read a string literal or identifier, falling back to quote-stripped source."""
    if is_plain_string(node):
        return string_content(node, tree)
    if node.type == "identifier":
        return tree.text(node)
    return stripped_source(node, tree)
