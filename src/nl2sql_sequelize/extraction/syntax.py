"""Expression-tree access for JavaScript and TypeScript sources.

Thin layer over Tree-sitter that turns a model or association file into a
syntax tree and offers the handful of queries the extraction matchers need:
walking call expressions in document order, reading the arguments of a call,
resolving identifier/property-chain references, listing object properties, and
turning a value node into a tagged option value.

The grammar is chosen from the file extension: ``.ts`` files use the
TypeScript grammar, everything else the JavaScript grammar (which also
accepts JSX).
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from functools import cache
from pathlib import PurePath

import tree_sitter
import tree_sitter_javascript
import tree_sitter_typescript

from .constants import Constants
from .exceptions import SourceParseError
from .models import LiteralValue, OptionValue, RawExpression

# Wrapper nodes that do not change which value an expression denotes
_TRANSPARENT_NODES = frozenset(
    {"parenthesized_expression", "as_expression", "satisfies_expression", "non_null_expression"}
)
_STRING_NODES = frozenset({"string", "template_string"})


@cache
def _language(grammar: str) -> tree_sitter.Language:
    if grammar == "typescript":
        return tree_sitter.Language(tree_sitter_typescript.language_typescript())
    return tree_sitter.Language(tree_sitter_javascript.language())


def grammar_for(filename: str) -> str:
    """Return the grammar name used for ``filename``."""
    return "typescript" if PurePath(filename).suffix == ".ts" else "javascript"


@dataclass(frozen=True)
class SourceTree:
    """A parsed source file.

    Attributes:
        source: Encoded file text the tree points into
        root: Root node of the Tree-sitter syntax tree
        filename: Name used to pick the grammar and to label errors
    """

    source: bytes
    root: tree_sitter.Node
    filename: str

    def text(self, node: tree_sitter.Node) -> str:
        """Return the exact source text spanned by ``node``."""
        return self.source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def calls(self) -> Iterator[tree_sitter.Node]:
        """Yield every call expression in document order."""
        return iter_nodes(self.root, "call_expression")


def parse_source(text: str, filename: str) -> SourceTree:
    """Parse ``text`` into a syntax tree.

    Args:
        text: File content
        filename: File name, used to choose the grammar

    Returns:
        Parsed source tree

    Raises:
        SourceParseError: If the file contains syntax errors
    """
    source = text.encode("utf-8")
    parser = tree_sitter.Parser(_language(grammar_for(filename)))
    tree = parser.parse(source)
    root = tree.root_node
    if root.has_error:
        line = _first_error_line(root)
        msg = f"Syntax error in {filename}" + (f" near line {line}" if line else "")
        raise SourceParseError(msg, filename)
    return SourceTree(source=source, root=root, filename=filename)


def _first_error_line(root: tree_sitter.Node) -> int | None:
    for node in _walk(root):
        if node.type == "ERROR" or node.is_missing:
            return node.start_point[0] + 1
    return None


def _walk(root: tree_sitter.Node) -> Iterator[tree_sitter.Node]:
    # Iterative pre-order walk; model files can nest deeply
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def iter_nodes(root: tree_sitter.Node, node_type: str) -> Iterator[tree_sitter.Node]:
    """Yield descendants of ``root`` (inclusive) of ``node_type`` in document order."""
    return (node for node in _walk(root) if node.type == node_type)


def named_children(node: tree_sitter.Node) -> list[tree_sitter.Node]:
    """Return named children, skipping comments."""
    return [child for child in node.named_children if child.type != "comment"]


def unwrap(node: tree_sitter.Node) -> tree_sitter.Node:
    """Strip parentheses and TypeScript assertions around an expression."""
    while node.type in _TRANSPARENT_NODES:
        inner = named_children(node)
        if not inner:
            break
        node = inner[0]
    return node


def call_arguments(call: tree_sitter.Node) -> list[tree_sitter.Node]:
    """Return the unwrapped argument expressions of a call expression."""
    args = call.child_by_field_name("arguments")
    if args is None or args.type != "arguments":
        return []
    return [unwrap(arg) for arg in named_children(args)]


def callee_method(call: tree_sitter.Node, tree: SourceTree) -> tuple[tree_sitter.Node, str] | None:
    """Split ``<object>.<method>(...)`` into its object node and method name.

    Returns:
        ``(object_node, method_name)`` or None when the callee is not a
        property access
    """
    function = call.child_by_field_name("function")
    if function is None:
        return None
    function = unwrap(function)
    if function.type != "member_expression":
        return None
    obj = function.child_by_field_name("object")
    prop = function.child_by_field_name("property")
    if obj is None or prop is None or prop.type != "property_identifier":
        return None
    return unwrap(obj), tree.text(prop)


def reference_name(node: tree_sitter.Node, tree: SourceTree) -> str | None:
    """Resolve an identifier or a property chain to its final identifier.

    ``User``, ``models.User`` and ``db.models.User`` all resolve to ``User``.
    Anything else (calls, subscripts, literals) resolves to None.
    """
    node = unwrap(node)
    if node.type == "identifier":
        return tree.text(node)
    if node.type == "member_expression":
        prop = node.child_by_field_name("property")
        if prop is not None and prop.type == "property_identifier":
            return tree.text(prop)
    return None


def object_properties(
    node: tree_sitter.Node, tree: SourceTree
) -> list[tuple[str, tree_sitter.Node]]:
    """List ``(key, value_node)`` pairs of an object literal in source order.

    Identifier and string keys are supported; shorthand properties map to the
    identifier node itself. Computed keys, methods and spreads are skipped.
    """
    node = unwrap(node)
    if node.type != "object":
        return []
    properties: list[tuple[str, tree_sitter.Node]] = []
    for child in named_children(node):
        if child.type == "pair":
            key = child.child_by_field_name("key")
            value = child.child_by_field_name("value")
            if key is None or value is None:
                continue
            if key.type == "property_identifier":
                properties.append((tree.text(key), unwrap(value)))
            elif key.type == "string":
                properties.append((string_content(key, tree), unwrap(value)))
        elif child.type == "shorthand_property_identifier":
            properties.append((tree.text(child), child))
    return properties


def property_map(node: tree_sitter.Node, tree: SourceTree) -> dict[str, tree_sitter.Node]:
    """Return object properties as a dict; a repeated key keeps its last value."""
    return dict(object_properties(node, tree))


def is_object(node: tree_sitter.Node | None) -> bool:
    return node is not None and unwrap(node).type == "object"


def string_content(node: tree_sitter.Node, tree: SourceTree) -> str:
    """Return the text between the delimiters of a string literal."""
    return tree.text(node)[1:-1]


def is_plain_string(node: tree_sitter.Node) -> bool:
    """True for quoted strings and template strings without substitutions."""
    if node.type == "string":
        return True
    if node.type == "template_string":
        return not any(child.type == "template_substitution" for child in node.named_children)
    return False


def option_value(node: tree_sitter.Node, tree: SourceTree) -> OptionValue:
    """Convert a value node into a tagged option value.

    Strings, numbers, booleans and ``null`` become ``LiteralValue``; every
    other expression is kept verbatim as ``RawExpression``.
    """
    node = unwrap(node)
    source = tree.text(node).strip()
    if node.type in _STRING_NODES and is_plain_string(node):
        return LiteralValue(value=string_content(node, tree), source=source)
    if node.type == "number":
        return LiteralValue(value=_number(source), source=source)
    if node.type in {"true", "false"}:
        return LiteralValue(value=node.type == "true", source=source)
    if node.type == "null":
        return LiteralValue(value=None, source=source)
    return RawExpression(source=source)


def _number(source: str) -> int | float | str:
    cleaned = source.replace("_", "")
    try:
        return int(cleaned, 0)
    except ValueError:
        pass
    try:
        return float(cleaned)
    except ValueError:
        return source


def stripped_source(node: tree_sitter.Node, tree: SourceTree) -> str:
    """Return the node's source text with every quote character removed."""
    return Constants.QUOTE_PATTERN.sub("", tree.text(node)).strip()
