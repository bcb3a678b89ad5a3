"""Tests for model definition file parsing.

Covers both recognized definition shapes (``sequelize.define`` and class-style
``Model.init``), attribute option handling, ENUM values, foreign references,
table name resolution, and the in-file association patterns.
"""

from __future__ import annotations

from conftest import HELPER_JS, MALFORMED_JS, ORDER_JS, PRODUCT_TS, USER_JS
import pytest

from nl2sql_sequelize.extraction.constants import RelationKind
from nl2sql_sequelize.extraction.exceptions import ModelParseError, SourceParseError
from nl2sql_sequelize.extraction.models import (
    Association,
    ForeignReference,
    LiteralValue,
    RawExpression,
)
from nl2sql_sequelize.extraction.parser import parse_in_file_associations, parse_model_file
from nl2sql_sequelize.extraction.syntax import grammar_for, parse_source


def test_define_call_fields_and_flags() -> None:
    entity = parse_model_file(USER_JS, "User.js")
    assert entity is not None
    assert entity.name == "User"
    assert entity.storage_name == "users"
    assert entity.description == "Registered customers"
    assert entity.field_names() == ["id", "email", "status", "role"]

    id_field, email, status, role = entity.fields
    assert id_field.type == "DataTypes.INTEGER"
    assert id_field.primary_key is True
    assert id_field.nullable is True

    assert email.nullable is False
    assert email.unique is True
    assert email.primary_key is False

    assert status.type == "DataTypes.ENUM('active', 'banned')"
    assert status.enum_values == ("active", "banned")
    assert status.default == LiteralValue(value="active", source="'active'")

    # Sibling ``values`` array wins; identifiers are kept by name
    assert role.type == "DataTypes.ENUM"
    assert role.enum_values == ("admin", "member", "ROLE_GUEST")


def test_define_call_references_shorthand_and_raw_default() -> None:
    entity = parse_model_file(ORDER_JS, "Order.js")
    assert entity is not None
    fields = {field.name: field for field in entity.fields}

    assert fields["userId"].references == ForeignReference(target="users", target_field="id")
    assert fields["userId"].nullable is False
    assert fields["total"].type == "DataTypes.DECIMAL(10, 2)"
    assert fields["total"].enum_values is None
    assert fields["placedAt"].default == RawExpression(source="DataTypes.NOW")


def test_class_style_init_in_typescript() -> None:
    entity = parse_model_file(PRODUCT_TS, "Product.ts")
    assert entity is not None
    assert entity.name == "Product"
    assert entity.storage_name == "products"
    assert entity.field_names() == ["id", "sku", "unit_price"]
    assert entity.fields[1].type == "DataTypes.STRING(32)"
    assert entity.fields[2].default == LiteralValue(value=0, source="0")
    assert entity.associations == ()
    assert entity.description == ""


def test_storage_name_defaults_to_lowercased_model_name() -> None:
    content = (
        "module.exports = (sequelize, DataTypes) =>\n"
        "  sequelize.define('AuditLog', { message: DataTypes.TEXT });\n"
    )
    entity = parse_model_file(content, "AuditLog.js")
    assert entity is not None
    assert entity.storage_name == "auditlog"
    assert entity.fields[0].type == "DataTypes.TEXT"


def test_init_without_model_options_is_ignored() -> None:
    content = "Cache.init({ size: 10 }, { ttl: 60 });\n"
    assert parse_model_file(content, "Cache.js") is None


@pytest.mark.parametrize(
    "content",
    [
        HELPER_JS,
        "",
        "module.exports = (sequelize, DataTypes) => sequelize.define('Empty', {});\n",
    ],
)
def test_files_without_attributes_are_not_models(content: str) -> None:
    assert parse_model_file(content, "Helper.js") is None


def test_syntax_error_raises_model_parse_error() -> None:
    with pytest.raises(ModelParseError) as exc_info:
        parse_model_file(MALFORMED_JS, "Broken.js")
    assert "Broken.js" in str(exc_info.value)
    assert exc_info.value.path is not None
    assert exc_info.value.path.name == "Broken.js"


def test_in_file_associations_from_define_file() -> None:
    entity = parse_model_file(USER_JS, "User.js")
    assert entity is not None
    assert entity.associations == (
        Association(
            kind=RelationKind.HAS_MANY, target="Order", foreign_key="userId", alias="orders"
        ),
    )


def test_in_file_associations_grouped_by_kind() -> None:
    content = (
        "Post.belongsToMany(models.Tag, { through: 'PostTags', as: 'tags' });\n"
        "Post.hasOne(Author);\n"
        "Post.belongsTo(db.models.Blog, { foreignKey: 'blogId' });\n"
    )
    associations = parse_in_file_associations(content)
    assert [(a.kind, a.target) for a in associations] == [
        (RelationKind.HAS_ONE, "Author"),
        (RelationKind.BELONGS_TO, "Blog"),
        (RelationKind.BELONGS_TO_MANY, "Tag"),
    ]
    assert associations[1].foreign_key == "blogId"
    assert associations[2].alias == "tags"


@pytest.mark.parametrize(
    ("filename", "grammar"),
    [("User.ts", "typescript"), ("User.js", "javascript"), ("types.d.ts", "typescript")],
)
def test_grammar_is_chosen_by_extension(filename: str, grammar: str) -> None:
    assert grammar_for(filename) == grammar


def test_parse_source_reports_error_line() -> None:
    with pytest.raises(SourceParseError, match="near line"):
        parse_source("const a = {\nconst b = ;\n", "bad.js")
