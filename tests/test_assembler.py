"""Tests for snapshot assembly from a models directory.

Exercises file discovery and exclusion rules, per-file failure isolation,
duplicate model names, the three discovery failures, and the generated
schema description text.
"""

from __future__ import annotations

from pathlib import Path

from conftest import HELPER_JS, MALFORMED_JS, ORDER_JS, PRODUCT_TS, USER_JS, ProjectFactory
import pytest

from nl2sql_sequelize.extraction.assembler import (
    analyze_project,
    describe_entities,
    is_model_file,
)
from nl2sql_sequelize.extraction.constants import RelationKind
from nl2sql_sequelize.extraction.exceptions import DiscoveryError
from nl2sql_sequelize.extraction.models import (
    Association,
    Entity,
    LiteralValue,
    ModelField,
)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("User.js", True),
        ("Order.ts", True),
        ("index.js", False),
        ("index.ts", False),
        ("associations.js", False),
        ("associations.ts", False),
        ("types.d.ts", False),
        ("User.test.js", False),
        ("User.test.ts", False),
        ("README.md", False),
        ("User.jsx", False),
    ],
)
def test_is_model_file(name: str, expected: bool) -> None:
    assert is_model_file(name) is expected


@pytest.mark.asyncio
async def test_malformed_files_are_isolated(make_project: ProjectFactory) -> None:
    root = make_project(
        {
            "User.js": USER_JS,
            "Order.js": ORDER_JS,
            "Product.ts": PRODUCT_TS,
            "Broken.js": MALFORMED_JS,
            "AlsoBroken.ts": "export const x = ;\n",
            "helpers.js": HELPER_JS,
            "types.d.ts": "export interface Anything { id: number }\n",
            "User.test.js": USER_JS,
            "README.md": "# models\n",
        }
    )

    snapshot = await analyze_project(root)

    assert snapshot.names == ["Order", "Product", "User"]
    assert snapshot.models_dir == root / "models"
    assert sorted((d.path.name, d.kind) for d in snapshot.diagnostics) == [
        ("AlsoBroken.ts", "model"),
        ("Broken.js", "model"),
    ]


@pytest.mark.asyncio
async def test_duplicate_model_name_keeps_first_file(make_project: ProjectFactory) -> None:
    root = make_project(
        {
            "User.js": USER_JS,
            "User.ts": "sequelize.define('User', { legacy: DataTypes.STRING });\n",
        }
    )

    snapshot = await analyze_project(root)

    user = snapshot.get("User")
    assert user is not None
    assert user.source_path == root / "models" / "User.js"
    assert [(d.path.name, d.kind) for d in snapshot.diagnostics] == [("User.ts", "duplicate")]


@pytest.mark.asyncio
async def test_missing_models_directory(tmp_path: Path) -> None:
    with pytest.raises(DiscoveryError, match="Models directory not found"):
        await analyze_project(tmp_path)


@pytest.mark.asyncio
async def test_no_candidate_files(make_project: ProjectFactory) -> None:
    root = make_project({"index.js": "module.exports = {};\n", "notes.txt": "hi"})
    with pytest.raises(DiscoveryError, match="No model files"):
        await analyze_project(root)


@pytest.mark.asyncio
async def test_no_valid_models(make_project: ProjectFactory) -> None:
    root = make_project({"Broken.js": MALFORMED_JS, "helpers.js": HELPER_JS})
    with pytest.raises(DiscoveryError, match="No valid models"):
        await analyze_project(root)


@pytest.mark.asyncio
async def test_schema_description_format(sample_project: Path) -> None:
    snapshot = await analyze_project(sample_project)

    order_block = "\n".join(
        [
            "Table: orders (Model: Order)",
            "Columns:",
            "  - id: DataTypes.INTEGER [PRIMARY KEY]",
            "  - userId: DataTypes.INTEGER [NOT NULL, REFERENCES users(id)]",
            "  - total: DataTypes.DECIMAL(10, 2)",
            "  - placedAt: DataTypes.DATE [DEFAULT DataTypes.NOW]",
            "Associations:",
            "  - belongsTo User (foreignKey: userId)",
            "",
        ]
    )
    assert snapshot.description.startswith(order_block + "\nTable: products (Model: Product)")
    assert (
        "  - status: DataTypes.ENUM('active', 'banned') "
        "[DEFAULT 'active', ALLOWED VALUES: [active, banned]]"
    ) in snapshot.description
    assert "  - hasMany Order (foreignKey: userId, as: orders)" in snapshot.description


def test_describe_entities_edge_cases() -> None:
    entity = Entity(
        name="Legacy",
        storage_name="legacy_rows",
        fields=(
            ModelField(name="blob"),
            ModelField(
                name="active",
                type="DataTypes.BOOLEAN",
                default=LiteralValue(value=False, source="false"),
            ),
        ),
        associations=(Association(kind=RelationKind.HAS_ONE, target="Archive"),),
    )

    assert describe_entities([entity]) == "\n".join(
        [
            "Table: legacy_rows (Model: Legacy)",
            "Columns:",
            "  - blob: unknown",
            "  - active: DataTypes.BOOLEAN [DEFAULT false]",
            "Associations:",
            "  - hasOne Archive",
            "",
        ]
    )
    assert describe_entities([]) == ""
