"""Shared fixtures for nl2sql-sequelize tests.

Provides small Sequelize projects written to a temporary directory and a
deterministic embedding provider, so extraction and retrieval can be tested
without a real model download.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from pathlib import Path

import numpy as np
import pytest

from nl2sql_sequelize.extraction.tracker import SchemaFileEvent

USER_JS = """\
module.exports = (sequelize, DataTypes) => {
  const User = sequelize.define('User', {
    id: { type: DataTypes.INTEGER, primaryKey: true, autoIncrement: true },
    email: { type: DataTypes.STRING, allowNull: false, unique: true },
    status: { type: DataTypes.ENUM('active', 'banned'), defaultValue: 'active' },
    role: { type: DataTypes.ENUM, values: ['admin', 'member', ROLE_GUEST] },
  }, { tableName: 'users', comment: 'Registered customers' });

  User.associate = (models) => {
    User.hasMany(models.Order, { foreignKey: 'userId', as: 'orders' });
  };
  return User;
};
"""

ORDER_JS = """\
module.exports = (sequelize, DataTypes) => {
  const Order = sequelize.define('Order', {
    id: { type: DataTypes.INTEGER, primaryKey: true },
    userId: {
      type: DataTypes.INTEGER,
      allowNull: false,
      references: { model: 'users', key: 'id' },
    },
    total: DataTypes.DECIMAL(10, 2),
    placedAt: { type: DataTypes.DATE, defaultValue: DataTypes.NOW },
  }, { tableName: 'orders' });

  Order.associate = (models) => {
    Order.belongsTo(models.User, { foreignKey: 'userId' });
  };
  return Order;
};
"""

PRODUCT_TS = """\
import { DataTypes, Model, Sequelize } from 'sequelize';

export class Product extends Model {}

export function initProduct(sequelize: Sequelize): typeof Product {
  Product.init(
    {
      id: { type: DataTypes.INTEGER, primaryKey: true },
      sku: { type: DataTypes.STRING(32), allowNull: false, unique: true },
      'unit_price': { type: DataTypes.FLOAT, defaultValue: 0 },
    },
    { sequelize, tableName: 'products' },
  );
  return Product;
}
"""

MALFORMED_JS = """\
module.exports = (sequelize, DataTypes) => {
  const Broken = sequelize.define('Broken', {
    id: { type: DataTypes.INTEGER, primaryKey: true,
"""

HELPER_JS = """\
module.exports = { formatDate: (value) => value.toISOString() };
"""


ProjectFactory = Callable[[dict[str, str]], Path]


@pytest.fixture
def make_project(tmp_path: Path) -> ProjectFactory:
    """Return a factory writing ``{filename: content}`` into ``<root>/models``."""

    def _make(files: dict[str, str]) -> Path:
        models_dir = tmp_path / "models"
        models_dir.mkdir(exist_ok=True)
        for name, content in files.items():
            (models_dir / name).write_text(content, encoding="utf-8")
        return tmp_path

    return _make


@pytest.fixture
def sample_project(make_project: ProjectFactory) -> Path:
    """A project with User, Order and Product models and no central associations."""
    return make_project({"User.js": USER_JS, "Order.js": ORDER_JS, "Product.ts": PRODUCT_TS})


class FakeEmbeddingProvider:
    """Deterministic embedding provider keyed by model name or exact query.

    Entity texts start with ``Model name: <name>.``; their vector is looked up
    in ``entity_vectors``. Any other text is a query and is looked up in
    ``query_vectors``. Unknown texts embed as the zero vector.
    """

    def __init__(
        self,
        entity_vectors: dict[str, list[float]] | None = None,
        query_vectors: dict[str, list[float]] | None = None,
        dim: int = 3,
    ) -> None:
        self.entity_vectors = entity_vectors or {}
        self.query_vectors = query_vectors or {}
        self.dim = dim
        self.calls: list[str] = []
        self.fail_queries = False
        self.fail_entities = False
        self.query_gate = None

    async def embed(self, text: str) -> np.ndarray:
        self.calls.append(text)
        if text.startswith("Model name: "):
            if self.fail_entities:
                msg = "entity embedding failed"
                raise RuntimeError(msg)
            name = text[len("Model name: ") :].split(".", 1)[0]
            return self._vector(self.entity_vectors.get(name))

        if self.query_gate is not None:
            await self.query_gate.wait()
        if self.fail_queries:
            msg = "query embedding failed"
            raise RuntimeError(msg)
        return self._vector(self.query_vectors.get(text))

    def _vector(self, values: list[float] | None) -> np.ndarray:
        if values is None:
            return np.zeros(self.dim, dtype=np.float32)
        vector = np.asarray(values, dtype=np.float32)
        norm = float(np.linalg.norm(vector))
        return vector / norm if norm else vector


@pytest.fixture
def fake_provider() -> FakeEmbeddingProvider:
    """A provider that embeds everything as the zero vector until configured."""
    return FakeEmbeddingProvider()


class ScriptedEvents:
    """Watch event source yielding fixed batches, then idling until stopped."""

    def __init__(self, batches: list[list[SchemaFileEvent]]) -> None:
        self.batches = batches
        self.started = 0
        self.exhausted = asyncio.Event()

    async def __call__(
        self, models_dir: Path, stop_event: asyncio.Event
    ) -> AsyncIterator[list[SchemaFileEvent]]:
        self.started += 1
        for batch in self.batches:
            yield batch
        self.exhausted.set()
        await stop_event.wait()
