"""Prefetch and cache the embedding model used for model retrieval.

Run at image build time so the first server start does not download the
model. The package itself is not imported; only ``model2vec`` is needed.

Behavior:
- Respects ``NL2SQL_SEQUELIZE_EMBEDDING_MODEL``; falls back to the server default.
- Encodes one short text so every lazily-created cache file under ``HF_HOME``
  (or the default HF cache) exists afterwards.
"""

from __future__ import annotations

import logging
import os

from model2vec import StaticModel

# Must match nl2sql_sequelize.retrieval.constants.Constants.DEFAULT_EMBEDDING_MODEL
DEFAULT_MODEL = "minishlab/potion-retrieval-8M"


def main() -> None:
    """Download and cache the configured embedding model."""
    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger("prefetch_embeddings")

    model_name = os.getenv("NL2SQL_SEQUELIZE_EMBEDDING_MODEL", DEFAULT_MODEL)
    cache_dir = os.getenv("HF_HOME") or os.getenv("XDG_CACHE_HOME")

    logger.info("Prefetching embedding model: %s", model_name)
    if cache_dir:
        logger.info("Using cache directory: %s", cache_dir)

    model = StaticModel.from_pretrained(model_name)
    dim = model.encode(["users have many orders"]).shape[1]
    logger.info("Embedding model cached (dim=%d)", dim)


if __name__ == "__main__":  # pragma: no cover - build-time utility
    main()
