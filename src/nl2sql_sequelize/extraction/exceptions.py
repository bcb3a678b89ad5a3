"""Custom exception hierarchy for schema extraction and retrieval.

The hierarchy gives each failure mode of the pipeline its own type so callers
can tell per-file problems (which are recorded and skipped) from whole-pipeline
problems (which end the build or reload that triggered them).

Exception Categories:
- Per-file errors: a model file or a centralized association file that cannot
  be parsed
- Discovery errors: no models directory, no model files, or no valid models
- Reload errors: a watch-triggered re-extraction that failed
- Embedding errors: the embedding provider failed or the index is not ready
"""

from __future__ import annotations

from pathlib import Path


class SchemaExtractionError(Exception):
    """Base exception for schema extraction and retrieval operations.

    This is the root exception class for all errors raised by this package.
    """


class SourceParseError(SchemaExtractionError):
    """Raised when a source file cannot be parsed into a syntax tree.

    Attributes:
        path: File that failed to parse, when known
    """

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class ModelParseError(SourceParseError):
    """Raised when a single model definition file fails to parse.

    The assembler catches this, records a diagnostic, and continues with the
    remaining files.
    """


class AssociationParseError(SourceParseError):
    """Raised when a centralized association file fails to parse.

    The consolidator catches this and treats the file as declaring no
    associations; tier priority is unaffected.
    """


class DiscoveryError(SchemaExtractionError):
    """Raised when the schema cannot be discovered at all.

    This happens when:
    - The project has no models directory
    - The models directory contains no candidate definition files
    - None of the candidate files yields a valid model
    """


class ReloadError(SchemaExtractionError):
    """Raised (and recorded) when a watch-triggered reload fails.

    The previous snapshot stays current. The original failure is available as
    ``__cause__``.
    """


class EmbeddingError(SchemaExtractionError):
    """Raised when embedding operations fail.

    This exception is raised when:
    - The embedding provider fails to load or to encode text
    - The provider returns vectors of inconsistent dimensions
    - Retrieval is requested before the embedding index was initialized
    """
