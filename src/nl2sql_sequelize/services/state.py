"""Typed lifecycle state for the schema service.

Internal module providing the lifecycle phases and the immutable state record
used by `SchemaServiceManager`. Each transition replaces the record, so a
reader always sees a consistent phase/timestamp/error combination.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Final


class SchemaInitPhase(Enum):
    """Lifecycle phase of the schema service."""

    IDLE = auto()
    STARTING = auto()
    RUNNING = auto()
    READY = auto()
    FAILED = auto()
    STOPPED = auto()


@dataclass(frozen=True)
class SchemaInitState:
    """Lifecycle state with timestamps and error details.

    Attributes:
        phase: Current phase
        started_at: When the last initialization attempt began (epoch seconds)
        completed_at: When it reached READY or FAILED
        error_message: Failure message of the last attempt, if it failed
        attempts: Number of finished initialization attempts
        project_root: Project being served, once known
    """

    phase: SchemaInitPhase
    started_at: float | None = None
    completed_at: float | None = None
    error_message: str | None = None
    attempts: int = 0
    project_root: str | None = None


# Phases in which the service cannot answer yet
INIT_NOT_READY_PHASES: Final[frozenset[SchemaInitPhase]] = frozenset(
    {
        SchemaInitPhase.IDLE,
        SchemaInitPhase.STARTING,
        SchemaInitPhase.RUNNING,
    }
)

# Phases in which a start request is ignored
INIT_NO_RESTART_PHASES: Final[frozenset[SchemaInitPhase]] = frozenset(
    {
        SchemaInitPhase.STARTING,
        SchemaInitPhase.RUNNING,
        SchemaInitPhase.READY,
    }
)
