"""Exception hierarchy for the generation pipeline.

Two families exist:

* ``StageError`` and its subclasses are fatal.  The orchestrator stops at the
  first one, marks the run ``FAILED`` and reports the stage that raised it.
* ``GenerationError`` and ``CleanupError`` are recoverable.  They are caught
  close to where they happen, counted or printed, and never abort a run.
"""

from __future__ import annotations


class ServiceGenError(Exception):
    """Base class for every error raised by servicegen."""


# ---------------------------------------------------------------------------
# Fatal (stage-level) errors
# ---------------------------------------------------------------------------


class StageError(ServiceGenError):
    """A stage failed irrecoverably."""


class ConfigurationError(StageError):
    """A project identity field is missing, invalid or unsupported."""


class DatabaseConnectionError(StageError):
    """The database is unreachable, timed out, or rejected the credentials."""


class SpecError(StageError):
    """The API specification is unreadable, invalid, or rejected by the code generator."""


class MetadataError(StageError):
    """The entity metadata hand-off file is missing or malformed."""


class SkeletonError(StageError):
    """A project skeleton file could not be rendered or written."""


class BaselineError(StageError):
    """The migration tooling could not produce a schema baseline."""


# ---------------------------------------------------------------------------
# Recoverable errors
# ---------------------------------------------------------------------------


class GenerationError(ServiceGenError):
    """Generating the artefacts of a single entity failed."""

    def __init__(self, entity: str, message: str) -> None:
        self.entity = entity
        super().__init__(f"{entity}: {message}")


class CleanupError(ServiceGenError):
    """A transient file could not be removed."""


# ---------------------------------------------------------------------------
# Orchestrator wrapper
# ---------------------------------------------------------------------------


class PipelineError(ServiceGenError):
    """Raised (or reported) when the pipeline lands in ``FAILED``.

    Carries the state that was executing and the underlying cause.
    """

    def __init__(self, state: str, cause: BaseException) -> None:
        self.state = state
        self.cause = cause
        super().__init__(f"Stage {state} failed: {type(cause).__name__}: {cause}")
