"""Error taxonomy for the similarity pipeline."""
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Optional


class PipelineStep(str, Enum):
    """Pipeline step an error originated from."""
    HASH = "hash"
    EXTRACT = "extract"
    CHUNK = "chunk"
    EMBED = "embed"
    SEARCH = "search"
    RESTORE = "restore"
    PERSIST = "persist"


class DocsimError(RuntimeError):
    """Base error, optionally tagged with the step that raised it."""

    def __init__(
        self,
        message: str,
        *,
        step: Optional[PipelineStep] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.step = step
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        message = super().__str__()
        if self.step is None:
            return message
        return f"[{self.step.value}] {message}"


class ValidationError(DocsimError):
    """Invalid configuration or input, rejected before any I/O."""

    def __init__(
        self,
        message: str,
        *,
        step: Optional[PipelineStep] = None,
        index: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, step=step, cause=cause)
        self.index = index


class NotFoundError(DocsimError):
    """A document or chunk required by the operation does not exist."""


class ProviderError(DocsimError):
    """Embedding provider or vector backend failure."""

    def __init__(
        self,
        message: str,
        *,
        step: Optional[PipelineStep] = None,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, step=step, cause=cause)
        self.status_code = status_code


class ConsistencyError(DocsimError):
    """Stored state disagrees with what an operation requires."""


class StatusTransitionError(DocsimError):
    """Document status change not allowed from its current status."""


class PipelineError(DocsimError):
    """Unexpected failure wrapped with its originating step."""


@contextmanager
def pipeline_step(step: PipelineStep) -> Iterator[None]:
    """Tag unexpected exceptions raised inside the block with a step.

    Errors from this module pass through unchanged; anything else is
    re-raised as PipelineError chained to the original.
    """
    try:
        yield
    except DocsimError:
        raise
    except Exception as e:
        raise PipelineError(f"{step.value} failed: {e}", step=step, cause=e) from e
