"""Error taxonomy for the transfer and monitoring layer."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from .domain.models import Job

__all__ = [
    "MediaFlowError",
    "InvalidArgumentError",
    "NotFoundError",
    "EmptyFolderError",
    "UnknownMediaProcessorError",
    "RemoteServiceError",
    "TransferBatchError",
    "ensure_present",
    "ensure_identity",
]

T = TypeVar("T")


class MediaFlowError(Exception):
    """Base class for mediaflow specific errors."""


class InvalidArgumentError(MediaFlowError, ValueError):
    """Raised when a required argument is missing or unusable."""


class NotFoundError(MediaFlowError, LookupError):
    """Raised when a referenced local or remote entity does not exist."""


class EmptyFolderError(NotFoundError, FileNotFoundError):
    """Raised when an upload folder has no files to transfer."""


class UnknownMediaProcessorError(MediaFlowError, LookupError):
    """Raised when no media processor matches the requested name."""


class RemoteServiceError(MediaFlowError):
    """Raised when the remote media store or blob endpoint rejects a call."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.body = body


class TransferBatchError(MediaFlowError):
    """Raised when one or more files of a transfer batch failed."""

    def __init__(self, failures: list[tuple[str, BaseException]]) -> None:
        names = ", ".join(name for name, _ in failures)
        super().__init__(f"{len(failures)} file transfer(s) failed: {names}")
        self.failures = failures
        # a single failure is the batch's base error
        if len(failures) == 1:
            self.__cause__ = failures[0][1]

    @property
    def errors(self) -> list[BaseException]:
        return [error for _, error in self.failures]


def ensure_present(value: T | None, name: str) -> T:
    """Return ``value`` or raise :class:`InvalidArgumentError` when it is missing."""

    if value is None:
        raise InvalidArgumentError(f"The {name} cannot be None.")
    return value


def ensure_identity(job: "Job | None") -> "Job":
    """Ensure ``job`` exists and was submitted (has a non-blank identity)."""

    job = ensure_present(job, "job")
    if not (job.id or "").strip():
        raise InvalidArgumentError(
            "The job does not have a valid id. Please, make sure to submit it first."
        )
    return job
