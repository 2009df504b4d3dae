"""Exception hierarchy for migraflow."""

from __future__ import annotations


class MigraflowError(Exception):
    """Base class for all migraflow errors."""


class CacheError(MigraflowError):
    """Base class for cache layer errors."""


class CacheFailure(CacheError):
    """The persistent medium could not be read or written.

    Callers treat this as a warning: the workflow continues without caching.
    """

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class SerializationError(CacheError):
    """A value could not be serialized for storage."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Cannot serialize value for key {key!r}: {reason}")
        self.key = key
        self.reason = reason


class NoPlanFound(MigraflowError):
    """Orchestration was requested without a cached phase plan."""

    def __init__(self, owner: str, repo: str) -> None:
        super().__init__(
            f"No migration plan cached for {owner}/{repo}; run analysis first"
        )
        self.owner = owner
        self.repo = repo


class RunAlreadyActive(MigraflowError):
    """A migration run already holds the token for this project."""

    def __init__(self, owner: str, repo: str, token: str) -> None:
        super().__init__(f"A migration for {owner}/{repo} is already running")
        self.owner = owner
        self.repo = repo
        self.token = token


class PhaseExecutionError(MigraflowError):
    """The remote service failed to execute a phase."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
