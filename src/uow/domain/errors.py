"""Errors raised by the unit of work and its storage adapters."""

from typing import Optional


class UnitOfWorkError(Exception):
    """Base class for all unit of work errors."""
    pass


class TransactionBeginFailed(UnitOfWorkError):
    """Storage refused to open a transaction."""
    pass


class TransactionAlreadyActive(UnitOfWorkError):
    """A transaction is already in flight on this unit of work."""

    def __init__(self, message: str = "transaction already started"):
        super().__init__(message)


class NoActiveTransaction(UnitOfWorkError):
    """Commit or rollback was requested with nothing open."""

    def __init__(self, message: str = "no transaction to rollback"):
        super().__init__(message)


class RepositoryNotFound(UnitOfWorkError, LookupError):
    """No factory is registered under the requested name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"repository not found: {name}")


class RepositoryTypeMismatch(UnitOfWorkError, TypeError):
    """A factory produced a repository lacking the requested capability."""

    def __init__(self, name: str, expected: type, actual: object):
        self.name = name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"repository {name} is {type(actual).__name__}, expected {expected.__name__}"
        )


class CommitFailed(UnitOfWorkError):
    """Commit was rejected by storage; the transaction was rolled back."""
    pass


class RollbackFailed(UnitOfWorkError):
    """
    Rollback itself failed.

    Attributes:
        error: the exception raised by the storage rollback
        cause: what triggered the rollback (a commit failure or the
            exception raised by the unit of work callback), if anything
    """

    def __init__(self, error: BaseException, cause: Optional[BaseException] = None):
        self.error = error
        self.cause = cause
        if cause is None:
            message = f"rollback error: {error}"
        elif isinstance(cause, CommitFailed):
            message = f"commit error: {cause}, rollback error: {error}"
        else:
            message = f"{cause}, rollback error: {error}"
        super().__init__(message)
