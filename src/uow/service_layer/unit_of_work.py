"""Unit of Work coordinating one transaction across many repositories."""

from __future__ import annotations

import abc
import contextlib
import enum
import logging
import threading
from typing import Any, Callable, Iterator, Optional, TypeVar

import config
from uow.adapters.repository import RepositoryFactory
from uow.adapters.storage import AbstractStorage, AbstractTransaction, TransactionOptions
from uow.domain.context import Context
from uow.domain.errors import (
    CommitFailed,
    NoActiveTransaction,
    RepositoryTypeMismatch,
    RollbackFailed,
    TransactionAlreadyActive,
    TransactionBeginFailed,
    UnitOfWorkError,
)
from uow.service_layer.registry import RepositoryRegistry

logger = logging.getLogger(__name__)

R = TypeVar("R")


class State(enum.Enum):
    IDLE = "idle"
    ACTIVE = "active"


class AbstractUnitOfWork(abc.ABC):
    @abc.abstractmethod
    def register(self, name: str, factory: RepositoryFactory):
        raise NotImplementedError

    @abc.abstractmethod
    def unregister(self, name: str):
        raise NotImplementedError

    @abc.abstractmethod
    def get_repository(self, name: str, ctx: Optional[Context] = None, of_type: Optional[type] = None):
        raise NotImplementedError

    @abc.abstractmethod
    def do(self, fn: Callable[[AbstractUnitOfWork], Any], ctx: Optional[Context] = None):
        raise NotImplementedError

    @abc.abstractmethod
    def commit_or_rollback(self, cause: Optional[BaseException] = None):
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self, cause: Optional[BaseException] = None):
        raise NotImplementedError


class UnitOfWork(AbstractUnitOfWork):
    """
    Owns at most one open transaction and hands out repositories bound to it.

    The manager is either IDLE (no transaction) or ACTIVE. A single re-entrant
    lock guards the transaction handle: every public operation holds it for
    its own duration, and the ACTIVE window holds one extra acquisition from
    begin until commit or rollback. A transaction is therefore owned by the
    thread that began it, and other threads are refused (or wait up to
    ``lock_timeout`` seconds) until it is resolved.

    The context passed to ``do``/``get_repository`` only governs the begin
    step; commit and rollback are not bounded by its deadline.

    Args:
        storage: storage handle transactions are begun on (not owned)
        registry: repository factories, a fresh registry if omitted
        lock_timeout: None to fail fast with TransactionAlreadyActive,
            otherwise the number of seconds to wait for the lock
        options: options passed to every transaction begin
    """

    def __init__(
        self,
        storage: AbstractStorage,
        registry: Optional[RepositoryRegistry] = None,
        lock_timeout: Optional[float] = None,
        options: Optional[TransactionOptions] = None,
    ):
        self.storage = storage
        self.registry = registry if registry is not None else RepositoryRegistry()
        self.lock_timeout = lock_timeout
        self.options = options
        self._tx = None  # type: Optional[AbstractTransaction]
        self._lock = threading.RLock()
        self._managed = False

    @property
    def state(self) -> State:
        return State.IDLE if self._tx is None else State.ACTIVE

    @property
    def active(self) -> bool:
        return self._tx is not None

    def register(self, name, factory):
        self.registry.register(name, factory)

    def unregister(self, name):
        self.registry.unregister(name)

    def get_repository(self, name, ctx=None, of_type=None):
        """
        Resolve a repository bound to the current transaction.

        Begins the transaction on first use. Outside ``do`` the transaction
        stays open until the caller resolves it with ``commit_or_rollback``
        or ``rollback``.

        Raises:
            RepositoryNotFound: nothing is registered under ``name``
            TransactionBeginFailed: the lazy begin failed; the manager stays idle
            TransactionAlreadyActive: another thread owns the transaction
            RepositoryTypeMismatch: the repository is not an ``of_type``

        If the factory raises or the type check fails, a transaction begun
        by this call is rolled back before the error propagates.
        """
        with self._exclusive():
            factory = self.registry.get(name)
            began = self._tx is None
            if began:
                self._begin(ctx)
            try:
                repository = factory(self._tx)
                if of_type is not None and not isinstance(repository, of_type):
                    raise RepositoryTypeMismatch(name, of_type, repository)
            except BaseException as exc:
                # a transaction begun here must not outlive a failed resolution
                if began:
                    self._rollback(cause=exc)
                raise

        logger.debug(f"Resolved repository {name}")
        return repository

    def do(self, fn: Callable[[UnitOfWork], R], ctx: Optional[Context] = None) -> R:
        """
        Run ``fn`` inside a transaction.

        Commits when ``fn`` returns and hands back its return value. When
        ``fn`` raises, the transaction is rolled back and the same exception
        propagates unchanged.

        Raises:
            TransactionAlreadyActive: a transaction is already in flight
            TransactionBeginFailed: storage refused to begin
            CommitFailed: commit was rejected and rolled back
            RollbackFailed: the rollback failed as well
        """
        with self.transaction(ctx):
            return fn(self)

    @contextlib.contextmanager
    def transaction(self, ctx: Optional[Context] = None) -> Iterator[UnitOfWork]:
        """Context manager form of ``do``."""
        with self._exclusive():
            if self._tx is not None:
                raise TransactionAlreadyActive()
            self._begin(ctx)
            self._managed = True
            try:
                yield self
            except BaseException as exc:
                self._managed = False
                self._rollback(cause=exc)
                raise
            self._managed = False
            self._commit_or_rollback()

    def commit_or_rollback(self, cause=None):
        """
        Commit the transaction begun by ``get_repository``.

        If the commit fails the transaction is rolled back and CommitFailed
        (or RollbackFailed naming both errors) is raised. On success, a
        given ``cause`` is raised unchanged.
        """
        with self._exclusive():
            self._check_resolvable("commit")
            self._commit_or_rollback()
        if cause is not None:
            raise cause

    def rollback(self, cause=None):
        """
        Roll back the transaction begun by ``get_repository``.

        On success, a given ``cause`` is raised unchanged so callers can
        propagate their original error after the rollback.

        Raises:
            NoActiveTransaction: nothing is open
            RollbackFailed: storage failed to roll back
        """
        with self._exclusive():
            self._check_resolvable("rollback")
            self._rollback(cause=cause)
        if cause is not None:
            raise cause

    @contextlib.contextmanager
    def _exclusive(self) -> Iterator[None]:
        if self.lock_timeout is None:
            acquired = self._lock.acquire(blocking=False)
        else:
            acquired = self._lock.acquire(timeout=self.lock_timeout)
        if not acquired:
            raise TransactionAlreadyActive()
        try:
            yield
        finally:
            self._lock.release()

    def _check_resolvable(self, action: str):
        if self._tx is None:
            raise NoActiveTransaction(f"no transaction to {action}")
        if self._managed:
            raise UnitOfWorkError(f"cannot {action} inside do(); the transaction is resolved when the callback returns")

    def _begin(self, ctx: Optional[Context]):
        ctx = ctx if ctx is not None else Context.background()
        try:
            tx = self.storage.begin_transaction(ctx, self.options)
        except TransactionBeginFailed:
            raise
        except Exception as e:
            logger.error(f"Failed to begin transaction: {e}")
            raise TransactionBeginFailed(f"begin transaction: {e}") from e

        # held until the transaction is resolved in _end
        self._lock.acquire()
        self._tx = tx
        logger.debug("Transaction started")

    def _end(self):
        self._tx = None
        self._lock.release()

    def _commit_or_rollback(self):
        tx = self._tx
        try:
            tx.commit()
        except Exception as e:
            logger.warning(f"Commit failed, rolling back: {e}")
            failure = CommitFailed(str(e))
            self._rollback(cause=failure)
            raise failure from e
        finally:
            if self._tx is tx:
                self._end()
        logger.debug("Transaction committed")

    def _rollback(self, cause: Optional[BaseException] = None):
        tx = self._tx
        try:
            tx.rollback()
        except Exception as e:
            logger.error(f"Rollback failed: {e}")
            raise RollbackFailed(e, cause) from e
        finally:
            self._end()
        if cause is not None:
            logger.info(f"Transaction rolled back after: {cause}")
        else:
            logger.debug("Transaction rolled back")


_current = None  # type: Optional[UnitOfWork]


def new_unit_of_work(storage: AbstractStorage, ctx: Optional[Context] = None, **kwargs) -> UnitOfWork:
    """
    Build a UnitOfWork and make it the process-wide current instance.

    Prefer passing the returned instance explicitly; ``current()`` is only
    a convenience for call sites that cannot receive it and is unreliable
    when several units of work are built concurrently.

    ``lock_timeout`` defaults to ``config.get_lock_timeout()`` when not given.

    Raises:
        ContextCancelled: ``ctx`` was cancelled; nothing is built
        DeadlineExceeded: ``ctx`` is past its deadline; nothing is built
    """
    global _current
    if ctx is not None:
        ctx.raise_if_done()
    kwargs.setdefault("lock_timeout", config.get_lock_timeout())
    uow = UnitOfWork(storage, **kwargs)
    _current = uow
    return uow


def current() -> Optional[UnitOfWork]:
    """The last UnitOfWork built by ``new_unit_of_work``, or None."""
    return _current
