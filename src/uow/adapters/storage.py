"""Storage handle adapters: the things a unit of work begins transactions on."""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session

import config
from uow.domain.context import Context, ContextError
from uow.domain.errors import TransactionBeginFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransactionOptions:
    """Per-transaction options applied when the transaction begins."""
    isolation_level: Optional[str] = None
    read_only: bool = False


class AbstractTransaction(abc.ABC):
    """An open transaction. Resolved exactly once by commit or rollback."""

    @abc.abstractmethod
    def commit(self):
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self):
        raise NotImplementedError


class AbstractStorage(abc.ABC):
    """A storage handle owned by the caller; only used to begin transactions."""

    @abc.abstractmethod
    def begin_transaction(
        self, ctx: Context, options: Optional[TransactionOptions] = None
    ) -> AbstractTransaction:
        """
        Open a new transaction.

        Raises:
            TransactionBeginFailed: if the context is done or storage refuses
        """
        raise NotImplementedError


class SqlAlchemyTransaction(AbstractTransaction):
    def __init__(self, session: Session):
        self.session = session

    def commit(self):
        # left open on failure so the caller can still roll back
        self.session.commit()
        self.session.close()

    def rollback(self):
        try:
            self.session.rollback()
        finally:
            self.session.close()


class SqlAlchemyStorage(AbstractStorage):
    """Begins transactions as SQLAlchemy sessions with a checked-out connection."""

    def __init__(self, session_factory: sessionmaker, default_options: Optional[TransactionOptions] = None):
        self.session_factory = session_factory
        self.default_options = default_options or TransactionOptions()

    def begin_transaction(self, ctx, options=None):
        options = options or self.default_options
        try:
            ctx.raise_if_done()
        except ContextError as e:
            raise TransactionBeginFailed(f"begin transaction: {e}") from e

        session = self.session_factory()  # type: Session
        try:
            session.connection(execution_options=self._execution_options(session, options))
            ctx.raise_if_done()
        except (SQLAlchemyError, ContextError) as e:
            session.close()
            logger.error(f"Failed to begin transaction: {e}")
            raise TransactionBeginFailed(f"begin transaction: {e}") from e

        logger.debug(f"Began transaction with {options}")
        return SqlAlchemyTransaction(session)

    @staticmethod
    def _execution_options(session: Session, options: TransactionOptions) -> dict:
        execution_options = {}
        if options.isolation_level:
            execution_options["isolation_level"] = options.isolation_level
        if options.read_only:
            bind = session.get_bind()
            if bind.dialect.name == "postgresql":
                execution_options["postgresql_readonly"] = True
            else:
                logger.warning(f"Read-only transactions are not supported on {bind.dialect.name}")
        return execution_options


def default_storage() -> SqlAlchemyStorage:
    """Storage bound to the configured PostgreSQL database."""
    engine = create_engine(config.get_postgres_uri())
    return SqlAlchemyStorage(
        sessionmaker(bind=engine),
        TransactionOptions(isolation_level=config.get_isolation_level()),
    )
