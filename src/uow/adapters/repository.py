import abc
from typing import Any, Callable, Set

from uow.adapters.storage import AbstractTransaction, SqlAlchemyTransaction

RepositoryFactory = Callable[[AbstractTransaction], Any]


class AbstractRepository(abc.ABC):
    """Transaction-bound data access; concrete capabilities come from subclasses."""

    def __init__(self):
        self.seen = set()  # type: Set[Any]

    def track(self, obj):
        self.seen.add(obj)
        return obj


class SqlAlchemyRepository(AbstractRepository):
    def __init__(self, session):
        super().__init__()
        self.session = session

    @classmethod
    def factory(cls) -> RepositoryFactory:
        """Factory binding a new repository to a SQLAlchemy transaction's session."""

        def build(tx: SqlAlchemyTransaction):
            return cls(tx.session)

        return build
