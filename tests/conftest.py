# pylint: disable=redefined-outer-name
import pytest

import config
from uow.adapters.repository import AbstractRepository
from uow.adapters.storage import AbstractStorage, AbstractTransaction
from uow.service_layer.unit_of_work import UnitOfWork

config.configure_logging()


class FakeTransaction(AbstractTransaction):
    def __init__(self, storage):
        self.storage = storage
        self.committed = False
        self.rolled_back = False

    def commit(self):
        self.storage.commits += 1
        if self.storage.commit_error:
            raise self.storage.commit_error
        self.committed = True

    def rollback(self):
        self.storage.rollbacks += 1
        if self.storage.rollback_error:
            raise self.storage.rollback_error
        self.rolled_back = True


class FakeStorage(AbstractStorage):
    """Counts begins, commits and rollbacks; failures are switched on per test."""

    def __init__(self):
        self.begins = 0
        self.commits = 0
        self.rollbacks = 0
        self.begin_error = None
        self.commit_error = None
        self.rollback_error = None
        self.transactions = []

    def begin_transaction(self, ctx, options=None):
        ctx.raise_if_done()
        if self.begin_error:
            raise self.begin_error
        self.begins += 1
        tx = FakeTransaction(self)
        self.transactions.append(tx)
        return tx


class FakeRepository(AbstractRepository):
    def __init__(self, tx):
        super().__init__()
        self.tx = tx

    def add(self, obj):
        return self.track(obj)


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def uow(storage):
    """Unit of work over a fake storage with "users" and "accounts" registered."""
    uow = UnitOfWork(storage)
    uow.register("users", FakeRepository)
    uow.register("accounts", FakeRepository)
    return uow
