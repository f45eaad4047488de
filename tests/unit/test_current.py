"""Unit tests for the process-wide current unit of work."""

import pytest

from uow.domain.context import Context, ContextCancelled
from uow.service_layer import unit_of_work
from uow.service_layer.unit_of_work import UnitOfWork, current, new_unit_of_work


@pytest.fixture(autouse=True)
def no_current(monkeypatch):
    monkeypatch.setattr(unit_of_work, "_current", None)


def test_current_is_none_before_construction():
    assert current() is None


def test_new_unit_of_work_becomes_current(storage):
    uow = new_unit_of_work(storage)

    assert isinstance(uow, UnitOfWork)
    assert current() is uow
    assert uow.storage is storage


def test_last_constructed_wins(storage):
    new_unit_of_work(storage)
    second = new_unit_of_work(storage)

    assert current() is second


def test_plain_constructor_does_not_touch_current(storage):
    UnitOfWork(storage)
    assert current() is None


def test_options_are_passed_through(storage):
    uow = new_unit_of_work(storage, lock_timeout=2.5)
    assert uow.lock_timeout == 2.5


def test_lock_timeout_defaults_to_configuration(storage, monkeypatch):
    monkeypatch.setenv("UOW_LOCK_TIMEOUT", "2.5")

    assert new_unit_of_work(storage).lock_timeout == 2.5


def test_lock_timeout_unset_fails_fast(storage, monkeypatch):
    monkeypatch.delenv("UOW_LOCK_TIMEOUT", raising=False)

    assert new_unit_of_work(storage).lock_timeout is None


def test_explicit_lock_timeout_overrides_configuration(storage, monkeypatch):
    monkeypatch.setenv("UOW_LOCK_TIMEOUT", "2.5")

    assert new_unit_of_work(storage, lock_timeout=None).lock_timeout is None


def test_cancelled_context_builds_nothing(storage):
    ctx = Context()
    ctx.cancel()

    with pytest.raises(ContextCancelled):
        new_unit_of_work(storage, ctx)

    assert current() is None
