"""
Tests for the admission guard.

Each pipeline must reject with the first failing check, in order, and
never touch the record.
"""

from __future__ import annotations

import threading

import pytest

from mintgate.errors import (
    ExceedsMax,
    ExceedsUserLimit,
    GloballyLocked,
    InsufficientPayment,
    NotReserved,
    Paused,
    ReentrantCall,
    Unauthorized,
    UserLocked,
)
from mintgate.guard import AdmissionGuard, ReentrancyGuard
from mintgate.locks import LockCategory
from mintgate.roles import PauseSwitch, RoleTable
from mintgate.store import ReserveStore

from .conftest import ADMIN, MINTER


@pytest.fixture
def store() -> ReserveStore:
    s = ReserveStore()
    s.reserve(1, 10, "1.json", 4, unit_price=3)
    return s


@pytest.fixture
def guard(store: ReserveStore, roles: RoleTable, pause: PauseSwitch) -> AdmissionGuard:
    return AdmissionGuard(store, roles, pause)


class TestAdminPipeline:
    def test_admits(self, guard: AdmissionGuard):
        record = guard.admit_admin(MINTER, 1, 10)
        assert record.token_id == 1

    def test_not_reserved(self, guard: AdmissionGuard):
        with pytest.raises(NotReserved):
            guard.admit_admin(MINTER, 2, 1)

    def test_zero_amount(self, guard: AdmissionGuard):
        with pytest.raises(ExceedsMax):
            guard.admit_admin(MINTER, 1, 0)

    def test_zero_amount_rejected_before_lock(self, guard: AdmissionGuard, store: ReserveStore):
        store.record_mint(1, 10)
        with pytest.raises(ExceedsMax):
            guard.admit_admin(MINTER, 1, 0)

    def test_globally_locked(self, guard: AdmissionGuard, store: ReserveStore):
        store.record_mint(1, 10)
        with pytest.raises(GloballyLocked):
            guard.admit_admin(MINTER, 1, 1)

    def test_cap_is_inclusive(self, guard: AdmissionGuard, store: ReserveStore):
        store.record_mint(1, 6)
        guard.admit_admin(MINTER, 1, 4)
        with pytest.raises(ExceedsMax):
            guard.admit_admin(MINTER, 1, 5)

    def test_cap_checked_before_role(self, guard: AdmissionGuard):
        with pytest.raises(ExceedsMax):
            guard.admit_admin("stranger", 1, 11)

    def test_requires_minter(self, guard: AdmissionGuard):
        with pytest.raises(Unauthorized):
            guard.admit_admin("stranger", 1, 1)

    def test_paused(self, guard: AdmissionGuard, pause: PauseSwitch):
        pause.pause(ADMIN)
        with pytest.raises(Paused):
            guard.admit_admin(MINTER, 1, 1)

    def test_user_lock_does_not_block_admin(self, guard: AdmissionGuard, store: ReserveStore):
        store.get(1).locks[LockCategory.USER_RESTRICTED] = True
        guard.admit_admin(MINTER, 1, 1)

    def test_does_not_mutate(self, guard: AdmissionGuard, store: ReserveStore):
        before = store.snapshot(1)
        guard.admit_admin(MINTER, 1, 3)
        assert store.get(1) == before


class TestPublicPipeline:
    def test_admits_exact_payment(self, guard: AdmissionGuard):
        guard.admit_public(1, 4, 12)

    def test_admits_overpayment(self, guard: AdmissionGuard):
        guard.admit_public(1, 1, 1000)

    def test_zero_amount(self, guard: AdmissionGuard):
        with pytest.raises(ExceedsUserLimit):
            guard.admit_public(1, 0, 0)

    def test_negative_amount(self, guard: AdmissionGuard):
        with pytest.raises(ExceedsUserLimit):
            guard.admit_public(1, -2, 0)

    def test_global_lock_checked_before_user_lock(self, guard: AdmissionGuard, store: ReserveStore):
        store.get(1).locks[LockCategory.USER_RESTRICTED] = True
        store.record_mint(1, 10)
        with pytest.raises(GloballyLocked):
            guard.admit_public(1, 1, 3)

    def test_user_locked(self, guard: AdmissionGuard, store: ReserveStore):
        store.get(1).locks[LockCategory.USER_RESTRICTED] = True
        with pytest.raises(UserLocked):
            guard.admit_public(1, 1, 3)

    def test_user_limit_not_max_supply(self, guard: AdmissionGuard):
        with pytest.raises(ExceedsUserLimit):
            guard.admit_public(1, 5, 15)

    def test_max_supply_still_binds_when_limit_is_higher(self, guard: AdmissionGuard, store: ReserveStore):
        store.set_user_limit(1, 500)
        with pytest.raises(ExceedsMax):
            guard.admit_public(1, 11, 33)

    def test_insufficient_payment(self, guard: AdmissionGuard):
        with pytest.raises(InsufficientPayment):
            guard.admit_public(1, 2, 5)

    def test_limit_checked_before_payment(self, guard: AdmissionGuard):
        with pytest.raises(ExceedsUserLimit):
            guard.admit_public(1, 5, 0)

    def test_paused(self, guard: AdmissionGuard, pause: PauseSwitch):
        pause.pause(ADMIN)
        with pytest.raises(Paused):
            guard.admit_public(1, 1, 3)


class TestReentrancyGuard:
    def test_nested_exclusive_rejected(self):
        guard = ReentrancyGuard()
        with guard.exclusive():
            with pytest.raises(ReentrantCall):
                with guard.exclusive():
                    pass
            assert guard.entered

    def test_released_after_error(self):
        guard = ReentrancyGuard()
        with pytest.raises(RuntimeError):
            with guard.exclusive():
                raise RuntimeError("boom")

        assert not guard.entered
        with guard.exclusive():
            pass

    def test_serialized_inside_exclusive(self):
        guard = ReentrancyGuard()
        with guard.exclusive():
            with guard.serialized():
                assert guard.entered

    def test_other_threads_wait(self):
        guard = ReentrancyGuard()
        order: list[str] = []
        started = threading.Event()

        def worker() -> None:
            started.set()
            with guard.exclusive():
                order.append("worker")

        with guard.exclusive():
            t = threading.Thread(target=worker)
            t.start()
            started.wait(timeout=5)
            order.append("main")
        t.join(timeout=5)

        assert order == ["main", "worker"]
