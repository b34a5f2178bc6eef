from __future__ import annotations

from types import SimpleNamespace

import pytest

from quota_ledger.db.repo.redemption_repo import RedemptionRepo
from quota_ledger.db.repo.usage_repo import UsageRepo
from quota_ledger.db.repo.users_repo import UsersRepo
from quota_ledger.economy.redemption import admin as redemption_admin
from quota_ledger.economy.redemption import facts as redemption_facts
from quota_ledger.economy.redemption import service as redemption_service
from tests.economy.redemption_fixtures import (
    FakeSessionLocal,
    InMemoryLedger,
    fake_append_fact,
    fake_credit_quota,
    fake_get_by_id,
    fake_get_by_key_for_update,
    fake_record_use,
    fake_save_code,
    fake_usage_get_for_update,
)


@pytest.fixture
def ledger(monkeypatch) -> InMemoryLedger:
    state = InMemoryLedger()
    session_local = FakeSessionLocal(state)
    settings = SimpleNamespace(
        redeem_random_delay_max_ms=0,
        quota_per_unit=500_000.0,
        quota_display_in_currency=True,
    )

    monkeypatch.setattr(redemption_service, "SessionLocal", session_local)
    monkeypatch.setattr(redemption_service, "get_settings", lambda: settings)
    monkeypatch.setattr(redemption_facts, "SessionLocal", session_local)
    monkeypatch.setattr(redemption_facts, "get_settings", lambda: settings)
    monkeypatch.setattr(redemption_admin, "SessionLocal", session_local)

    monkeypatch.setattr(RedemptionRepo, "get_by_key_for_update", fake_get_by_key_for_update)
    monkeypatch.setattr(RedemptionRepo, "get_by_id", fake_get_by_id)
    monkeypatch.setattr(RedemptionRepo, "get_by_id_for_update", fake_get_by_id)
    monkeypatch.setattr(RedemptionRepo, "save_code", fake_save_code)
    monkeypatch.setattr(UsersRepo, "credit_quota", fake_credit_quota)
    monkeypatch.setattr(UsageRepo, "get_for_update", fake_usage_get_for_update)
    monkeypatch.setattr(UsageRepo, "record_use", fake_record_use)
    monkeypatch.setattr(UsageRepo, "append_fact", fake_append_fact)
    return state
