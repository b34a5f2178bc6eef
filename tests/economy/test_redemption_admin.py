from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from quota_ledger.db.repo.redemption_repo import RedemptionRepo
from quota_ledger.economy.redemption import admin as redemption_admin
from quota_ledger.economy.redemption.errors import (
    RedemptionInvalidInputError,
    RedemptionNotFoundError,
)
from quota_ledger.economy.redemption.locks import code_locks
from tests.economy.redemption_fixtures import InMemoryLedger

NOW_UTC = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    ("page", "page_size", "expected"),
    [
        (1, 20, (0, 20)),
        (3, 20, (40, 20)),
        (0, 20, (0, 20)),
        (2, 0, (1, 1)),
        (1, 500, (0, 100)),
    ],
)
def test_page_window_clamps_page_and_size(page: int, page_size: int, expected: tuple[int, int]) -> None:
    assert redemption_admin._page_window(page, page_size) == expected


def test_validate_changes_rejects_unknown_fields(ledger: InMemoryLedger) -> None:
    code = ledger.add_code(kind="SINGLE", quota=10)

    with pytest.raises(RedemptionInvalidInputError) as exc_info:
        redemption_admin._validate_changes(code, {"used_count": 0, "key": "x"})

    assert "key, used_count" in exc_info.value.message


@pytest.mark.parametrize(
    "changes",
    [
        {"status": "USED"},
        {"quota": 0},
        {"max_uses": -1},
        {"max_uses_per_user": -2},
    ],
)
def test_validate_changes_rejects_bad_values(ledger: InMemoryLedger, changes: dict[str, object]) -> None:
    code = ledger.add_code(kind="GIFT", quota=10, max_uses=5)

    with pytest.raises(RedemptionInvalidInputError):
        redemption_admin._validate_changes(code, changes)


def test_validate_changes_keeps_gift_cap_above_served_users(ledger: InMemoryLedger) -> None:
    code = ledger.add_code(kind="GIFT", quota=10, max_uses=5)
    code.used_user_count = 3

    with pytest.raises(RedemptionInvalidInputError):
        redemption_admin._validate_changes(code, {"max_uses": 2})
    redemption_admin._validate_changes(code, {"max_uses": 3})
    redemption_admin._validate_changes(code, {"max_uses": 0})


@pytest.mark.asyncio
async def test_update_code_applies_changes(ledger: InMemoryLedger) -> None:
    code = ledger.add_code(kind="GIFT", quota=10, max_uses=5)

    updated = await redemption_admin.update_code(
        code.id,
        changes={"name": "spring", "status": "DISABLED", "expires_at": NOW_UTC},
    )

    assert updated.name == "spring"
    assert ledger.code(code.id).status == "DISABLED"
    assert ledger.code(code.id).expires_at == NOW_UTC


@pytest.mark.asyncio
async def test_update_code_reopens_used_gift_when_cap_is_raised(ledger: InMemoryLedger) -> None:
    code = ledger.add_code(kind="GIFT", quota=10, max_uses=2, status="USED")
    code.used_user_count = 2

    updated = await redemption_admin.update_code(code.id, changes={"max_uses": 5})

    assert updated.status == "ENABLED"
    assert ledger.code(code.id).max_uses == 5


@pytest.mark.asyncio
async def test_update_code_closes_gift_when_cap_is_lowered_to_served_users(ledger: InMemoryLedger) -> None:
    code = ledger.add_code(kind="GIFT", quota=10, max_uses=5)
    code.used_user_count = 2

    updated = await redemption_admin.update_code(code.id, changes={"max_uses": 2})

    assert updated.status == "USED"


@pytest.mark.asyncio
async def test_update_code_keeps_disabled_gift_disabled(ledger: InMemoryLedger) -> None:
    code = ledger.add_code(kind="GIFT", quota=10, max_uses=2, status="DISABLED")
    code.used_user_count = 2

    updated = await redemption_admin.update_code(code.id, changes={"max_uses": 0})

    assert updated.status == "DISABLED"


@pytest.mark.asyncio
async def test_update_code_waits_for_in_flight_redemption(ledger: InMemoryLedger) -> None:
    code = ledger.add_code(kind="SINGLE", quota=10)

    async with code_locks.hold(code.key):
        update_task = asyncio.create_task(
            redemption_admin.update_code(code.id, changes={"quota": 99}),
        )
        for _ in range(5):
            await asyncio.sleep(0)
        assert update_task.done() is False
        assert ledger.code(code.id).quota == 10

    await update_task
    assert ledger.code(code.id).quota == 99


@pytest.mark.asyncio
async def test_update_code_rejects_invalid_status_without_changes(ledger: InMemoryLedger) -> None:
    code = ledger.add_code(kind="SINGLE", quota=10)

    with pytest.raises(RedemptionInvalidInputError):
        await redemption_admin.update_code(code.id, changes={"status": "USED", "quota": 50})

    assert ledger.code(code.id).status == "ENABLED"
    assert ledger.code(code.id).quota == 10


@pytest.mark.asyncio
async def test_get_code_and_update_missing_code_raise_not_found(ledger: InMemoryLedger) -> None:
    with pytest.raises(RedemptionNotFoundError):
        await redemption_admin.get_code(404)
    with pytest.raises(RedemptionNotFoundError):
        await redemption_admin.update_code(404, changes={"quota": 5})


@pytest.mark.asyncio
async def test_list_groups_pages_by_name(ledger: InMemoryLedger, monkeypatch) -> None:
    spring = ledger.add_code(kind="SINGLE", quota=10, name="spring")
    ledger.add_code(kind="SINGLE", quota=10, name="summer")
    autumn = ledger.add_code(kind="GIFT", quota=10, name="autumn")

    async def _fake_list_names(session):
        return ["autumn", "spring", "summer"]

    async def _fake_list_by_names(session, names):
        grouped: dict[str, list] = {}
        for code in ledger.codes.values():
            if code.name in names:
                grouped.setdefault(code.name, []).append(code)
        return grouped

    monkeypatch.setattr(RedemptionRepo, "list_names", _fake_list_names)
    monkeypatch.setattr(RedemptionRepo, "list_by_names", _fake_list_by_names)

    groups, total = await redemption_admin.list_groups(page=1, page_size=2)

    assert total == 3
    assert [group.name for group in groups] == ["autumn", "spring"]
    assert groups[0].codes == [autumn]
    assert groups[1].codes == [spring]
    assert groups[1].count == 1


@pytest.mark.asyncio
async def test_delete_code_raises_not_found_when_nothing_deleted(ledger: InMemoryLedger, monkeypatch) -> None:
    async def _fake_soft_delete_by_id(session, *, code_id, now_utc):
        return 0

    monkeypatch.setattr(RedemptionRepo, "soft_delete_by_id", _fake_soft_delete_by_id)

    with pytest.raises(RedemptionNotFoundError):
        await redemption_admin.delete_code(12, now_utc=NOW_UTC)


@pytest.mark.asyncio
async def test_delete_codes_by_blank_name_is_rejected(ledger: InMemoryLedger) -> None:
    with pytest.raises(RedemptionInvalidInputError):
        await redemption_admin.delete_codes_by_name("   ")


@pytest.mark.asyncio
async def test_delete_invalid_codes_passes_clock_to_repo(ledger: InMemoryLedger, monkeypatch) -> None:
    captured: dict[str, object] = {}

    async def _fake_soft_delete_invalid(session, *, now_utc):
        captured["now_utc"] = now_utc
        return 4

    monkeypatch.setattr(RedemptionRepo, "soft_delete_invalid", _fake_soft_delete_invalid)

    deleted = await redemption_admin.delete_invalid_codes(now_utc=NOW_UTC)

    assert deleted == 4
    assert captured["now_utc"] == NOW_UTC
