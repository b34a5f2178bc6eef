from __future__ import annotations

import asyncio
import itertools
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import OperationalError

from quota_ledger.db.models.redemption_codes import RedemptionCode
from quota_ledger.db.models.redemption_usages import RedemptionUsage
from quota_ledger.db.models.usage_facts import UsageFact
from quota_ledger.db.repo.redemption_repo import SAVED_CODE_COLUMNS

UTC = timezone.utc
CODE_COLUMNS = (
    "id",
    "key",
    "name",
    "kind",
    "quota",
    "status",
    "created_at",
    "redeemed_at",
    "expires_at",
    "max_uses",
    "max_uses_per_user",
    "used_count",
    "used_user_count",
    "used_user_id",
    "deleted_at",
)


def _storage_error(statement: str) -> OperationalError:
    return OperationalError(statement, {}, Exception("connection reset"))


class InMemoryLedger:
    """Committed state shared by every fake transaction."""

    def __init__(self) -> None:
        self.codes: dict[int, RedemptionCode] = {}
        self.balances: dict[int, int] = {}
        self.usages: dict[tuple[int, int], int] = {}
        self.facts: list[UsageFact] = []
        self.fail_commit = False
        self.fail_fact_append = False
        self._code_ids = itertools.count(1)
        self._user_ids = itertools.count(1)

    def add_user(self, *, quota: int = 0) -> int:
        user_id = next(self._user_ids)
        self.balances[user_id] = quota
        return user_id

    def add_code(
        self,
        *,
        kind: str,
        quota: int,
        key: str | None = None,
        status: str = "ENABLED",
        expires_at: datetime | None = None,
        max_uses: int = 1,
        max_uses_per_user: int = 1,
        name: str = "batch",
        deleted_at: datetime | None = None,
    ) -> RedemptionCode:
        code_id = next(self._code_ids)
        code = RedemptionCode(
            id=code_id,
            key=key or f"{code_id:032d}",
            name=name,
            kind=kind,
            quota=quota,
            status=status,
            created_at=datetime(2026, 1, 1, tzinfo=UTC),
            redeemed_at=None,
            expires_at=expires_at,
            max_uses=max_uses,
            max_uses_per_user=max_uses_per_user,
            used_count=0,
            used_user_count=0,
            used_user_id=None,
            deleted_at=deleted_at,
        )
        self.codes[code_id] = code
        return code

    def code(self, code_id: int) -> RedemptionCode:
        return self.codes[code_id]


class FakeSession:
    def __init__(self, ledger: InMemoryLedger) -> None:
        self.ledger = ledger
        self.code_updates: dict[int, dict[str, Any]] = {}
        self.quota_deltas: dict[int, int] = {}
        self.usages: dict[tuple[int, int], int] = {}
        self.facts: list[UsageFact] = []

    async def flush(self) -> None:
        await asyncio.sleep(0)

    def commit(self) -> None:
        for code_id, state in self.code_updates.items():
            code = self.ledger.codes[code_id]
            for column, value in state.items():
                setattr(code, column, value)
        for user_id, delta in self.quota_deltas.items():
            self.ledger.balances[user_id] += delta
        self.ledger.usages.update(self.usages)
        self.ledger.facts.extend(self.facts)


class FakeSessionBegin:
    def __init__(self, ledger: InMemoryLedger) -> None:
        self.session = FakeSession(ledger)

    async def __aenter__(self) -> FakeSession:
        return self.session

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            return False
        await asyncio.sleep(0)
        if self.session.ledger.fail_commit:
            raise _storage_error("COMMIT")
        self.session.commit()
        return False


class FakeSessionLocal:
    def __init__(self, ledger: InMemoryLedger) -> None:
        self.ledger = ledger

    def begin(self) -> FakeSessionBegin:
        return FakeSessionBegin(self.ledger)


def _snapshot(session: FakeSession, code: RedemptionCode) -> RedemptionCode:
    values = {column: getattr(code, column) for column in CODE_COLUMNS}
    values.update(session.code_updates.get(code.id, {}))
    return RedemptionCode(**values)


async def fake_get_by_key_for_update(session: FakeSession, key: str) -> RedemptionCode | None:
    await asyncio.sleep(0)
    for code in session.ledger.codes.values():
        if code.key == key and code.deleted_at is None:
            return _snapshot(session, code)
    return None


async def fake_get_by_id(session: FakeSession, code_id: int) -> RedemptionCode | None:
    await asyncio.sleep(0)
    code = session.ledger.codes.get(code_id)
    if code is None or code.deleted_at is not None:
        return None
    return code


async def fake_save_code(session: FakeSession, *, code: RedemptionCode) -> int:
    await asyncio.sleep(0)
    session.code_updates[code.id] = {column: getattr(code, column) for column in SAVED_CODE_COLUMNS}
    return 1


async def fake_credit_quota(session: FakeSession, *, user_id: int, amount: int) -> int:
    await asyncio.sleep(0)
    if user_id not in session.ledger.balances:
        return 0
    session.quota_deltas[user_id] = session.quota_deltas.get(user_id, 0) + amount
    return 1


def _current_uses(session: FakeSession, *, user_id: int, code_id: int) -> int:
    pair = (code_id, user_id)
    return session.usages.get(pair, session.ledger.usages.get(pair, 0))


async def fake_usage_get_for_update(
    session: FakeSession,
    *,
    user_id: int,
    code_id: int,
) -> RedemptionUsage | None:
    await asyncio.sleep(0)
    uses = _current_uses(session, user_id=user_id, code_id=code_id)
    if uses == 0:
        return None
    now_utc = datetime(2026, 1, 1, tzinfo=UTC)
    return RedemptionUsage(
        code_id=code_id,
        user_id=user_id,
        uses=uses,
        first_redeemed_at=now_utc,
        last_redeemed_at=now_utc,
    )


async def fake_record_use(
    session: FakeSession,
    *,
    usage: RedemptionUsage | None,
    user_id: int,
    code_id: int,
    now_utc: datetime,
) -> RedemptionUsage:
    await asyncio.sleep(0)
    uses = (usage.uses if usage is not None else 0) + 1
    session.usages[(code_id, user_id)] = uses
    return RedemptionUsage(
        code_id=code_id,
        user_id=user_id,
        uses=uses,
        first_redeemed_at=now_utc,
        last_redeemed_at=now_utc,
    )


async def fake_append_fact(session: FakeSession, *, fact: UsageFact) -> UsageFact:
    await asyncio.sleep(0)
    if session.ledger.fail_fact_append:
        raise _storage_error("INSERT INTO usage_facts")
    session.facts.append(fact)
    return fact
