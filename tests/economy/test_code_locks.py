from __future__ import annotations

import asyncio

import pytest

from quota_ledger.economy.redemption.locks import CodeLockRegistry


@pytest.mark.asyncio
async def test_same_key_holders_run_one_at_a_time() -> None:
    registry = CodeLockRegistry()
    inside = 0
    max_inside = 0

    async def _critical_section() -> None:
        nonlocal inside, max_inside
        async with registry.hold("CODE-A"):
            inside += 1
            max_inside = max(max_inside, inside)
            await asyncio.sleep(0.01)
            inside -= 1

    await asyncio.gather(*(_critical_section() for _ in range(5)))

    assert max_inside == 1
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_other_keys_are_not_blocked() -> None:
    registry = CodeLockRegistry()
    release = asyncio.Event()

    async def _hold_a() -> None:
        async with registry.hold("CODE-A"):
            await release.wait()

    holder = asyncio.create_task(_hold_a())
    await asyncio.sleep(0)
    assert registry.is_locked("CODE-A") is True

    async with registry.hold("CODE-B"):
        assert registry.is_locked("CODE-B") is True

    release.set()
    await holder
    assert registry.is_locked("CODE-A") is False


@pytest.mark.asyncio
async def test_lock_is_released_when_body_raises() -> None:
    registry = CodeLockRegistry()

    with pytest.raises(RuntimeError):
        async with registry.hold("CODE-A"):
            raise RuntimeError("boom")

    assert len(registry) == 0
    async with registry.hold("CODE-A"):
        assert registry.is_locked("CODE-A") is True
