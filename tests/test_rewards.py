from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from acorn_hub.cooldown import CooldownGate
from acorn_hub.daily_cap import DailyCapTracker
from acorn_hub.errors import RateLimited
from acorn_hub.ledger import LedgerStore
from acorn_hub.models import Cooldown, DailyAward, InventoryItem, Wallet
from acorn_hub.rewards import RewardIssuer

NOW = datetime(2026, 3, 14, 12, 0, 0, tzinfo=timezone.utc)


def make_issuer(cap=300):
    return RewardIssuer(LedgerStore(), CooldownGate(), DailyCapTracker(cap), reward=10, cooldown_ms=3000)


@pytest.mark.asyncio
async def test_failed_catch_is_free(sessions):
    issuer = make_issuer()
    async with sessions() as s:
        for _ in range(3):
            claim = await issuer.claim_fishing(s, "u1", False, NOW)
            assert claim.gained == 0
            assert claim.capped is False
        await s.commit()

        for model in (Cooldown, DailyAward, Wallet, InventoryItem):
            assert (await s.execute(select(func.count()).select_from(model))).scalar() == 0
    assert (claim.acorns, claim.qty, claim.remaining_today) == (0, 0, 300)


@pytest.mark.asyncio
async def test_successful_catch(sessions):
    issuer = make_issuer()
    async with sessions() as s:
        claim = await issuer.claim_fishing(s, "u1", True, NOW)
    assert claim.gained == 10
    assert claim.acorns == 10
    assert (claim.item, claim.qty) == ("fish", 1)
    assert claim.remaining_today == 290
    assert claim.capped is False


@pytest.mark.asyncio
async def test_second_catch_inside_cooldown_is_rate_limited(sessions):
    issuer = make_issuer()
    async with sessions() as s:
        await issuer.claim_fishing(s, "u1", True, NOW)
        with pytest.raises(RateLimited) as exc:
            await issuer.claim_fishing(s, "u1", True, NOW + timedelta(milliseconds=500))
        assert exc.value.retry_in_ms == 2500
        assert await issuer.ledger.item_qty(s, "u1", "fish") == 1

        claim = await issuer.claim_fishing(s, "u1", True, NOW + timedelta(milliseconds=3000))
        assert (claim.acorns, claim.qty, claim.remaining_today) == (20, 2, 280)


@pytest.mark.asyncio
async def test_fish_still_credited_once_cap_is_spent(sessions):
    issuer = make_issuer(cap=15)
    async with sessions() as s:
        first = await issuer.claim_fishing(s, "u1", True, NOW)
        second = await issuer.claim_fishing(s, "u1", True, NOW + timedelta(seconds=3))
        third = await issuer.claim_fishing(s, "u1", True, NOW + timedelta(seconds=6))

    assert (first.gained, first.capped) == (10, False)
    assert (second.gained, second.acorns, second.remaining_today, second.capped) == (5, 15, 0, True)
    assert (third.gained, third.acorns, third.qty, third.capped) == (0, 15, 3, True)
