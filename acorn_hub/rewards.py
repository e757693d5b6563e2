import logging
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo

from sqlalchemy.ext.asyncio import AsyncSession

from acorn_hub.cooldown import CooldownGate
from acorn_hub.daily_cap import DailyCapTracker, day_key
from acorn_hub.errors import RateLimited
from acorn_hub.ledger import LedgerStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FishingClaim:
    gained: int
    acorns: int
    item: str
    qty: int
    remaining_today: int
    capped: bool


class RewardIssuer:
    """Turns a minigame success signal into fish and (capped) acorns.

    Order per allowed catch: cooldown gate, one fish into inventory, daily cap,
    wallet credit. A failed catch only reads.
    """

    def __init__(
        self,
        ledger: LedgerStore,
        gate: CooldownGate,
        cap: DailyCapTracker,
        reward: int,
        cooldown_ms: int,
        action: str = "fishing",
        item: str = "fish",
        day_tz: tzinfo = timezone.utc,
    ):
        self.ledger = ledger
        self.gate = gate
        self.cap = cap
        self.reward = reward
        self.cooldown_ms = cooldown_ms
        self.action = action
        self.item = item
        self.day_tz = day_tz

    async def claim_fishing(self, session: AsyncSession, user_id: str, success: bool, now: datetime) -> FishingClaim:
        day = day_key(now, self.day_tz)
        if not success:
            _, remaining = await self.cap.status(session, user_id, day)
            return FishingClaim(
                gained=0,
                acorns=await self.ledger.balance(session, user_id),
                item=self.item,
                qty=await self.ledger.item_qty(session, user_id, self.item),
                remaining_today=remaining,
                capped=False,
            )

        gate = await self.gate.try_consume(session, user_id, self.action, self.cooldown_ms, now)
        if not gate.allowed:
            raise RateLimited(gate.retry_in_ms)

        qty = await self.ledger.add_item(session, user_id, self.item, 1)
        award = await self.cap.award(session, user_id, day, self.reward)
        if award.granted > 0:
            acorns = await self.ledger.credit_wallet(session, user_id, award.granted)
        else:
            await self.ledger.ensure_wallet(session, user_id)
            acorns = await self.ledger.balance(session, user_id)

        logger.info(f"Fishing reward: user={user_id}, granted={award.granted}, acorns={acorns}, {self.item}={qty}")
        return FishingClaim(
            gained=award.granted,
            acorns=acorns,
            item=self.item,
            qty=qty,
            remaining_today=award.remaining,
            capped=award.granted < self.reward,
        )
