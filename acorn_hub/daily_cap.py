import logging
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Tuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from acorn_hub.errors import StorageUnavailable
from acorn_hub.ledger import upsert
from acorn_hub.models import DailyAward

logger = logging.getLogger(__name__)

MAX_CAS_ATTEMPTS = 8


def day_key(ts: datetime, tz: tzinfo = timezone.utc) -> str:
    """Calendar date of ``ts`` in ``tz`` as YYYY-MM-DD.

    The cap resets when this string changes: a calendar day in a fixed zone,
    not a rolling 24 hour window. Naive timestamps are read as UTC.
    """
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(tz).date().isoformat()


@dataclass(frozen=True)
class CapAward:
    granted: int
    remaining: int


class DailyCapTracker:
    def __init__(self, cap: int):
        self.cap = cap

    def _remaining(self, awarded: int) -> int:
        return max(0, self.cap - awarded)

    async def awarded(self, session: AsyncSession, user_id: str, day: str) -> int:
        result = await session.execute(
            select(DailyAward.awarded).where(DailyAward.user_id == user_id, DailyAward.day == day)
        )
        return result.scalar() or 0

    async def status(self, session: AsyncSession, user_id: str, day: str) -> Tuple[int, int]:
        awarded = await self.awarded(session, user_id, day)
        return awarded, self._remaining(awarded)

    async def award(self, session: AsyncSession, user_id: str, day: str, requested_delta: int) -> CapAward:
        """Grant up to ``requested_delta`` from what is left of today's budget.

        Over-cap requests are clamped, never rejected. The increment is a
        compare-and-set on the value just read, so concurrent awards for the
        same day cannot push ``awarded`` past the cap.
        """
        if requested_delta <= 0:
            _, remaining = await self.status(session, user_id, day)
            return CapAward(granted=0, remaining=remaining)

        stmt = upsert(session, DailyAward).values(user_id=user_id, day=day, awarded=0)
        await session.execute(stmt.on_conflict_do_nothing(index_elements=[DailyAward.user_id, DailyAward.day]))

        for _ in range(MAX_CAS_ATTEMPTS):
            seen = await self.awarded(session, user_id, day)
            remaining = self._remaining(seen)
            granted = min(remaining, requested_delta)
            if granted <= 0:
                logger.info(f"Daily cap reached: user={user_id}, day={day}, awarded={seen}")
                return CapAward(granted=0, remaining=0)

            result = await session.execute(
                update(DailyAward)
                .where(
                    DailyAward.user_id == user_id,
                    DailyAward.day == day,
                    DailyAward.awarded == seen,
                )
                .values(awarded=DailyAward.awarded + granted)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                if granted < requested_delta:
                    logger.info(f"Award clamped: user={user_id}, day={day}, requested={requested_delta}, granted={granted}")
                return CapAward(granted=granted, remaining=max(0, remaining - granted))

        raise StorageUnavailable(f"Daily cap for {user_id} kept changing under contention")
