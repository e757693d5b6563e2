import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from acorn_hub.errors import retry_seconds
from acorn_hub.ledger import upsert
from acorn_hub.models import Cooldown

logger = logging.getLogger(__name__)


def epoch_ms(now: datetime) -> int:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return int(now.timestamp() * 1000)


@dataclass(frozen=True)
class CooldownResult:
    allowed: bool
    retry_in_ms: int = 0

    @property
    def retry_in_seconds(self) -> int:
        return retry_seconds(self.retry_in_ms)


class CooldownGate:
    """Per (user, action) "not ready until" gate.

    The check and the advance of ``ready_at`` happen in a single conditional
    upsert, so two concurrent claims cannot both pass.
    """

    async def try_consume(
        self, session: AsyncSession, user_id: str, action: str, duration_ms: int, now: datetime
    ) -> CooldownResult:
        now_ms = epoch_ms(now)
        stmt = upsert(session, Cooldown).values(user_id=user_id, action=action, ready_at_ms=now_ms + duration_ms)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Cooldown.user_id, Cooldown.action],
            set_={"ready_at_ms": stmt.excluded.ready_at_ms},
            where=Cooldown.ready_at_ms <= now_ms,
        ).returning(Cooldown.ready_at_ms)
        granted = (await session.execute(stmt)).first()
        if granted is not None:
            return CooldownResult(allowed=True)

        ready_at_ms = await self.ready_at(session, user_id, action)
        retry_in_ms = max(1, ready_at_ms - now_ms)
        logger.info(f"Cooldown denied: user={user_id}, action={action}, retry_in_ms={retry_in_ms}")
        return CooldownResult(allowed=False, retry_in_ms=retry_in_ms)

    async def ready_at(self, session: AsyncSession, user_id: str, action: str) -> int:
        result = await session.execute(
            select(Cooldown.ready_at_ms).where(Cooldown.user_id == user_id, Cooldown.action == action)
        )
        return result.scalar() or 0
