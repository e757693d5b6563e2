import logging
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from acorn_hub.models import InventoryItem, Wallet

logger = logging.getLogger(__name__)


def upsert(session: AsyncSession, model):
    """Dialect-specific INSERT that supports ON CONFLICT clauses."""
    if session.get_bind().dialect.name == "postgresql":
        return postgresql.insert(model)
    return sqlite.insert(model)


class LedgerStore:
    """Wallet and inventory rows.

    Every mutation is one SQL statement: creation happens inside the same
    upsert that applies the delta, and decrements are conditional on the
    stored quantity. Nothing here commits; the caller owns the transaction.
    """

    async def ensure_wallet(self, session: AsyncSession, user_id: str) -> None:
        stmt = upsert(session, Wallet).values(user_id=user_id, acorns=0)
        await session.execute(stmt.on_conflict_do_nothing(index_elements=[Wallet.user_id]))

    async def credit_wallet(self, session: AsyncSession, user_id: str, amount: int) -> int:
        """Add ``amount`` acorns (creating the wallet at 0 first) and return the new balance."""
        stmt = upsert(session, Wallet).values(user_id=user_id, acorns=amount)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Wallet.user_id],
            set_={"acorns": Wallet.acorns + stmt.excluded.acorns},
        ).returning(Wallet.acorns)
        balance = (await session.execute(stmt)).scalar_one()
        logger.info(f"Wallet credit: user={user_id}, amount={amount}, new_balance={balance}")
        return balance

    async def balance(self, session: AsyncSession, user_id: str) -> int:
        result = await session.execute(select(Wallet.acorns).where(Wallet.user_id == user_id))
        return result.scalar() or 0

    async def add_item(self, session: AsyncSession, user_id: str, item: str, qty: int = 1) -> int:
        stmt = upsert(session, InventoryItem).values(user_id=user_id, item=item, qty=qty)
        stmt = stmt.on_conflict_do_update(
            index_elements=[InventoryItem.user_id, InventoryItem.item],
            set_={"qty": InventoryItem.qty + stmt.excluded.qty},
        ).returning(InventoryItem.qty)
        new_qty = (await session.execute(stmt)).scalar_one()
        logger.info(f"Inventory add: user={user_id}, item={item}, qty={qty}, new_qty={new_qty}")
        return new_qty

    async def remove_item(self, session: AsyncSession, user_id: str, item: str, qty: int) -> Optional[int]:
        """Take ``qty`` units away. Returns the new quantity, or None when the holding is too small."""
        stmt = (
            update(InventoryItem)
            .where(
                InventoryItem.user_id == user_id,
                InventoryItem.item == item,
                InventoryItem.qty >= qty,
            )
            .values(qty=InventoryItem.qty - qty)
            .returning(InventoryItem.qty)
            .execution_options(synchronize_session=False)
        )
        new_qty = (await session.execute(stmt)).scalar()
        if new_qty is not None:
            logger.info(f"Inventory remove: user={user_id}, item={item}, qty={qty}, new_qty={new_qty}")
        return new_qty

    async def item_qty(self, session: AsyncSession, user_id: str, item: str) -> int:
        result = await session.execute(
            select(InventoryItem.qty).where(InventoryItem.user_id == user_id, InventoryItem.item == item)
        )
        return result.scalar() or 0

    async def inventory(self, session: AsyncSession, user_id: str) -> List[InventoryItem]:
        result = await session.execute(
            select(InventoryItem).where(InventoryItem.user_id == user_id).order_by(InventoryItem.item)
        )
        return list(result.scalars().all())
