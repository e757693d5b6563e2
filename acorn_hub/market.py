import logging
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from acorn_hub.errors import InsufficientStock, ValidationError
from acorn_hub.ledger import LedgerStore

logger = logging.getLogger(__name__)


class PriceTable:
    """Read-only unit sale prices. Unknown items sell for 0."""

    def __init__(self, prices: Mapping[str, int]):
        self._prices = MappingProxyType({str(k): int(v) for k, v in prices.items()})

    def price(self, item: str) -> int:
        return self._prices.get(item, 0)

    def snapshot(self) -> Dict[str, int]:
        return dict(self._prices)


@dataclass(frozen=True)
class Sale:
    gained: int
    acorns: int
    item: str
    qty: int


class MarketExchange:
    def __init__(self, ledger: LedgerStore, prices: PriceTable):
        self.ledger = ledger
        self.prices = prices

    async def sell(self, session: AsyncSession, user_id: str, item: str, qty) -> Sale:
        if not isinstance(item, str) or not item:
            raise ValidationError("bad params: item", field="item")
        if isinstance(qty, bool) or not isinstance(qty, (int, float)) or not math.isfinite(qty) or qty <= 0 or qty != int(qty):
            raise ValidationError("bad params: qty", field="qty")
        qty = int(qty)

        remaining = await self.ledger.remove_item(session, user_id, item, qty)
        if remaining is None:
            have = await self.ledger.item_qty(session, user_id, item)
            raise InsufficientStock(item, have)

        delta = self.prices.price(item) * qty
        acorns = await self.ledger.credit_wallet(session, user_id, delta)
        logger.info(f"Sale: user={user_id}, item={item}, qty={qty}, gained={delta}")
        return Sale(gained=delta, acorns=acorns, item=item, qty=remaining)
