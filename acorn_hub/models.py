from datetime import datetime, timezone

from sqlalchemy import BigInteger, CheckConstraint, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase


def _utcnow():
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"
    id = Column(String(36), primary_key=True)
    handle = Column(String(64), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class Wallet(Base):
    __tablename__ = "user_wallets"
    user_id = Column(String(36), primary_key=True)
    acorns = Column(BigInteger, nullable=False, default=0)

    __table_args__ = (CheckConstraint("acorns >= 0", name="ck_wallet_acorns_non_negative"),)


class InventoryItem(Base):
    __tablename__ = "user_inventory"
    user_id = Column(String(36), primary_key=True)
    item = Column(String(64), primary_key=True)
    qty = Column(Integer, nullable=False, default=0)

    __table_args__ = (CheckConstraint("qty >= 0", name="ck_inventory_qty_non_negative"),)


class Cooldown(Base):
    __tablename__ = "cooldowns"
    user_id = Column(String(36), primary_key=True)
    action = Column(String(32), primary_key=True)
    # epoch milliseconds
    ready_at_ms = Column(BigInteger, nullable=False, default=0)


class DailyAward(Base):
    __tablename__ = "daily_awards"
    user_id = Column(String(36), primary_key=True)
    # YYYY-MM-DD in the configured day zone
    day = Column(String(10), primary_key=True)
    awarded = Column(Integer, nullable=False, default=0)

    __table_args__ = (CheckConstraint("awarded >= 0", name="ck_daily_awarded_non_negative"),)


class ChatMessage(Base):
    __tablename__ = "chat_messages"
    id = Column(Integer, primary_key=True, autoincrement=True)
    channel = Column(String(64), nullable=False, default="global", index=True)
    user_id = Column(String(36), nullable=True)
    text = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
