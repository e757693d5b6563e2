from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, StrictBool


class UserOut(BaseModel):
    id: str
    handle: str


class GuestResp(BaseModel):
    token: str
    user: UserOut


class MeResp(BaseModel):
    user: UserOut


class FishingClaimReq(BaseModel):
    success: StrictBool = False


class ItemQty(BaseModel):
    item: str
    qty: int


class FishingClaimResp(BaseModel):
    ok: bool = True
    gained: int
    acorns: int
    item: ItemQty
    remainingToday: int
    capped: bool


class LimitsResp(BaseModel):
    dailyCap: int
    awardedToday: int
    remainingToday: int


class SellReq(BaseModel):
    item: str = Field(..., min_length=1, max_length=64)
    qty: int = Field(..., gt=0)


class SellResp(BaseModel):
    ok: bool = True
    gained: int
    acorns: int
    item: ItemQty


class WalletResp(BaseModel):
    acorns: int


class ChatSend(BaseModel):
    channel: str = "global"
    text: str = ""
    userId: Optional[str] = None


class ChatMessageOut(BaseModel):
    channel: str
    userId: Optional[str]
    text: str
    createdAt: datetime
