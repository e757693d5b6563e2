import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable, List, Optional
from zoneinfo import ZoneInfo

from fastapi import Depends, FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from acorn_hub import errors, settings
from acorn_hub.auth import Authenticator, GuestAuthenticator
from acorn_hub.chat import ChatRelay, ConnectionManager
from acorn_hub.cooldown import CooldownGate
from acorn_hub.daily_cap import DailyCapTracker, day_key
from acorn_hub.db import create_tables, get_session
from acorn_hub.ledger import LedgerStore
from acorn_hub.market import MarketExchange, PriceTable
from acorn_hub.models import User
from acorn_hub.rewards import RewardIssuer
from acorn_hub.schemas import (
    ChatMessageOut,
    ChatSend,
    FishingClaimReq,
    FishingClaimResp,
    GuestResp,
    ItemQty,
    LimitsResp,
    MeResp,
    SellReq,
    SellResp,
    UserOut,
    WalletResp,
)

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

DAY_TZ = ZoneInfo(settings.DAY_TIMEZONE)

ledger = LedgerStore()
daily_cap = DailyCapTracker(settings.DAILY_CAP)
rewards = RewardIssuer(
    ledger,
    CooldownGate(),
    daily_cap,
    reward=settings.FISH_REWARD,
    cooldown_ms=settings.FISHING_COOLDOWN_MS,
    action=settings.FISHING_ACTION,
    item=settings.FISH_ITEM,
    day_tz=DAY_TZ,
)
market = MarketExchange(ledger, PriceTable(settings.DEFAULT_PRICES))
guest_auth = GuestAuthenticator()
relay = ChatRelay(ConnectionManager())
bearer = HTTPBearer(auto_error=False)


@asynccontextmanager
async def lifespan(app):
    await create_tables()
    logger.info(f"Ledger ready: daily_cap={settings.DAILY_CAP}, cooldown_ms={settings.FISHING_COOLDOWN_MS}")
    yield
    logger.info("Stop Server")


app = FastAPI(title="Acorn Hub - Game Backend", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_clock() -> Callable[[], datetime]:
    return utc_now


def get_authenticator() -> Authenticator:
    return guest_auth


async def current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    session: AsyncSession = Depends(get_session),
    authenticator: Authenticator = Depends(get_authenticator),
) -> User:
    if credentials is None or not credentials.credentials:
        raise errors.Unauthenticated("no token")
    user = await authenticator.authenticate(session, credentials.credentials)
    if user is None:
        raise errors.Unauthenticated("invalid token")
    return user


@app.exception_handler(errors.GameError)
async def game_error_handler(request: Request, exc: errors.GameError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = [".".join(str(p) for p in e["loc"][1:]) for e in exc.errors()]
    err = errors.ValidationError("bad params", field=",".join(f for f in fields if f) or None)
    return JSONResponse(status_code=err.status_code, content=err.to_dict())


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Storage failure on {request.method} {request.url.path}")
    err = errors.StorageUnavailable()
    return JSONResponse(status_code=err.status_code, content=err.to_dict())


@app.get("/health")
async def health():
    return {"ok": True}


@app.post("/auth/guest", response_model=GuestResp)
async def auth_guest(
    session: AsyncSession = Depends(get_session),
    authenticator: GuestAuthenticator = Depends(get_authenticator),
):
    user = await authenticator.issue(session)
    await session.commit()
    return GuestResp(token=user.id, user=UserOut(id=user.id, handle=user.handle))


@app.get("/me", response_model=MeResp)
async def me(user: User = Depends(current_user)):
    return MeResp(user=UserOut(id=user.id, handle=user.handle))


@app.get("/wallet", response_model=WalletResp)
async def get_wallet(user: User = Depends(current_user), session: AsyncSession = Depends(get_session)):
    return WalletResp(acorns=await ledger.balance(session, user.id))


@app.get("/inventory", response_model=List[ItemQty])
async def get_inventory(user: User = Depends(current_user), session: AsyncSession = Depends(get_session)):
    rows = await ledger.inventory(session, user.id)
    return [ItemQty(item=r.item, qty=r.qty) for r in rows]


@app.post("/jobs/fishing/claim", response_model=FishingClaimResp)
async def claim_fishing(
    req: Optional[FishingClaimReq] = None,
    user: User = Depends(current_user),
    session: AsyncSession = Depends(get_session),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    success = bool(req and req.success)
    claim = await rewards.claim_fishing(session, user.id, success, clock())
    # one commit: fish, cap and acorns land together or not at all
    await session.commit()
    return FishingClaimResp(
        gained=claim.gained,
        acorns=claim.acorns,
        item=ItemQty(item=claim.item, qty=claim.qty),
        remainingToday=claim.remaining_today,
        capped=claim.capped,
    )


@app.get("/limits", response_model=LimitsResp)
async def get_limits(
    user: User = Depends(current_user),
    session: AsyncSession = Depends(get_session),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    awarded, remaining = await daily_cap.status(session, user.id, day_key(clock(), DAY_TZ))
    return LimitsResp(dailyCap=daily_cap.cap, awardedToday=awarded, remainingToday=remaining)


@app.get("/market/prices")
async def get_prices(user: User = Depends(current_user)):
    return market.prices.snapshot()


@app.post("/market/sell", response_model=SellResp)
async def sell(req: SellReq, user: User = Depends(current_user), session: AsyncSession = Depends(get_session)):
    sale = await market.sell(session, user.id, req.item, req.qty)
    await session.commit()
    return SellResp(gained=sale.gained, acorns=sale.acorns, item=ItemQty(item=sale.item, qty=sale.qty))


@app.get("/chat/history", response_model=List[ChatMessageOut])
async def chat_history(
    channel: str = "global",
    limit: int = Query(settings.CHAT_HISTORY_LIMIT, ge=1, le=settings.CHAT_HISTORY_MAX),
    session: AsyncSession = Depends(get_session),
):
    rows = await relay.history(session, channel, limit)
    return [ChatMessageOut(channel=r.channel, userId=r.user_id, text=r.text, createdAt=r.created_at) for r in rows]


@app.websocket("/ws")
async def chat_socket(websocket: WebSocket, session: AsyncSession = Depends(get_session)):
    await relay.manager.connect(websocket)
    try:
        while True:
            data = await websocket.receive_json()
            try:
                msg = ChatSend.model_validate(data)
            except PydanticValidationError:
                await websocket.send_json({"event": "error", "error": "bad_params"})
                continue
            await relay.publish(session, msg)
    except WebSocketDisconnect:
        logger.info("Chat socket closed")
    finally:
        relay.manager.disconnect(websocket)


def main():
    import uvicorn

    uvicorn.run("acorn_hub.server:app", host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
