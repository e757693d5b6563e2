import os

from dotenv import load_dotenv

load_dotenv()


def _database_url(raw: str) -> str:
    # Hosted Postgres hands out postgres:// URLs; the async engine needs the driver spelled out.
    if raw.startswith("postgres://"):
        raw = raw.replace("postgres://", "postgresql+asyncpg://", 1)
    elif raw.startswith("postgresql://"):
        raw = raw.replace("postgresql://", "postgresql+asyncpg://", 1)
    return raw


DATABASE_URL = _database_url(os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./acorn_hub.db"))

DAILY_CAP = int(os.getenv("DAILY_CAP", 300))
FISHING_ACTION = "fishing"
FISHING_COOLDOWN_MS = int(os.getenv("FISHING_COOLDOWN_MS", 3000))
FISH_ITEM = "fish"
FISH_REWARD = int(os.getenv("FISH_REWARD", 10))
DAY_TIMEZONE = os.getenv("DAY_TIMEZONE", "UTC")

DEFAULT_PRICES = {
    "fish": 10,
    "algae": 3,
}

CHAT_HISTORY_LIMIT = int(os.getenv("CHAT_HISTORY_LIMIT", 50))
CHAT_HISTORY_MAX = 200

HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", 8787))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
