from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from acorn_hub.settings import DATABASE_URL

engine = create_async_engine(DATABASE_URL, echo=False, pool_pre_ping=True)

Session = async_sessionmaker(
    autocommit=False,
    class_=AsyncSession,
    expire_on_commit=False,
    bind=engine,
)


def make_sessionmaker(url: str, **engine_kw):
    """Engine + session factory for a different database (tests, scripts)."""
    other = create_async_engine(url, echo=False, **engine_kw)
    return other, async_sessionmaker(autocommit=False, class_=AsyncSession, expire_on_commit=False, bind=other)


async def get_session():
    async with Session() as session:
        yield session


async def create_tables(bind=engine) -> None:
    from acorn_hub.models import Base

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
