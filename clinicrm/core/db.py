from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from .config import settings
from .base import Base

engine = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

async def get_session():
    async with SessionLocal() as session:
        yield session

async def init_models():
    # In "create_all" mode build the schema at startup; otherwise migrations own it.
    # Models register on Base.metadata when their routers are imported by the app.
    if settings.DB_MANAGE == "create_all":
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
