from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from payments.config import DATABASE_URL
from payments.models import Base

engine = create_async_engine(DATABASE_URL, pool_pre_ping=True)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

async def init_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

async def close_db():
    await engine.dispose()

async def get_session():
    async with AsyncSessionLocal() as session:
        yield session
