# faturacao/core/db.py
"""
Async database access.

Request handlers get a session per request through ``get_db`` (series
repository). The sequence allocator opens its own short transactions from
``AsyncSessionLocal`` so a number is committed independently of the request.
"""

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from faturacao.config.settings import settings

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DB_ECHO,
    pool_size=settings.DB_POOL_SIZE,
    pool_pre_ping=True,
)

AsyncSessionLocal = sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    async with AsyncSessionLocal() as session:
        yield session
