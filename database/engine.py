import logging

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from core.config import settings

DATABASE_URL = settings.database_url

logger = logging.getLogger("database_engine")


def _engine_options(url: str) -> dict:
    # aiosqlite connections are bound to the event loop that opened them
    if url.startswith("sqlite"):
        return {"poolclass": NullPool}
    return {"pool_pre_ping": True}


db_engine = create_async_engine(DATABASE_URL, echo=False, **_engine_options(DATABASE_URL))


# Create async session maker to be used throughout the application
AsyncSessionLocal = async_sessionmaker(
    db_engine, class_=AsyncSession, expire_on_commit=False
)


# Base class for declarative models
class Base(DeclarativeBase):
    pass


# Dependency to get DB session
async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


# Function to initialize the database (create tables)
async def init_db():
    # register models on Base.metadata
    import database.models  # noqa: F401

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ping_db() -> bool:
    """Run a trivial query; used by the readiness probe."""
    async with db_engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return True


async def seed_admin_users(emails: list[str]) -> int:
    """
    Ensure every allowlisted email has an admin_users row.

    Returns:
        Number of rows created
    """
    from database.models.admin_users import AdminUser

    if not emails:
        return 0

    async with AsyncSessionLocal() as session:
        result = await session.execute(
            select(AdminUser.email).where(AdminUser.email.in_(emails))
        )
        existing = set(result.scalars().all())
        created = 0
        for email in emails:
            if email not in existing:
                session.add(AdminUser(email=email))
                created += 1
        await session.commit()

    if created:
        logger.info(f"Seeded {created} admin allowlist entries")
    return created


# Function to close database connections
async def close_db():
    """Close database engine and connections."""
    await db_engine.dispose()
