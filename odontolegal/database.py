import asyncio
import logging
from typing import Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from odontolegal.config import settings

logger = logging.getLogger(__name__)

engine = create_async_engine(str(settings.SQLALCHEMY_DATABASE_URI), echo=False, pool_pre_ping=True)
AsyncSessionLocal = sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

Base = declarative_base()

# Dependency
async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


class DatabaseSupervisor:
    """Keeps the connection pool alive for the lifetime of the app.

    Pings the store every ``interval`` seconds. When a ping fails the pool is
    disposed and the supervisor retries every ``reconnect_delay`` seconds,
    without limit, until the store answers again.
    """

    def __init__(
        self,
        db_engine: AsyncEngine,
        interval: float = settings.DB_HEALTHCHECK_INTERVAL_SECONDS,
        reconnect_delay: float = settings.DB_RECONNECT_DELAY_SECONDS,
    ):
        self.engine = db_engine
        self.interval = interval
        self.reconnect_delay = reconnect_delay
        self.connected = False
        self._task: Optional[asyncio.Task] = None

    async def ping(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError) as e:
            logger.warning(f"Database ping failed: {e}")
            return False

    async def wait_until_connected(self) -> int:
        """Retry until a ping succeeds. Returns the number of failed attempts."""
        attempts = 0
        while not await self.ping():
            attempts += 1
            self.connected = False
            logger.warning(
                f"Database unavailable, reconnecting in {self.reconnect_delay}s (attempt {attempts})"
            )
            await self.engine.dispose()
            await asyncio.sleep(self.reconnect_delay)
        if attempts or not self.connected:
            logger.info("Database connected")
        self.connected = True
        return attempts

    async def run(self):
        while True:
            await self.wait_until_connected()
            await asyncio.sleep(self.interval)

    def start(self):
        if self._task is None:
            self._task = asyncio.create_task(self.run())

    async def stop(self):
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
