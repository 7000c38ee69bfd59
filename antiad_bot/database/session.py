from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
import logging

from antiad_bot.config import DATABASE_URL, DB_POOL_SIZE, DB_MAX_OVERFLOW
from antiad_bot.database.models import Base

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict:
    # SQLite (локальный запуск) не поддерживает настройки пула
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": DB_POOL_SIZE,
        "max_overflow": DB_MAX_OVERFLOW,
        "pool_pre_ping": True,  # Проверка соединения перед использованием
        "pool_recycle": 3600,   # Переподключение каждый час
    }


# создаем движок и фабрику сессий
engine = create_async_engine(DATABASE_URL, echo=False, **_engine_kwargs(DATABASE_URL))
async_session = async_sessionmaker(engine, expire_on_commit=False)


async def init_db():
    """Инициализация базы данных"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("✅ База данных инициализирована")
