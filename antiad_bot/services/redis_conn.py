from redis.asyncio import Redis
from redis.exceptions import RedisError
import logging

from antiad_bot.config import REDIS_URL

logger = logging.getLogger(__name__)

# Один клиент на процесс: кэш LinkResolver (FSM storage aiogram создаёт свой)
redis = Redis.from_url(REDIS_URL, decode_responses=True)


async def test_connection() -> bool:
    try:
        await redis.ping()
        logger.info(f"✅ Соединение с Redis ({REDIS_URL}) установлено")
        return True
    except (RedisError, OSError) as e:
        logger.error(f"❌ Ошибка подключения к Redis ({REDIS_URL}): {e}")
        return False
