# ============================================================
# LINK RESOLVER - ДАННЫЕ КАНАЛА ПО ССЫЛКЕ t.me
# ============================================================
# Если в тексте есть ссылка t.me/<handle>, получаем title/description
# канала или группы и дописываем их в контекст. Сам этап никогда
# не блокирует: он только даёт AI больше данных на следующем шаге.
#
# Ответы getChat кэшируются в Redis (если он есть), чтобы одна и та же
# ссылка в спам-волне не дёргала API на каждое сообщение.
# ============================================================

import logging
import re
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from antiad_bot.services.moderation.scan_context import ScanContext
from antiad_bot.services.telegram_gateway import TelegramGateway

logger = logging.getLogger(__name__)

# t.me/<handle> или telegram.me/<handle>, handle от 5 символов
TELEGRAM_HANDLE_PATTERN = re.compile(r"(?:t\.me|telegram\.me)/([a-zA-Z0-9_]{5,})")

# Ключ кэша и время жизни (1 час)
CACHE_KEY_PREFIX = "antiad:linked_chat:"
CACHE_TTL_SECONDS = 3600


def extract_handle(text: str) -> Optional[str]:
    """Первый username из ссылки t.me в тексте."""
    match = TELEGRAM_HANDLE_PATTERN.search(text or "")
    return match.group(1) if match else None


class LinkResolver:
    def __init__(
        self,
        gateway: TelegramGateway,
        redis: Optional[Redis] = None,
        cache_ttl: int = CACHE_TTL_SECONDS,
    ):
        self._gateway = gateway
        self._redis = redis
        self._cache_ttl = cache_ttl

    async def enrich(self, context: ScanContext) -> ScanContext:
        """Контекст с блоком [LinkedChat] или тот же контекст, если ссылки нет/не удалось."""
        handle = extract_handle(context.text)
        if not handle:
            return context

        logger.info(f"[LINK] 🔗 Найдена ссылка на TG: {handle}")
        linked_info = await self._lookup(handle)
        if not linked_info:
            return context

        logger.info(f"[LINK] 📊 Получены данные чата: {handle}")
        return context.with_appendix(f"\n\n[LinkedChat]\n{linked_info}")

    async def _lookup(self, handle: str) -> Optional[str]:
        cache_key = f"{CACHE_KEY_PREFIX}{handle.lower()}"

        cached = await self._cache_get(cache_key)
        if cached:
            return cached

        chat_info = await self._gateway.get_chat_info(handle)
        if chat_info is None:
            return None

        linked_info = chat_info.as_context()
        await self._cache_set(cache_key, linked_info)
        return linked_info

    async def _cache_get(self, key: str) -> Optional[str]:
        if self._redis is None:
            return None
        try:
            return await self._redis.get(key)
        except RedisError as e:
            logger.warning(f"[LINK] Redis недоступен при чтении кэша: {e}")
            return None

    async def _cache_set(self, key: str, value: str) -> None:
        if self._redis is None:
            return
        try:
            await self._redis.set(key, value, ex=self._cache_ttl)
        except RedisError as e:
            logger.warning(f"[LINK] Redis недоступен при записи кэша: {e}")
