import asyncio
import os
import sys

# Настройка путей для запуска из любой директории
current_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(current_dir)
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from aiogram import Bot, Dispatcher
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.fsm.storage.redis import RedisStorage
from aiogram.client.session.aiohttp import AiohttpSession

# ВАЖНО: сначала загружаем конфиг (.env), потом инициализируем Redis
from antiad_bot.config import (
    ADMIN_IDS,
    AI_API_KEY,
    AI_API_URL,
    AI_MODEL,
    AI_TIMEOUT,
    AI_VISION_MODEL,
    BOT_TOKEN,
    LOG_LEVEL,
    REDIS_URL,
    TZ_OFFSET,
)
from antiad_bot.services.redis_conn import redis, test_connection

from antiad_bot.database.session import async_session, init_db
from antiad_bot.middleware.db_session import DbSessionMiddleware
from antiad_bot.handlers import handlers_router

from antiad_bot.services.admin_access import AdminRegistry
from antiad_bot.services.ai_classifier import ContentClassifier
from antiad_bot.services.background_tasks import BackgroundTasks
from antiad_bot.services.enforcement import EnforcementAction
from antiad_bot.services.moderation import (
    KeywordFilter,
    LinkResolver,
    ModerationEngine,
    PhotoJudge,
    ProfileAuditor,
    ScanPipeline,
    TrustStateMachine,
)
from antiad_bot.services.telegram_gateway import TelegramGateway

# Логгер
import logging

# Настройка логгера
logger = logging.getLogger()
logger.setLevel(getattr(logging, LOG_LEVEL.upper(), logging.INFO))

# Создаем обработчик для консоли
console_handler = logging.StreamHandler()
console_formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
console_handler.setFormatter(console_formatter)
logger.addHandler(console_handler)

# Отключаем встроенное логирование апдейтов aiogram
for logger_name in ("aiogram", "aiogram.dispatcher", "aiogram.event"):
    log = logging.getLogger(logger_name)
    log.addHandler(console_handler)
    log.setLevel(logging.ERROR)  # Только ошибки
    log.propagate = False

# Сколько ждать фоновые задачи при остановке (уведомления живут 10 секунд)
SHUTDOWN_DRAIN_TIMEOUT = 15


def build_engine(gateway: TelegramGateway, classifier: ContentClassifier, cache) -> ModerationEngine:
    """Собирает движок модерации из сервисов."""
    photo_judge = PhotoJudge(gateway, classifier)
    pipeline = ScanPipeline(
        keyword_filter=KeywordFilter(),
        profile_auditor=ProfileAuditor(gateway, classifier, photo_judge),
        link_resolver=LinkResolver(gateway, cache),
        classifier=classifier,
        photo_judge=photo_judge,
    )
    return ModerationEngine(pipeline=pipeline, trust=TrustStateMachine(), tz_offset_hours=TZ_OFFSET)


# главная асинхронная функция, запускающая бота
async def main():
    logging.info("🤖 Запуск антиреклама-бота...")

    # Если Redis недоступен - MemoryStorage и работа без кэша
    redis_available = await test_connection()
    if redis_available:
        storage = RedisStorage.from_url(REDIS_URL)
        cache = redis
    else:
        storage = MemoryStorage()
        cache = None
        logging.info("ℹ️ Используется MemoryStorage, кэш данных каналов отключён")

    # Создаём таблицы (если их нет); схема в проде ведётся через alembic
    await init_db()

    session = AiohttpSession(timeout=60.0)
    bot = Bot(token=BOT_TOKEN, session=session)

    gateway = TelegramGateway(bot)
    classifier = ContentClassifier(
        api_url=AI_API_URL,
        api_key=AI_API_KEY,
        model=AI_MODEL,
        vision_model=AI_VISION_MODEL,
        timeout_seconds=AI_TIMEOUT,
    )
    if not classifier.enabled:
        logging.warning("⚠️ AI_API_URL/AI_API_KEY не заданы - AI проверки отключены")

    background = BackgroundTasks()

    # Зависимости попадают в хендлеры по имени аргумента
    dp = Dispatcher(
        storage=storage,
        engine=build_engine(gateway, classifier, cache),
        enforcement=EnforcementAction(gateway, background),
        gateway=gateway,
        admins=AdminRegistry(ADMIN_IDS),
    )
    dp.update.middleware(DbSessionMiddleware(async_session))
    dp.include_router(handlers_router)

    try:
        logging.info("✅ Бот запущен, начинаем polling")
        await dp.start_polling(bot, allowed_updates=["message", "edited_message"])
    finally:
        await background.wait_all(timeout=SHUTDOWN_DRAIN_TIMEOUT)
        await bot.session.close()
        await storage.close()
        await redis.aclose()
        logging.info("🛑 Бот остановлен")


if __name__ == "__main__":
    asyncio.run(main())
