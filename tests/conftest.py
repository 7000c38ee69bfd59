import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest

# КРИТИЧНО: Устанавливаем BOT_TOKEN и DATABASE_URL ДО импорта antiad_bot.config
# чтобы избежать ошибки "BOT_TOKEN не установлен!"
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("BOT_TOKEN", "123456:TEST-TOKEN")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

# Гарантируем, что пакет antiad_bot доступен для импортов из тестов
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from aiogram import Bot
from aiogram.types import Message
from fakeredis import aioredis as fakeredis_aioredis
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from antiad_bot.database.models import Base
from antiad_bot.services.ai_classifier import ContentClassifier
from antiad_bot.services.telegram_gateway import TelegramGateway


@pytest.fixture
async def db_session():
    """Изолированная in-memory SQLite база на каждый тест."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


@pytest.fixture
async def fake_redis():
    """fakeredis вместо настоящего Redis."""
    client = fakeredis_aioredis.FakeRedis(decode_responses=True)
    try:
        yield client
    finally:
        await client.flushall()
        await client.aclose()


@pytest.fixture
def bot_mock():
    """Async mock for aiogram Bot."""
    bot = AsyncMock(spec=Bot)
    bot.send_message = AsyncMock()
    bot.delete_message = AsyncMock()
    bot.get_chat = AsyncMock()
    bot.get_file = AsyncMock()
    bot.get_user_profile_photos = AsyncMock()
    bot.restrict_chat_member = AsyncMock()
    bot.unban_chat_member = AsyncMock()
    bot.session = AsyncMock()
    bot.token = "123456:TEST-TOKEN"
    bot.id = 424242
    return bot


@pytest.fixture
def gateway_mock():
    """TelegramGateway с самыми мягкими ответами по умолчанию."""
    gateway = AsyncMock(spec=TelegramGateway)
    gateway.delete_message.return_value = True
    gateway.restrict_send.return_value = True
    gateway.unrestrict.return_value = True
    gateway.send_message.return_value = 555
    gateway.get_chat_info.return_value = None
    gateway.get_user_bio.return_value = ""
    gateway.get_avatar.return_value = None
    gateway.resolve_file.return_value = None
    return gateway


@pytest.fixture
def classifier_mock():
    """ContentClassifier, который по умолчанию ничего не находит."""
    classifier = AsyncMock(spec=ContentClassifier)
    classifier.enabled = True
    classifier.classify_text.return_value = False
    classifier.classify_image.return_value = False
    return classifier


@pytest.fixture
def photo_factory() -> Callable[..., List[Dict[str, Any]]]:
    """Размеры фото в порядке возрастания, как их отдаёт Telegram."""

    def _factory(prefix: str = "photo") -> List[Dict[str, Any]]:
        return [
            {"file_id": f"{prefix}_small", "file_unique_id": f"{prefix}_s", "width": 90, "height": 90},
            {"file_id": f"{prefix}_large", "file_unique_id": f"{prefix}_l", "width": 1280, "height": 1280},
        ]

    return _factory


@pytest.fixture
def message_factory() -> Callable[..., Message]:
    """Factory for aiogram Message instances."""

    def _factory(
        *,
        message_id: int = 1,
        user_id: Optional[int] = 100,
        chat_id: int = -1000,
        text: Optional[str] = "hello",
        chat_type: str = "supergroup",
        first_name: str = "Test",
        last_name: Optional[str] = None,
        **extra: Any,
    ) -> Message:
        payload: Dict[str, Any] = {
            "message_id": message_id,
            "date": datetime.now(timezone.utc),
            "chat": {"id": chat_id, "type": chat_type, "title": "Test chat"},
        }
        if user_id is not None:
            payload["from"] = {"id": user_id, "is_bot": False, "first_name": first_name}
            if last_name:
                payload["from"]["last_name"] = last_name
        if text is not None:
            payload["text"] = text
        payload.update(extra)
        return Message.model_validate(payload)

    return _factory
