# ============================================================
# TELEGRAM GATEWAY - ОБЁРТКА НАД aiogram Bot
# ============================================================
# Все вызовы Telegram API, которые нужны модерации, в одном месте.
#
# Ни один метод не бросает исключений наружу: ошибка API
# логируется и превращается в самый мягкий результат
# (False / None / пустая строка). Повторов нет.
# ============================================================

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.types import ChatPermissions

logger = logging.getLogger(__name__)

# Ошибки транспорта: API Telegram, сеть aiogram, таймауты
TRANSPORT_ERRORS = (TelegramAPIError, asyncio.TimeoutError)


@dataclass(frozen=True)
class ChatInfo:
    """Публичные данные канала/группы по ссылке t.me/<handle>."""

    title: str
    description: str

    def as_context(self) -> str:
        return f"Title: {self.title}\nDesc: {self.description}"


class TelegramGateway:
    """
    Операции платформы для движка модерации.

    Args:
        bot: Экземпляр aiogram Bot
    """

    def __init__(self, bot: Bot):
        self._bot = bot

    async def delete_message(self, chat_id: int, message_id: int) -> bool:
        try:
            await self._bot.delete_message(chat_id=chat_id, message_id=message_id)
            return True
        except TRANSPORT_ERRORS as e:
            logger.warning(f"[TG] Не удалось удалить сообщение {message_id} в {chat_id}: {e}")
            return False

    async def restrict_send(self, chat_id: int, user_id: int) -> bool:
        """Запрещает пользователю писать в группе (бессрочно)."""
        try:
            await self._bot.restrict_chat_member(
                chat_id=chat_id,
                user_id=user_id,
                permissions=ChatPermissions(can_send_messages=False),
            )
            return True
        except TRANSPORT_ERRORS as e:
            logger.error(f"[TG] Не удалось ограничить user={user_id} chat={chat_id}: {e}")
            return False

    async def unrestrict(self, chat_id: int, user_id: int) -> bool:
        """
        Возвращает пользователю права. Если restrict не сработал
        (например пользователь забанен) - пробуем unban.
        """
        permissions = ChatPermissions(
            can_send_messages=True,
            can_send_audios=True,
            can_send_documents=True,
            can_send_photos=True,
            can_send_videos=True,
            can_send_video_notes=True,
            can_send_voice_notes=True,
            can_send_polls=True,
            can_send_other_messages=True,
            can_add_web_page_previews=True,
            can_invite_users=True,
        )
        try:
            await self._bot.restrict_chat_member(chat_id=chat_id, user_id=user_id, permissions=permissions)
            return True
        except TRANSPORT_ERRORS as e:
            logger.warning(f"[TG] restrict не сработал для user={user_id}, пробуем unban: {e}")

        try:
            await self._bot.unban_chat_member(chat_id=chat_id, user_id=user_id, only_if_banned=False)
            return True
        except TRANSPORT_ERRORS as e:
            logger.error(f"[TG] Не удалось разблокировать user={user_id} chat={chat_id}: {e}")
            return False

    async def send_message(self, chat_id: int, text: str) -> Optional[int]:
        """Отправляет HTML сообщение, возвращает его message_id."""
        try:
            sent = await self._bot.send_message(
                chat_id=chat_id,
                text=text,
                parse_mode="HTML",
                disable_web_page_preview=True,
            )
            return sent.message_id
        except TRANSPORT_ERRORS as e:
            logger.error(f"[TG] Не удалось отправить сообщение в {chat_id}: {e}")
            return None

    async def get_chat_info(self, handle: str) -> Optional[ChatInfo]:
        """Публичные title/description канала или группы по username."""
        try:
            chat = await self._bot.get_chat(chat_id=f"@{handle}")
        except TRANSPORT_ERRORS as e:
            logger.warning(f"[TG] Не удалось получить данные чата @{handle}: {e}")
            return None
        return ChatInfo(
            title=chat.title or "Unknown",
            description=chat.description or chat.bio or "",
        )

    async def get_user_bio(self, user_id: int) -> str:
        try:
            chat = await self._bot.get_chat(chat_id=user_id)
        except TRANSPORT_ERRORS as e:
            logger.warning(f"[TG] Не удалось получить bio user={user_id}: {e}")
            return ""
        return chat.bio or ""

    async def get_avatar(self, user_id: int) -> Optional[str]:
        """file_id текущей аватарки (самый крупный размер) или None."""
        try:
            photos = await self._bot.get_user_profile_photos(user_id=user_id, limit=1)
        except TRANSPORT_ERRORS as e:
            logger.warning(f"[TG] Не удалось получить аватар user={user_id}: {e}")
            return None
        if not photos.total_count or not photos.photos:
            return None
        return photos.photos[0][-1].file_id

    async def resolve_file(self, file_id: str) -> Optional[str]:
        """Прямая ссылка на файл для передачи в AI."""
        try:
            file = await self._bot.get_file(file_id)
        except TRANSPORT_ERRORS as e:
            logger.warning(f"[TG] Не удалось получить файл {file_id[:20]}...: {e}")
            return None
        if not file.file_path:
            return None
        return self._bot.session.api.file_url(self._bot.token, file.file_path)
