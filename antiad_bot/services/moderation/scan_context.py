# ============================================================
# SCAN CONTEXT BUILDER - СБОРКА ТЕКСТА ДЛЯ ПРОВЕРКИ
# ============================================================
# Собирает всё, что нужно оценить по сообщению:
#   1. собственный текст/подпись пользователя (без метки)
#   2. [ReplyTo <отправитель>]: текст сообщения, на которое ответили
#   3. [Quote]: выделенная цитата
#   4. [ExternalSource]: <заголовок> - <содержимое> (ответ на сообщение из другого чата)
#
# Порядок фиксирован. AI видит только метки, поэтому метка - единственный
# признак того, что текст "прокинут" через ответ/цитату/внешний источник,
# а не написан самим пользователем.
#
# Картинка оценивается одна: фото сообщения, иначе фото внешнего источника.
# ============================================================

import logging
from dataclasses import dataclass, replace
from typing import List, Optional

from aiogram.types import Message

logger = logging.getLogger(__name__)

PHOTO_PLACEHOLDER = "[Photo]"
CONTACT_PLACEHOLDER = "[Contact]"
UNKNOWN_SOURCE = "Unknown"


@dataclass(frozen=True)
class ScanContext:
    """
    Что проверяем по сообщению.

    Attributes:
        text: Склеенный текст с метками источников
        image_file_id: file_id самого крупного размера фото (или None)
    """

    text: str
    image_file_id: Optional[str] = None

    def with_appendix(self, appendix: str) -> "ScanContext":
        """Новый контекст с дописанным текстом (данные LinkResolver)."""
        return replace(self, text=f"{self.text}{appendix}")

    @property
    def has_judgeable_text(self) -> bool:
        return len(self.text.strip()) > 2


def _largest_photo_id(photos) -> Optional[str]:
    # Telegram отдаёт размеры по возрастанию - последний самый крупный
    if not photos:
        return None
    return photos[-1].file_id


def _origin_title(origin) -> Optional[str]:
    """Заголовок чата из MessageOrigin (канал или группа)."""
    if origin is None:
        return None
    # MessageOriginChannel
    if hasattr(origin, 'chat') and origin.chat:
        return origin.chat.title
    # MessageOriginChat (анонимный админ группы)
    if hasattr(origin, 'sender_chat') and origin.sender_chat:
        return origin.sender_chat.title
    return None


def _reply_sender(reply: Message) -> str:
    title = _origin_title(reply.forward_origin)
    if title:
        return title
    if reply.sender_chat and reply.sender_chat.title:
        return reply.sender_chat.title
    if reply.from_user:
        return reply.from_user.first_name
    return UNKNOWN_SOURCE


def _media_placeholder(photo, contact) -> str:
    if photo:
        return PHOTO_PLACEHOLDER
    if contact:
        return CONTACT_PLACEHOLDER
    return ""


class ScanContextBuilder:
    """Строит ScanContext из aiogram Message."""

    def build(self, message: Message) -> ScanContext:
        segments: List[str] = [message.text or message.caption or ""]

        # ─────────────────────────────────────────────────────────
        # Ответ на сообщение
        # ─────────────────────────────────────────────────────────
        reply = message.reply_to_message
        if reply is not None:
            reply_text = reply.text or reply.caption or _media_placeholder(reply.photo, reply.contact)
            sender = _reply_sender(reply)
            segments.append(f"[ReplyTo {sender}]: {reply_text}")
            logger.debug(f"[SCAN_CONTEXT] Ответ на сообщение от: {sender}")

        # ─────────────────────────────────────────────────────────
        # Цитата (выделенный фрагмент)
        # ─────────────────────────────────────────────────────────
        if message.quote is not None and message.quote.text:
            segments.append(f"[Quote]: {message.quote.text}")

        # ─────────────────────────────────────────────────────────
        # Ответ на сообщение из другого чата
        # ─────────────────────────────────────────────────────────
        external = message.external_reply
        image_file_id = _largest_photo_id(message.photo)
        if external is not None:
            title = _origin_title(external.origin)
            if not title and external.chat:
                title = external.chat.title
            title = title or UNKNOWN_SOURCE
            # Текст внешнего сообщения Bot API не передаёт - только медиа
            external_text = _media_placeholder(external.photo, external.contact)
            segments.append(f"[ExternalSource]: {title} - {external_text}")
            logger.debug(f"[SCAN_CONTEXT] Внешний источник: {title}")

            if image_file_id is None:
                image_file_id = _largest_photo_id(external.photo)

        return ScanContext(text="\n".join(segments), image_file_id=image_file_id)
