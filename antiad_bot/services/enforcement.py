# ============================================================
# ENFORCEMENT - ПРИМЕНЕНИЕ РЕШЕНИЯ В ЧАТЕ
# ============================================================
# BLOCK:
#   1. restrict (запрет писать) и удаление сообщения - параллельно,
#      ошибка одного не отменяет другое
#   2. уведомление в группу
#   3. через 10 секунд уведомление удаляется (фоновая задача)
#
# SILENCE:
#   только удаление сообщения, без уведомления и наказания
# ============================================================

import asyncio
import logging
from typing import Optional

from antiad_bot.services.background_tasks import BackgroundTasks
from antiad_bot.services.telegram_gateway import TelegramGateway

logger = logging.getLogger(__name__)

# Через сколько секунд удалять уведомление о блокировке
NOTIFICATION_TTL_SECONDS = 10


def format_block_notice(user_id: int, reason: str) -> str:
    """Текст уведомления в группе (HTML)."""
    return f'🚫 <a href="tg://user?id={user_id}">{user_id}</a>: AI 审核为广告 ({reason})'


class EnforcementAction:
    """
    Args:
        gateway: Доступ к Telegram API
        background: Реестр фоновых задач (отложенное удаление уведомлений)
        notification_ttl: Время жизни уведомления в секундах
    """

    def __init__(
        self,
        gateway: TelegramGateway,
        background: BackgroundTasks,
        notification_ttl: float = NOTIFICATION_TTL_SECONDS,
    ):
        self._gateway = gateway
        self._background = background
        self._notification_ttl = notification_ttl

    async def execute_block(self, chat_id: int, user_id: int, message_id: int, reason: str) -> Optional[int]:
        """
        Returns:
            message_id уведомления или None если отправить не удалось
        """
        logger.info(f"[ENFORCE] 🚫 Блокировка user={user_id} chat={chat_id}: {reason}")

        restricted, deleted = await asyncio.gather(
            self._gateway.restrict_send(chat_id, user_id),
            self._gateway.delete_message(chat_id, message_id),
            return_exceptions=True,
        )
        if restricted is not True:
            logger.warning(f"[ENFORCE] ⚠️ Ограничение user={user_id} не применено: {restricted!r}")
        if deleted is not True:
            logger.warning(f"[ENFORCE] ⚠️ Сообщение {message_id} не удалено: {deleted!r}")

        notice_id = await self._gateway.send_message(chat_id, format_block_notice(user_id, reason))
        if notice_id is not None:
            self._background.spawn(
                self._delete_later(chat_id, notice_id),
                name=f"cleanup_notice_{chat_id}_{notice_id}",
            )
        return notice_id

    async def execute_silence(self, chat_id: int, message_id: int) -> bool:
        return await self._gateway.delete_message(chat_id, message_id)

    async def _delete_later(self, chat_id: int, message_id: int) -> None:
        await asyncio.sleep(self._notification_ttl)
        await self._gateway.delete_message(chat_id, message_id)
