# ============================================================
# MODERATION ENGINE - РЕШЕНИЕ ПО ОДНОМУ СООБЩЕНИЮ
# ============================================================
# decide() ничего не пишет в БД и не вызывает действий в чате.
# Он возвращает Decision, а обработчик:
#   - применяет действие (ALLOW / SILENCE / BLOCK)
#   - сохраняет Decision.state_update
#
# Порядок проверок:
#   нет автора              -> ALLOW (без изменений)
#   администратор           -> ALLOW
#   группа не активирована  -> ALLOW
#   контакт (визитка)       -> BLOCK
#   ночной режим            -> SILENCE
#   доверенный без аудита   -> ALLOW, счётчик +1
#   конвейер проверок       -> BLOCK или ALLOW со счётчиком
# ============================================================

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from aiogram.types import Message

from antiad_bot.services.moderation.night_gate import DEFAULT_TZ_OFFSET, current_hour, is_silenced
from antiad_bot.services.moderation.pipeline import ScanPipeline
from antiad_bot.services.moderation.trust import TrustStateMachine
from antiad_bot.services.moderation.types import (
    REASON_CONTACT_CARD,
    Decision,
    GroupConfig,
    UserState,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ModerationEngine:
    """
    Args:
        pipeline: Конвейер проверок
        trust: Машина состояний доверия
        tz_offset_hours: Смещение часового пояса для ночного режима
        clock: Источник текущего времени (подменяется в тестах)
    """

    def __init__(
        self,
        pipeline: ScanPipeline,
        trust: TrustStateMachine,
        tz_offset_hours: int = DEFAULT_TZ_OFFSET,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._pipeline = pipeline
        self._trust = trust
        self._tz_offset_hours = tz_offset_hours
        self._clock = clock

    async def decide(
        self,
        message: Message,
        sender_is_admin: bool,
        group_config: Optional[GroupConfig],
        user_state: Optional[UserState],
    ) -> Decision:
        user = message.from_user
        if user is None:
            logger.warning(f"[ENGINE] Сообщение {message.message_id} без автора, пропускаем")
            return Decision.allow()

        if sender_is_admin:
            return Decision.allow()

        if group_config is None:
            logger.warning(f"[ENGINE] ⚠️ Группа {message.chat.id} не активирована, используйте /addgroup")
            return Decision.allow()

        # Визитка блокируется всегда, даже ночью
        if message.contact is not None:
            logger.info(f"[ENGINE] 📇 Контакт от {user.id} в {message.chat.id}")
            return Decision.block(REASON_CONTACT_CARD)

        hour = current_hour(self._tz_offset_hours, self._clock())
        if is_silenced(group_config.night_mode_enabled, hour):
            logger.info(f"[ENGINE] 🌙 Ночной режим ({hour}:00), удаляем {message.message_id}")
            return Decision.silence()

        state = user_state or UserState(user_id=user.id)

        if self._trust.should_skip_scan(state, message):
            return Decision.allow(self._trust.after_skipped_message(state))

        outcome = await self._pipeline.scan(message, state)
        if outcome.verdict.violated:
            return Decision.block(outcome.verdict.reason, outcome.state_update)

        return Decision.allow(self._trust.after_clean_message(state).merge(outcome.state_update))
