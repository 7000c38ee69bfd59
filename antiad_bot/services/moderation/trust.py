# ============================================================
# TRUST STATE MACHINE - СИСТЕМА ДОВЕРИЯ
# ============================================================
# Состояния пользователя:
#   NEW        - профиль ещё не проверялся
#   PROBATION  - профиль проверен, доверия пока нет
#   TRUSTED    - 10+ чистых сообщений (или /unban)
#
# Доверенные пользователи не сканируются (экономия на AI), но
# сообщения со ссылкой/пересылкой/фото проверяются выборочно
# с вероятностью 30%.
# ============================================================

import logging
import random
from typing import Callable, Optional

from aiogram.types import Message

from antiad_bot.services.moderation.types import (
    StateUpdate,
    TRUST_THRESHOLD,
    TrustLevel,
    UserState,
)

logger = logging.getLogger(__name__)

# Вероятность выборочной проверки доверенного пользователя
AUDIT_PROBABILITY = 0.3

# Типы entities, которые считаются ссылками
LINK_ENTITY_TYPES = {"url", "text_link"}


def _system_random() -> Callable[[], float]:
    # SystemRandom берёт энтропию ОС на каждый вызов - без общего seed процесса
    return random.SystemRandom().random


def has_audit_trigger(message: Message) -> bool:
    """Есть ли в сообщении ссылка, пересылка или фото."""
    entities = list(message.entities or []) + list(message.caption_entities or [])
    has_link = any(entity.type in LINK_ENTITY_TYPES for entity in entities)
    is_forward = message.forward_origin is not None
    has_photo = bool(message.photo)
    return has_link or is_forward or has_photo


class TrustStateMachine:
    """
    Решает, пропускать ли сканирование, и считает переходы доверия.

    Args:
        rng: Источник равномерных чисел в [0, 1). В тестах подменяется
             на lambda: 0.1 / lambda: 0.9 чтобы проверить обе ветки.
        threshold: Сколько чистых сообщений нужно для доверия
        audit_probability: Вероятность выборочной проверки
    """

    def __init__(
        self,
        rng: Optional[Callable[[], float]] = None,
        threshold: int = TRUST_THRESHOLD,
        audit_probability: float = AUDIT_PROBABILITY,
    ):
        self._rng = rng or _system_random()
        self._threshold = threshold
        self._audit_probability = audit_probability

    def should_skip_scan(self, state: UserState, message: Message) -> bool:
        if state.level is not TrustLevel.TRUSTED:
            return False

        if has_audit_trigger(message) and self._rng() < self._audit_probability:
            logger.info(f"[TRUST] 🎲 Выборочная проверка доверенного: {state.user_id}")
            return False

        return True

    def after_skipped_message(self, state: UserState) -> StateUpdate:
        """Доверенный пропущен без сканирования - только счётчик."""
        return StateUpdate(message_count=state.message_count + 1)

    def after_clean_message(self, state: UserState) -> StateUpdate:
        """
        Сообщение прошло сканирование без нарушений.

        Счётчик +1; при достижении порога - повышение до TRUSTED.
        """
        new_count = state.message_count + 1
        if new_count >= self._threshold and not state.trusted:
            logger.info(f"[TRUST] 🎖️ Пользователь {state.user_id} стал доверенным ({new_count} сообщений)")
            return StateUpdate(message_count=new_count, trusted=True)
        return StateUpdate(message_count=new_count)
