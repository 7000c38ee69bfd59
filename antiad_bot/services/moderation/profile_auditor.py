# ============================================================
# PROFILE AUDITOR - РАЗОВАЯ ПРОВЕРКА ПРОФИЛЯ
# ============================================================
# Один раз за всё время для каждого пользователя (пока profile_checked=False):
# 1. Аватар -> AI проверка картинки
# 2. Если аватар чистый: "Nick: имя фамилия\nBio: bio" -> AI проверка текста
#
# После проверки пользователь переходит NEW -> PROBATION независимо от
# результата: вердикт влияет только на текущее сообщение.
# ============================================================

import logging
from typing import Optional

from aiogram.types import User

from antiad_bot.services.ai_classifier import ContentClassifier, PROFILE_POLICY_PROMPT
from antiad_bot.services.moderation.photo_judge import PhotoJudge
from antiad_bot.services.moderation.types import REASON_AVATAR, REASON_BIO
from antiad_bot.services.telegram_gateway import TelegramGateway

logger = logging.getLogger(__name__)


def build_profile_text(user: User, bio: str) -> str:
    """Текст профиля для AI: имя и bio."""
    return f"Nick: {user.first_name} {user.last_name or ''}\nBio: {bio}"


class ProfileAuditor:
    """
    Проверка аватара и bio нового пользователя.

    Args:
        gateway: Доступ к Telegram (аватар, bio)
        classifier: AI классификатор
        photo_judge: Проверка картинок (по умолчанию строится из gateway + classifier)
    """

    def __init__(
        self,
        gateway: TelegramGateway,
        classifier: ContentClassifier,
        photo_judge: Optional[PhotoJudge] = None,
    ):
        self._gateway = gateway
        self._classifier = classifier
        self._photo_judge = photo_judge or PhotoJudge(gateway, classifier)

    async def audit(self, user: User) -> Optional[str]:
        """
        Returns:
            Причина нарушения ("头像违规" / "Bio广告") или None
        """
        logger.info(f"[PROFILE] 👤 Первая проверка профиля: {user.id}")

        avatar_file_id = await self._gateway.get_avatar(user.id)
        if avatar_file_id and await self._photo_judge.is_violation(avatar_file_id):
            logger.info(f"[PROFILE] 📸 Аватар с нарушением: {user.id}")
            return REASON_AVATAR

        bio = await self._gateway.get_user_bio(user.id)
        profile_text = build_profile_text(user, bio)
        if await self._classifier.classify_text(profile_text, PROFILE_POLICY_PROMPT):
            logger.info(f"[PROFILE] 📋 Реклама в bio: {user.id}")
            return REASON_BIO

        return None
