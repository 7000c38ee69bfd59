# ============================================================
# SCAN PIPELINE - КОНВЕЙЕР ПРОВЕРОК
# ============================================================
# Порядок этапов (от дешёвого к дорогому):
# 1. Жёсткие стоп-слова        - локально, без сети
# 2. Проверка профиля          - пока профиль не проверен (один раз)
# 3. Данные по ссылке t.me     - только дополняет контекст
# 4. AI проверка текста        - если текст длиннее 2 символов
# 5. AI проверка картинки      - если есть фото
#
# Первое же нарушение останавливает конвейер: дальнейшие
# этапы (и их запросы к AI) не выполняются.
# ============================================================

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Sequence

from aiogram.types import Message

from antiad_bot.services.ai_classifier import ContentClassifier, TEXT_POLICY_PROMPT
from antiad_bot.services.moderation.keyword_filter import KeywordFilter
from antiad_bot.services.moderation.link_resolver import LinkResolver
from antiad_bot.services.moderation.photo_judge import PhotoJudge
from antiad_bot.services.moderation.profile_auditor import ProfileAuditor
from antiad_bot.services.moderation.scan_context import ScanContext, ScanContextBuilder
from antiad_bot.services.moderation.types import (
    REASON_IMAGE,
    REASON_TEXT,
    StateUpdate,
    UserState,
    Verdict,
    keyword_reason,
)

logger = logging.getLogger(__name__)


@dataclass
class ScanRun:
    """Данные одного прогона конвейера по одному сообщению."""

    message: Message
    user_state: UserState
    context: ScanContext
    profile_checked: bool = field(default=False)


@dataclass(frozen=True)
class ScanOutcome:
    verdict: Verdict
    # profile_checked=True если на этом сообщении проверялся профиль
    state_update: Optional[StateUpdate] = None


Stage = Callable[[ScanRun], Awaitable[Optional[str]]]


class ScanPipeline:
    """
    Последовательная проверка сообщения.

    Args:
        keyword_filter: Жёсткие стоп-слова
        profile_auditor: Разовая проверка профиля
        link_resolver: Обогащение контекста данными канала
        classifier: AI проверка текста
        photo_judge: AI проверка картинок
        context_builder: Сборка текста из сообщения
    """

    def __init__(
        self,
        keyword_filter: KeywordFilter,
        profile_auditor: ProfileAuditor,
        link_resolver: LinkResolver,
        classifier: ContentClassifier,
        photo_judge: PhotoJudge,
        context_builder: Optional[ScanContextBuilder] = None,
    ):
        self._keyword_filter = keyword_filter
        self._profile_auditor = profile_auditor
        self._link_resolver = link_resolver
        self._classifier = classifier
        self._photo_judge = photo_judge
        self._context_builder = context_builder or ScanContextBuilder()

    @property
    def stages(self) -> Sequence[Stage]:
        return (
            self._keyword_stage,
            self._profile_stage,
            self._link_stage,
            self._text_stage,
            self._image_stage,
        )

    async def scan(self, message: Message, user_state: UserState) -> ScanOutcome:
        run = ScanRun(
            message=message,
            user_state=user_state,
            context=self._context_builder.build(message),
        )

        for stage in self.stages:
            reason = await stage(run)
            if reason:
                logger.info(f"[SCAN] 🚨 Нарушение user={user_state.user_id}: {reason}")
                return ScanOutcome(Verdict.hit(reason), self._state_update(run))

        return ScanOutcome(Verdict.clean(), self._state_update(run))

    @staticmethod
    def _state_update(run: ScanRun) -> Optional[StateUpdate]:
        if not run.profile_checked:
            return None
        return StateUpdate(profile_checked=True)

    # ============================================================
    # ЭТАПЫ
    # ============================================================

    async def _keyword_stage(self, run: ScanRun) -> Optional[str]:
        term = self._keyword_filter.find(run.context.text)
        return keyword_reason(term) if term else None

    async def _profile_stage(self, run: ScanRun) -> Optional[str]:
        if run.user_state.profile_checked:
            return None
        # Отмечаем до вызова: проверка считается сделанной при любом вердикте
        run.profile_checked = True
        return await self._profile_auditor.audit(run.message.from_user)

    async def _link_stage(self, run: ScanRun) -> Optional[str]:
        run.context = await self._link_resolver.enrich(run.context)
        return None

    async def _text_stage(self, run: ScanRun) -> Optional[str]:
        if not run.context.has_judgeable_text:
            return None
        if await self._classifier.classify_text(run.context.text, TEXT_POLICY_PROMPT):
            return REASON_TEXT
        return None

    async def _image_stage(self, run: ScanRun) -> Optional[str]:
        if not run.context.image_file_id:
            return None
        if await self._photo_judge.is_violation(run.context.image_file_id):
            return REASON_IMAGE
        return None
