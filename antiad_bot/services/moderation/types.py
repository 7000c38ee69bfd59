# ============================================================
# ТИПЫ ДВИЖКА МОДЕРАЦИИ
# ============================================================
# Значения, которыми обмениваются этапы движка:
# - GroupConfig / UserState: снимки записей из БД (читаются заново
#   на каждое сообщение, в памяти процесса не кэшируются)
# - StateUpdate: частичное обновление UserState, которое пишет вызывающий
# - Verdict: итог конвейера сканирования
# - Decision: итог decide() для транспортного слоя
# ============================================================

import enum
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional, Tuple

# Порог сообщений для получения доверия
TRUST_THRESHOLD = 10
# Значения, которые выставляет /unban
UNBAN_MESSAGE_COUNT = 100

# Причины блокировки (показываются в уведомлении в группе)
REASON_CONTACT_CARD = "发送名片"
REASON_AVATAR = "头像违规"
REASON_BIO = "Bio广告"
REASON_TEXT = "文本内容"
REASON_IMAGE = "图片内容"


def keyword_reason(term: str) -> str:
    """Причина для срабатывания жёсткого стоп-слова."""
    return f"硬关键词[{term}]"


class Action(str, enum.Enum):
    # Пропустить сообщение
    ALLOW = "ALLOW"
    # Молча удалить (ночной режим), без наказания
    SILENCE = "SILENCE"
    # Ограничить автора + удалить + уведомить
    BLOCK = "BLOCK"


class TrustLevel(str, enum.Enum):
    NEW = "NEW"
    PROBATION = "PROBATION"
    TRUSTED = "TRUSTED"


@dataclass(frozen=True)
class GroupConfig:
    chat_id: int
    night_mode_enabled: bool


@dataclass(frozen=True)
class UserState:
    user_id: int
    message_count: int = 0
    trusted: bool = False
    profile_checked: bool = False

    @property
    def level(self) -> TrustLevel:
        if self.trusted:
            return TrustLevel.TRUSTED
        if self.profile_checked:
            return TrustLevel.PROBATION
        return TrustLevel.NEW


@dataclass(frozen=True)
class StateUpdate:
    """
    Частичное обновление состояния пользователя.

    None в поле означает "не менять". Пустое обновление ничего не пишет.
    """

    message_count: Optional[int] = None
    trusted: Optional[bool] = None
    profile_checked: Optional[bool] = None

    def as_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def is_empty(self) -> bool:
        return not self.as_dict()

    def merge(self, other: Optional["StateUpdate"]) -> "StateUpdate":
        """Объединяет два обновления, поля other имеют приоритет."""
        if other is None:
            return self
        return replace(self, **other.as_dict())


@dataclass(frozen=True)
class Verdict:
    violated: bool
    reasons: Tuple[str, ...] = ()

    @classmethod
    def clean(cls) -> "Verdict":
        return cls(violated=False)

    @classmethod
    def hit(cls, reason: str) -> "Verdict":
        return cls(violated=True, reasons=(reason,))

    @property
    def reason(self) -> str:
        return ", ".join(self.reasons)


@dataclass(frozen=True)
class Decision:
    action: Action
    reason: Optional[str] = None
    state_update: Optional[StateUpdate] = None

    @classmethod
    def allow(cls, state_update: Optional[StateUpdate] = None) -> "Decision":
        return cls(action=Action.ALLOW, state_update=state_update)

    @classmethod
    def silence(cls) -> "Decision":
        return cls(action=Action.SILENCE)

    @classmethod
    def block(cls, reason: str, state_update: Optional[StateUpdate] = None) -> "Decision":
        return cls(action=Action.BLOCK, reason=reason, state_update=state_update)
