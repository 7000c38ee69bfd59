# ============================================================
# NIGHT GATE - НОЧНОЙ РЕЖИМ ТИШИНЫ
# ============================================================
# С 22:00 до 09:00 (по настроенному часовому поясу) все сообщения
# не-админов в группе с включённым ночным режимом молча удаляются.
# Это не нарушение: без мута, без уведомления, без обновления доверия.
# ============================================================

from datetime import datetime, timedelta, timezone
from typing import Optional

# Начало ночи (включительно) и конец ночи (не включительно)
NIGHT_START_HOUR = 22
NIGHT_END_HOUR = 9

# Часовой пояс по умолчанию - UTC+8
DEFAULT_TZ_OFFSET = 8


def current_hour(tz_offset_hours: int = DEFAULT_TZ_OFFSET, now: Optional[datetime] = None) -> int:
    """
    Возвращает текущий час в часовом поясе UTC+tz_offset_hours.

    Args:
        tz_offset_hours: Смещение от UTC в часах
        now: Момент времени (aware datetime); по умолчанию - сейчас
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        # naive datetime считаем UTC
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone(timedelta(hours=tz_offset_hours))).hour


def is_silenced(night_mode_enabled: bool, hour: int) -> bool:
    """True если сейчас ночь и в группе включён ночной режим."""
    if not night_mode_enabled:
        return False
    return hour >= NIGHT_START_HOUR or hour < NIGHT_END_HOUR
