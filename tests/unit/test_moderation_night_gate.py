"""
Тесты ночного режима.

Покрывает:
- Границы окна 22:00-09:00
- Выключенный ночной режим
- Перевод UTC в часовой пояс группы
"""

from datetime import datetime, timezone

import pytest

from antiad_bot.services.moderation.night_gate import current_hour, is_silenced


@pytest.mark.parametrize("hour", [22, 23, 0, 3, 8])
def test_night_hours_are_silenced(hour):
    assert is_silenced(True, hour) is True


@pytest.mark.parametrize("hour", [9, 12, 18, 21])
def test_day_hours_are_not_silenced(hour):
    assert is_silenced(True, hour) is False


def test_disabled_night_mode_never_silences():
    assert not any(is_silenced(False, hour) for hour in range(24))


def test_current_hour_applies_offset():
    # 14:00 UTC = 22:00 UTC+8
    now = datetime(2024, 5, 1, 14, 0, tzinfo=timezone.utc)
    assert current_hour(8, now) == 22


def test_current_hour_wraps_past_midnight():
    # 20:00 UTC = 04:00 следующего дня UTC+8
    now = datetime(2024, 5, 1, 20, 30, tzinfo=timezone.utc)
    assert current_hour(8, now) == 4


def test_current_hour_negative_offset():
    now = datetime(2024, 5, 1, 3, 0, tzinfo=timezone.utc)
    assert current_hour(-5, now) == 22


def test_naive_datetime_is_treated_as_utc():
    naive = datetime(2024, 5, 1, 1, 0)
    assert current_hour(8, naive) == 9
