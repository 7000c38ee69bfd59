# ============================================================
# ХРАНИЛИЩЕ СОСТОЯНИЙ ГРУПП И ПОЛЬЗОВАТЕЛЕЙ
# ============================================================
# Все функции принимают AsyncSession (одна сессия на апдейт,
# её открывает DbSessionMiddleware) и возвращают значения из
# antiad_bot.services.moderation.types, а не ORM объекты.
#
# Обновления делаются одним UPDATE запросом, поэтому конкурентные
# записи в одну строку сериализует сама БД (last-writer-wins).
# ============================================================

import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from antiad_bot.database.models import GroupSettings, UserTrustState, utcnow
from antiad_bot.services.moderation.types import (
    GroupConfig,
    StateUpdate,
    UserState,
    UNBAN_MESSAGE_COUNT,
)

logger = logging.getLogger(__name__)

# Поля UserState, которые разрешено обновлять
USER_STATE_FIELDS = {"message_count", "trusted", "profile_checked"}


def _to_user_state(row: UserTrustState) -> UserState:
    return UserState(
        user_id=row.user_id,
        message_count=row.message_count or 0,
        trusted=bool(row.trusted),
        profile_checked=bool(row.profile_checked),
    )


# ─────────────────────────────────────────────────────────
# ГРУППЫ
# ─────────────────────────────────────────────────────────

async def get_group_config(session: AsyncSession, chat_id: int) -> Optional[GroupConfig]:
    """Возвращает настройки группы или None если группа не активирована."""
    result = await session.execute(select(GroupSettings).where(GroupSettings.chat_id == chat_id))
    group = result.scalar_one_or_none()
    if group is None:
        return None
    return GroupConfig(chat_id=group.chat_id, night_mode_enabled=bool(group.night_mode))


async def activate_group(session: AsyncSession, chat_id: int, added_by: Optional[int] = None) -> GroupConfig:
    """
    Активирует защиту группы (INSERT если записи ещё нет).

    Повторная активация ничего не меняет - настройки ночного режима сохраняются.
    Новая группа создаётся с включённым ночным режимом.
    """
    if not chat_id:
        raise ValueError(f"Невалидный chat_id: {chat_id}")

    existing = await get_group_config(session, chat_id)
    if existing is not None:
        return existing

    session.add(GroupSettings(chat_id=chat_id, night_mode=True, added_by=added_by))
    try:
        await session.commit()
    except IntegrityError:
        # Параллельная активация той же группы - запись уже есть
        await session.rollback()
        logger.info(f"[STORAGE] Группа {chat_id} уже активирована параллельно")
        return await get_group_config(session, chat_id)

    logger.info(f"[STORAGE] Группа активирована: chat={chat_id} by={added_by}")
    return GroupConfig(chat_id=chat_id, night_mode_enabled=True)


async def set_night_mode(session: AsyncSession, chat_id: int, enabled: bool) -> bool:
    """
    Включает/выключает ночной режим.

    Returns:
        False если группа не активирована
    """
    result = await session.execute(
        update(GroupSettings)
        .where(GroupSettings.chat_id == chat_id)
        .values(night_mode=enabled, updated_at=utcnow())
    )
    await session.commit()
    return result.rowcount > 0


# ─────────────────────────────────────────────────────────
# ПОЛЬЗОВАТЕЛИ
# ─────────────────────────────────────────────────────────

async def find_user_state(session: AsyncSession, user_id: int) -> Optional[UserState]:
    """Только чтение: состояние пользователя или None, запись не создаётся."""
    result = await session.execute(select(UserTrustState).where(UserTrustState.user_id == user_id))
    row = result.scalar_one_or_none()
    return _to_user_state(row) if row is not None else None


async def get_user_state(session: AsyncSession, user_id: int) -> UserState:
    """
    Возвращает состояние пользователя, создавая запись по умолчанию при первом чтении.
    """
    result = await session.execute(select(UserTrustState).where(UserTrustState.user_id == user_id))
    row = result.scalar_one_or_none()
    if row is not None:
        return _to_user_state(row)

    session.add(UserTrustState(user_id=user_id, message_count=0, trusted=False, profile_checked=False))
    try:
        await session.commit()
    except IntegrityError:
        # Другое сообщение того же пользователя успело создать запись
        await session.rollback()
        result = await session.execute(select(UserTrustState).where(UserTrustState.user_id == user_id))
        return _to_user_state(result.scalar_one())

    logger.debug(f"[STORAGE] Новый пользователь: {user_id}")
    return UserState(user_id=user_id)


async def update_user_state(session: AsyncSession, user_id: int, **fields) -> None:
    """
    Частичное обновление состояния пользователя одним UPDATE.

    Если записи ещё нет, она создаётся со значениями по умолчанию и этими полями.
    """
    unknown = set(fields) - USER_STATE_FIELDS
    if unknown:
        raise ValueError(f"Неизвестные поля состояния пользователя: {sorted(unknown)}")
    if not fields:
        return

    statement = (
        update(UserTrustState)
        .where(UserTrustState.user_id == user_id)
        .values(**fields, updated_at=utcnow())
    )
    result = await session.execute(statement)
    if result.rowcount > 0:
        await session.commit()
        return

    values = {"message_count": 0, "trusted": False, "profile_checked": False, **fields}
    session.add(UserTrustState(user_id=user_id, **values))
    try:
        await session.commit()
    except IntegrityError:
        # Запись создало параллельное сообщение - обновляем её
        await session.rollback()
        await session.execute(statement)
        await session.commit()
        return

    logger.debug(f"[STORAGE] Новый пользователь: {user_id}")


async def apply_state_update(session: AsyncSession, user_id: int, state_update: Optional[StateUpdate]) -> None:
    """Записывает StateUpdate, который вернул движок модерации."""
    if state_update is None or state_update.is_empty():
        return
    await update_user_state(session, user_id, **state_update.as_dict())


async def set_profile_checked(session: AsyncSession, user_id: int) -> None:
    await update_user_state(session, user_id, profile_checked=True)


async def set_trust(session: AsyncSession, user_id: int) -> UserState:
    """
    Принудительно делает пользователя доверенным (команда /unban).

    Перезаписывает запись целиком: trusted=True, message_count=100, profile_checked=True.
    """
    trusted_state = UserState(
        user_id=user_id,
        message_count=UNBAN_MESSAGE_COUNT,
        trusted=True,
        profile_checked=True,
    )

    result = await session.execute(select(UserTrustState).where(UserTrustState.user_id == user_id))
    row = result.scalar_one_or_none()
    if row is None:
        session.add(
            UserTrustState(
                user_id=user_id,
                message_count=trusted_state.message_count,
                trusted=True,
                profile_checked=True,
            )
        )
    else:
        row.message_count = trusted_state.message_count
        row.trusted = True
        row.profile_checked = True
        row.updated_at = utcnow()
    await session.commit()

    logger.info(f"[STORAGE] Пользователь {user_id} добавлен в доверенные")
    return trusted_state


async def reset_user_state(session: AsyncSession, user_id: int) -> bool:
    """
    Сбрасывает пользователя в состояние NEW (команда /reset).

    Returns:
        False если пользователя нет в БД
    """
    result = await session.execute(
        update(UserTrustState)
        .where(UserTrustState.user_id == user_id)
        .values(trusted=False, message_count=0, profile_checked=False, updated_at=utcnow())
    )
    await session.commit()
    return result.rowcount > 0
