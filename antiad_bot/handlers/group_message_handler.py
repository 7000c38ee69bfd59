# ============================================================
# GROUP MESSAGE HANDLER - ЕДИНАЯ ТОЧКА ВХОДА ДЛЯ СООБЩЕНИЙ ГРУПП
# ============================================================
# Для каждого сообщения (и отредактированного сообщения) в группе:
# 1. Читаем настройки группы и состояние автора из БД (без записи)
# 2. ModerationEngine.decide() -> Decision
# 3. Применяем действие (SILENCE / BLOCK)
# 4. Сохраняем Decision.state_update
#
# Ошибка БД не роняет поллинг: логируем и пропускаем апдейт.
# ============================================================

# Импортируем Router и магический фильтр F
from aiogram import Router, F
# Импортируем типы сообщений
from aiogram.types import Message
# Импортируем ошибки SQLAlchemy
from sqlalchemy.exc import SQLAlchemyError
# Импортируем типы SQLAlchemy
from sqlalchemy.ext.asyncio import AsyncSession
# Импортируем логгер
import logging
# Импортируем типы для аннотаций
from typing import Optional

from antiad_bot.database.queries import apply_state_update, find_user_state, get_group_config
from antiad_bot.services.admin_access import AdminRegistry
from antiad_bot.services.enforcement import EnforcementAction
from antiad_bot.services.moderation import ModerationEngine
from antiad_bot.services.moderation.types import Action, Decision

# Создаём логгер для этого модуля
logger = logging.getLogger(__name__)

# Типы чатов, которые защищает бот
GROUP_CHAT_TYPES = {"group", "supergroup"}

group_message_router = Router(name="group_message")


def _is_sender_admin(message: Message, admins: AdminRegistry) -> bool:
    """
    Администратор бота из ADMIN_IDS или анонимный администратор группы
    (сообщение от имени самой группы).
    """
    if message.sender_chat is not None and message.sender_chat.id == message.chat.id:
        return True
    user_id = message.from_user.id if message.from_user else None
    return admins.is_admin(user_id)


async def moderate_message(
    message: Message,
    session: AsyncSession,
    engine: ModerationEngine,
    enforcement: EnforcementAction,
    admins: AdminRegistry,
) -> Optional[Decision]:
    """
    Полный цикл обработки одного сообщения группы.

    Returns:
        Decision или None если апдейт пропущен из-за ошибки БД
    """
    chat_id = message.chat.id
    user = message.from_user
    sender_is_admin = _is_sender_admin(message, admins)

    group_config = None
    user_state = None
    try:
        if not sender_is_admin:
            group_config = await get_group_config(session, chat_id)
        if group_config is not None and user is not None:
            user_state = await find_user_state(session, user.id)
    except SQLAlchemyError:
        logger.exception(f"[HANDLER] ❌ Ошибка чтения БД, сообщение {message.message_id} в {chat_id} пропущено")
        return None

    decision = await engine.decide(message, sender_is_admin, group_config, user_state)

    if decision.action is Action.SILENCE:
        await enforcement.execute_silence(chat_id, message.message_id)
    elif decision.action is Action.BLOCK:
        await enforcement.execute_block(chat_id, user.id, message.message_id, decision.reason)

    if decision.state_update is not None and user is not None:
        try:
            await apply_state_update(session, user.id, decision.state_update)
        except SQLAlchemyError:
            logger.exception(f"[HANDLER] ❌ Не удалось сохранить состояние пользователя {user.id}")

    return decision


@group_message_router.message(F.chat.type.in_(GROUP_CHAT_TYPES))
@group_message_router.edited_message(F.chat.type.in_(GROUP_CHAT_TYPES))
async def group_message_handler(
    message: Message,
    session: AsyncSession,
    engine: ModerationEngine,
    enforcement: EnforcementAction,
    admins: AdminRegistry,
):
    await moderate_message(message, session, engine, enforcement, admins)
