"""
Команды администраторов бота (ADMIN_IDS)

В группе:
    /addgroup           - активировать защиту группы
    /nighton /nightoff  - ночной режим 22:00-09:00
    /unban <user_id>    - вернуть права и сделать доверенным
В группе и в ЛС:
    /reset <user_id>    - сбросить пользователя в NEW
    /id                 - ID чата и свой ID
Только в ЛС:
    /start              - справка

Команды от не-администраторов не перехватываются: в группе
они проходят обычную модерацию, в ЛС игнорируются.
"""

import logging
from typing import Optional

from aiogram import Router, F
from aiogram.filters import BaseFilter, Command, CommandObject
from aiogram.types import Message
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from antiad_bot.database.queries import activate_group, reset_user_state, set_night_mode, set_trust
from antiad_bot.handlers.group_message_handler import GROUP_CHAT_TYPES
from antiad_bot.services.admin_access import AdminRegistry
from antiad_bot.services.telegram_gateway import TelegramGateway

logger = logging.getLogger(__name__)

admin_commands_router = Router(name="admin_commands")

HELP_TEXT = """
🤖 <b>TG 群组反广告机器人 使用说明</b>

<b>📋 主要功能</b>
• AI 智能审核 - 文本/图片/头像/Bio 多维度检测
• 信任系统 - 10条消息后自动信任，信任用户豁免检测
• 夜间静默 - 22:00-09:00 自动删除消息
• 硬关键词拦截 - 秒杀违规内容
• 引用投毒检测 - 防止通过回复/引用传播广告

<b>⚙️ 管理员命令</b>

<b>/addgroup</b>
激活群组防护功能

<b>/nighton</b> / <b>/nightoff</b>
开启/关闭夜间静默模式（22:00-09:00）

<b>/unban &lt;用户ID&gt;</b>
解封用户并加入白名单
<i>示例：/unban 123456789</i>

<b>/reset &lt;用户ID&gt;</b>
重置用户状态为新用户（用于测试AI审核）
<i>示例：/reset 123456789</i>

<b>/id</b>
查看当前群组ID和你的用户ID

<b>/start</b>
显示本使用说明（仅私聊有效）

<b>🛡️ 信任系统说明</b>
• 新用户：完整AI审核（头像+Bio+文本+图片）
• 发送10条正常消息后：自动晋升为信任用户
• 抽查机制：信任用户发送链接/转发/图片时，30%概率抽查

<b>⚡ 快速开始</b>
1. 将机器人添加为群组管理员（需要删除消息和封禁权限）
2. 在群组发送 <code>/addgroup</code> 激活防护

<i>💡 提示：所有命令都需要管理员权限才能执行</i>
"""


class BotAdminFilter(BaseFilter):
    """Пропускает только администраторов бота из ADMIN_IDS."""

    async def __call__(self, message: Message, admins: AdminRegistry) -> bool:
        return message.from_user is not None and admins.is_admin(message.from_user.id)


def parse_user_id(args: Optional[str]) -> Optional[int]:
    """Первый аргумент команды как user_id (положительное целое)."""
    if not args:
        return None
    first = args.split()[0]
    if not first.isdigit():
        return None
    user_id = int(first)
    return user_id or None


in_group = F.chat.type.in_(GROUP_CHAT_TYPES)


@admin_commands_router.message(Command("start"), F.chat.type == "private", BotAdminFilter())
async def start_command(message: Message):
    await message.answer(HELP_TEXT, parse_mode="HTML")
    logger.info(f"[ADMIN] 📖 Справка отправлена администратору {message.from_user.id}")


@admin_commands_router.message(Command("addgroup"), in_group, BotAdminFilter())
async def addgroup_command(message: Message, session: AsyncSession):
    chat_id = message.chat.id
    try:
        await activate_group(session, chat_id, added_by=message.from_user.id)
    except (SQLAlchemyError, ValueError) as e:
        logger.error(f"[ADMIN] ❌ Не удалось активировать группу {chat_id}: {e}")
        await message.answer(f"❌ 激活失败: {e}")
        return

    await message.answer(f"✅ 已激活群组防护\n群组ID: <code>{chat_id}</code>", parse_mode="HTML")
    logger.info(f"[ADMIN] ✅ Группа активирована: {chat_id} by {message.from_user.id}")


@admin_commands_router.message(Command("nighton", "nightoff"), in_group, BotAdminFilter())
async def night_mode_command(message: Message, command: CommandObject, session: AsyncSession):
    enabled = command.command == "nighton"
    try:
        updated = await set_night_mode(session, message.chat.id, enabled)
    except SQLAlchemyError as e:
        logger.error(f"[ADMIN] ❌ Не удалось изменить ночной режим {message.chat.id}: {e}")
        await message.answer(f"❌ 设置失败: {e}")
        return

    if not updated:
        await message.answer("⚠️ 群组未激活，请先使用 /addgroup")
        return

    if enabled:
        await message.answer("🌙 夜间静默已开启 (22:00-09:00)")
    else:
        await message.answer("☀️ 夜间静默已关闭")
    logger.info(f"[ADMIN] Ночной режим {'включён' if enabled else 'выключен'}: {message.chat.id}")


@admin_commands_router.message(Command("unban"), in_group, BotAdminFilter())
async def unban_command(
    message: Message,
    command: CommandObject,
    session: AsyncSession,
    gateway: TelegramGateway,
):
    target_id = parse_user_id(command.args)
    if target_id is None:
        await message.answer("⚠️ 用法: /unban <用户ID>")
        return

    chat_id = message.chat.id
    unrestricted = await gateway.unrestrict(chat_id, target_id)
    try:
        await set_trust(session, target_id)
    except SQLAlchemyError as e:
        logger.error(f"[ADMIN] ❌ Не удалось добавить {target_id} в доверенные: {e}")
        await message.answer(f"❌ 解封失败: {e}")
        return

    if unrestricted:
        await message.answer(f"✅ 用户 <code>{target_id}</code> 已恢复权限并加入白名单", parse_mode="HTML")
    else:
        await message.answer(
            f"⚠️ 用户 <code>{target_id}</code> 已加入白名单，但恢复权限失败（请检查机器人权限）",
            parse_mode="HTML",
        )
    logger.info(f"[ADMIN] ✅ Разблокирован {target_id} в {chat_id} (права: {unrestricted})")


@admin_commands_router.message(Command("reset"), BotAdminFilter())
async def reset_command(message: Message, command: CommandObject, session: AsyncSession):
    target_id = parse_user_id(command.args)
    if target_id is None:
        await message.answer("⚠️ 用法: /reset <用户ID>")
        return

    try:
        existed = await reset_user_state(session, target_id)
    except SQLAlchemyError as e:
        logger.error(f"[ADMIN] ❌ Не удалось сбросить {target_id}: {e}")
        await message.answer(f"❌ 重置失败: {e}")
        return

    if not existed:
        await message.answer(f"ℹ️ 用户 <code>{target_id}</code> 尚无记录", parse_mode="HTML")
        return

    await message.answer(
        f"✅ 用户 <code>{target_id}</code> 已重置为新用户状态\n下次发言将进行完整AI审核",
        parse_mode="HTML",
    )
    logger.info(f"[ADMIN] ✅ Пользователь {target_id} сброшен в NEW")


@admin_commands_router.message(Command("id"), BotAdminFilter())
async def id_command(message: Message):
    await message.answer(
        f"📍 Chat ID: <code>{message.chat.id}</code>\n👤 Your ID: <code>{message.from_user.id}</code>",
        parse_mode="HTML",
    )
