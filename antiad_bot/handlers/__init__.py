# Импорт всех роутеров для удобного подключения
from .admin_commands import admin_commands_router
from .group_message_handler import group_message_router

from aiogram import Router

handlers_router = Router()
# Команды администраторов ПЕРВЫМИ: иначе /addgroup уйдёт в модерацию
handlers_router.include_router(admin_commands_router)
handlers_router.include_router(group_message_router)
