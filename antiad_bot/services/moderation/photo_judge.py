import logging

from antiad_bot.services.ai_classifier import ContentClassifier
from antiad_bot.services.telegram_gateway import TelegramGateway

logger = logging.getLogger(__name__)


class PhotoJudge:
    """Получает ссылку на файл Telegram и отдаёт её в AI."""

    def __init__(self, gateway: TelegramGateway, classifier: ContentClassifier):
        self._gateway = gateway
        self._classifier = classifier

    async def is_violation(self, file_id: str) -> bool:
        # Без AI не тратим запрос getFile
        if not self._classifier.enabled:
            return False

        image_url = await self._gateway.resolve_file(file_id)
        if not image_url:
            logger.warning(f"[PHOTO] Не удалось получить ссылку на файл {file_id[:20]}..., считаем чистым")
            return False
        return await self._classifier.classify_image(image_url)
