# ============================================================
# AI CLASSIFIER - ПРОВЕРКА ТЕКСТА И КАРТИНОК ЧЕРЕЗ LLM
# ============================================================
# Отправляет текст или картинку в OpenAI-совместимый endpoint
# chat/completions и превращает ответ модели в True/False.
#
# Правила:
# - ОДНА попытка на вызов, без повторов (при спам-атаке повторы
#   умножают стоимость и задержку)
# - Любая ошибка (HTTP не 2xx, сеть, таймаут, битый JSON) = False:
#   если AI недоступен, сообщение считается чистым
# - Ответ модели ищем по маркеру "VERDICT: YES"
# ============================================================

# Импортируем aiohttp для асинхронных HTTP запросов
import aiohttp
# Импортируем asyncio для таймаутов
import asyncio
# Импортируем logging для логирования ошибок
import logging
# Импортируем типы для аннотаций
from typing import Any, Callable, Dict, Optional

# Создаём логгер для этого модуля
logger = logging.getLogger(__name__)


# ============================================================
# ПРОМПТЫ
# ============================================================
# Проверка сообщения + контекста (ответы, цитаты, связанные каналы)
TEXT_POLICY_PROMPT = (
    "You are a TG Admin. Analyze message & context for ADS/SPAM.\n"
    "Include: Crypto selling, Porn, Gambling, Carding, Illegal services.\n"
    "Strictly end with: 'VERDICT: YES' (violation) or 'VERDICT: NO'."
)

# Проверка профиля (имя + bio) нового пользователя
PROFILE_POLICY_PROMPT = (
    "Check user profile. RULES: 1. Selling Crypto/Drugs/Fake Money -> YES. "
    "2. Porn/NSFW -> YES. 3. Normal -> NO. VERDICT: YES/NO."
)

# Проверка картинки (фото сообщения или аватар)
IMAGE_POLICY_PROMPT = "Is this an AD/QR Code/Spam text in image? VERDICT: YES/NO"

# Основной маркер нарушения в ответе модели
VERDICT_YES_MARKER = "VERDICT: YES"


def parse_verdict(answer: Optional[str]) -> bool:
    """
    Превращает свободный ответ модели в вердикт.

    Основное правило: в ответе есть "VERDICT: YES".
    Запасное правило для моделей, которые не соблюдают формат:
    есть "YES" и нет "NO". Оно ненадёжное: "NO" внутри слов вроде
    "NOTHING" отключает его, и ответ считается чистым.

    Args:
        answer: Текст ответа модели (может быть None)

    Returns:
        True только если модель явно сказала YES
    """
    if not answer:
        return False
    result = answer.upper()
    if VERDICT_YES_MARKER in result:
        return True
    return "YES" in result and "NO" not in result


def _extract_answer(data: Any) -> str:
    """Достаёт choices[0].message.content из ответа chat/completions."""
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message") or {}
    content = message.get("content") if isinstance(message, dict) else None
    return content if isinstance(content, str) else ""


class ContentClassifier:
    """
    Клиент AI модерации.

    Args:
        api_url: Полный URL chat/completions
        api_key: Bearer токен
        model: Модель для текста
        vision_model: Модель для картинок
        timeout_seconds: Таймаут одного запроса
        session_factory: Фабрика aiohttp.ClientSession (подменяется в тестах)

    Example:
        >>> classifier = ContentClassifier(url, key)
        >>> if await classifier.classify_text("Продаю USDT", TEXT_POLICY_PROMPT):
        ...     print("реклама")
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        model: str = "gpt-4",
        vision_model: str = "gpt-4-vision",
        timeout_seconds: float = 30,
        session_factory: Callable[..., aiohttp.ClientSession] = aiohttp.ClientSession,
    ):
        self._api_url = api_url
        self._api_key = api_key
        self._model = model
        self._vision_model = vision_model
        self._timeout_seconds = timeout_seconds
        self._session_factory = session_factory

    @property
    def enabled(self) -> bool:
        return bool(self._api_url and self._api_key)

    async def classify_text(self, content: str, policy_prompt: str = TEXT_POLICY_PROMPT) -> bool:
        """True если модель считает текст нарушением."""
        if not self.enabled:
            logger.warning("[AI] ⚠️ AI API не настроен, пропускаем проверку текста")
            return False

        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": policy_prompt},
                {"role": "user", "content": content},
            ],
            "temperature": 0.2,
        }
        logger.info(f"[AI] 🤖 Проверка текста ({len(content)} символов), model={self._model}")

        answer = await self._complete(payload)
        is_violation = parse_verdict(answer)
        logger.info(
            f"[AI] ✅ Вердикт текста: {'нарушение' if is_violation else 'чисто'} | "
            f"ответ: {(answer or '')[:100]}"
        )
        return is_violation

    async def classify_image(self, image_url: str, prompt: str = IMAGE_POLICY_PROMPT) -> bool:
        """True если на картинке реклама/QR/спам."""
        if not self.enabled:
            logger.warning("[AI] ⚠️ AI API не настроен, пропускаем проверку картинки")
            return False

        payload = {
            "model": self._vision_model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": image_url}},
                    ],
                }
            ],
        }
        logger.info(f"[AI] 🤖 Проверка картинки, model={self._vision_model}")

        answer = await self._complete(payload)
        is_violation = parse_verdict(answer)
        logger.info(f"[AI] ✅ Вердикт картинки: {'нарушение' if is_violation else 'чисто'}")
        return is_violation

    async def _complete(self, payload: Dict[str, Any]) -> Optional[str]:
        """
        Один POST запрос. Возвращает текст ответа или None при любой ошибке.
        """
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

        try:
            # Таймаут на весь запрос (не зависаем если AI недоступен)
            timeout = aiohttp.ClientTimeout(total=self._timeout_seconds)

            async with self._session_factory(timeout=timeout) as session:
                async with session.post(self._api_url, json=payload, headers=headers) as response:
                    # Любой не-2xx ответ - считаем что вердикта нет
                    if not 200 <= response.status < 300:
                        error_text = await response.text()
                        logger.error(f"[AI] ❌ AI API вернул {response.status}: {error_text[:200]}")
                        return None

                    data = await response.json(content_type=None)

        except asyncio.TimeoutError:
            logger.warning(f"[AI] AI API таймаут ({self._timeout_seconds}s)")
            return None

        except aiohttp.ClientError as e:
            logger.error(f"[AI] AI API ошибка сети: {e}")
            return None

        except ValueError as e:
            # Ответ не является JSON
            logger.error(f"[AI] AI API вернул не JSON: {e}")
            return None

        return _extract_answer(data)
