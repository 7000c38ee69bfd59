# ============================================================
# KEYWORD FILTER - ЖЁСТКИЕ СТОП-СЛОВА
# ============================================================
# Бесплатная детерминированная проверка до любых AI вызовов.
# Поиск подстроки с учётом регистра, первое совпадение побеждает.
# ============================================================

import logging
from typing import Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

# Порядок важен: при нескольких совпадениях в причине будет первое из списка
HARD_KEYWORDS: Tuple[str, ...] = ("查档", "开户", "猎魔", "轰炸", "上分", "烟酒", "代付")


class KeywordFilter:
    """
    Проверка текста на фиксированный список стоп-слов.

    Пример:
        term = KeywordFilter().find("今天代付")
        # term == "代付"
    """

    def __init__(self, keywords: Sequence[str] = HARD_KEYWORDS):
        self._keywords = tuple(k for k in keywords if k)

    @property
    def keywords(self) -> Tuple[str, ...]:
        return self._keywords

    def find(self, text: str) -> Optional[str]:
        """Возвращает первое найденное стоп-слово или None."""
        if not text:
            return None
        for keyword in self._keywords:
            if keyword in text:
                logger.info(f"[KEYWORD] 🚨 Найдено стоп-слово: {keyword}")
                return keyword
        return None
