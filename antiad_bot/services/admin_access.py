from typing import FrozenSet, Iterable, Optional


class AdminRegistry:
    """
    Администраторы бота (ADMIN_IDS из .env).

    Администраторы не проверяются модерацией и могут
    выполнять команды /addgroup, /unban и т.д.
    """

    def __init__(self, admin_ids: Iterable[int]):
        self._admin_ids: FrozenSet[int] = frozenset(admin_ids)

    @property
    def admin_ids(self) -> FrozenSet[int]:
        return self._admin_ids

    def is_admin(self, user_id: Optional[int]) -> bool:
        return user_id is not None and user_id in self._admin_ids
