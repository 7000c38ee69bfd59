import asyncio
import logging
from typing import Coroutine, Optional, Set

logger = logging.getLogger(__name__)


class BackgroundTasks:
    """
    Фоновые задачи (отложенное удаление уведомлений и т.п.).

    Держит сильные ссылки на задачи, чтобы их не собрал GC,
    и позволяет дождаться их при остановке бота.
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine, name: Optional[str] = None) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"[TASKS] Фоновая задача {task.get_name()} упала: {error!r}")

    async def wait_all(self, timeout: Optional[float] = None) -> None:
        """Ждёт завершения всех задач (при остановке бота)."""
        if not self._tasks:
            return

        logger.info(f"[TASKS] ⏳ Ожидаем {len(self._tasks)} фоновых задач...")
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning(f"[TASKS] ⚠️ {len(pending)} задач не успели завершиться, отменяем")
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
