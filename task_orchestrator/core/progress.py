"""
Progress Reporter - cycles human-readable status strings for working tasks.

Each working task owns one periodic timer (an asyncio task). The timer is
released when the task leaves ``working`` and, for every task at once, when
the run is abandoned.
"""

import asyncio
from typing import Callable, Dict, List, Optional, Sequence

from task_orchestrator.core.state_store import TaskStateStore
from task_orchestrator.utils.logger import get_logger

logger = get_logger(__name__)


class ProgressReporter:
    """Owns the progress timers of one run."""

    def __init__(
        self,
        store: TaskStateStore,
        interval_seconds: float = 2.5,
        on_update: Optional[Callable[[str, str], None]] = None,
    ):
        self._store = store
        self.interval_seconds = interval_seconds
        self._on_update = on_update
        self._timers: Dict[str, asyncio.Task] = {}
        self._closed = False

    @property
    def active(self) -> List[str]:
        """Names of tasks whose timer is still running."""
        return [name for name, timer in self._timers.items() if not timer.done()]

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self, name: str, texts: Sequence[str]) -> None:
        """Show the first text now and advance through the rest every interval."""
        texts = list(texts) or ["Working..."]
        self._set(name, texts[0])

        if self._closed or len(texts) < 2:
            return
        if name in self._timers:
            self.stop(name)

        self._timers[name] = asyncio.get_running_loop().create_task(
            self._cycle(name, texts), name=f"progress:{name}"
        )

    async def _cycle(self, name: str, texts: List[str]) -> None:
        index = 0
        while True:
            await asyncio.sleep(self.interval_seconds)
            index = (index + 1) % len(texts)
            self._set(name, texts[index])

    def _set(self, name: str, text: str) -> None:
        if self._store.set_progress(name, text) and self._on_update is not None:
            self._on_update(name, text)

    def stop(self, name: str) -> bool:
        """Release the timer of one task. Returns False if it had none."""
        timer = self._timers.pop(name, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def stop_all(self) -> int:
        """Release every timer of the run."""
        names = list(self._timers)
        for name in names:
            self.stop(name)
        if names:
            logger.debug(f"Released {len(names)} progress timer(s)")
        return len(names)

    def close(self) -> int:
        """Stop all timers and refuse new ones (run abandoned)."""
        self._closed = True
        return self.stop_all()
