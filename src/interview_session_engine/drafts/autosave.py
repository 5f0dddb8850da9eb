"""Periodic draft snapshots owned by a session orchestrator."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Callable

from interview_session_engine.drafts.store import DraftStore
from interview_session_engine.schemas import Draft

logger = logging.getLogger(__name__)


class DraftAutosaver:
    """
    Writes the current draft every `interval` seconds while there is unsent text.

    The task is started and cancelled by its owner; nothing runs after `stop()`.
    """

    def __init__(
        self,
        store: DraftStore,
        snapshot: Callable[[], Draft | None],
        interval: float,
    ) -> None:
        """
        Args:
            store: Where drafts are written.
            snapshot: Returns the draft to save, or None when there is nothing unsent.
            interval: Seconds between snapshots.
        """
        self._store = store
        self._snapshot = snapshot
        self._interval = interval
        self._task: asyncio.Task[None] | None = None
        self._last_saved: tuple[int, str] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="draft-autosave")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    def reset(self) -> None:
        """Forget the last written snapshot (after the draft slot is cleared)."""
        self._last_saved = None

    async def save_now(self) -> bool:
        """
        Write the current snapshot if it changed since the last write.

        Returns:
            True if a draft was written.
        """
        draft = self._snapshot()
        if draft is None or not draft.text.strip():
            return False
        key = (draft.question_order, draft.text)
        if key == self._last_saved:
            return False
        await self._store.save(draft)
        self._last_saved = key
        logger.debug(f"Draft saved for session {draft.session_id} (question {draft.question_order})")
        return True

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.save_now()
            except Exception as e:
                logger.warning(f"Draft autosave failed, will retry next interval: {e}", exc_info=True)
