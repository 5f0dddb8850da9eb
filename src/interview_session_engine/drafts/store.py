"""Ephemeral draft storage.

One slot per session: saving a draft overwrites whatever was there.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import ValidationError

from interview_session_engine.schemas import Draft

logger = logging.getLogger(__name__)


class DraftStore(ABC):
    @abstractmethod
    async def load(self, session_id: str) -> Draft | None: ...

    @abstractmethod
    async def save(self, draft: Draft) -> None: ...

    @abstractmethod
    async def clear(self, session_id: str) -> None: ...


class InMemoryDraftStore(DraftStore):
    """Process-local draft slots."""

    def __init__(self) -> None:
        self._drafts: dict[str, Draft] = {}

    async def load(self, session_id: str) -> Draft | None:
        return self._drafts.get(session_id)

    async def save(self, draft: Draft) -> None:
        self._drafts[draft.session_id] = draft

    async def clear(self, session_id: str) -> None:
        self._drafts.pop(session_id, None)


class JsonFileDraftStore(DraftStore):
    """Stores each session's draft as `<drafts_dir>/<session_id>.json`."""

    def __init__(self, drafts_dir: str | Path) -> None:
        self._dir = Path(drafts_dir)

    @property
    def drafts_dir(self) -> Path:
        return self._dir

    def _path(self, session_id: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", session_id)
        return self._dir / f"{safe}.json"

    async def load(self, session_id: str) -> Draft | None:
        path = self._path(session_id)

        def _read() -> Draft | None:
            if not path.exists():
                return None
            try:
                return Draft.model_validate_json(path.read_text(encoding="utf-8"))
            except (ValidationError, UnicodeDecodeError):
                logger.warning(f"Ignoring unreadable draft at {path}")
                return None

        return await asyncio.to_thread(_read)

    async def save(self, draft: Draft) -> None:
        path = self._path(draft.session_id)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".json.tmp")
            tmp.write_text(draft.model_dump_json(), encoding="utf-8")
            os.replace(tmp, path)

        await asyncio.to_thread(_write)

    async def clear(self, session_id: str) -> None:
        path = self._path(session_id)
        await asyncio.to_thread(path.unlink, missing_ok=True)
