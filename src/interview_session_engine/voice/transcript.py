"""Transcript capture adapter.

Wraps a continuous speech recognizer supplied by the host and turns its
callbacks into a typed subscription the session orchestrator listens to:

recognizer -> adapter -> listeners (TranscriptEvent | SpeechCaptureError)

The adapter stops itself on any recognizer error and drops its listeners on
every stop, so no listener outlives the recording it was attached to.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Union

from interview_session_engine.errors import SpeechCaptureError
from interview_session_engine.schemas import SpeechErrorKind, TranscriptEvent

logger = logging.getLogger(__name__)

TranscriptSignal = Union[TranscriptEvent, SpeechCaptureError]
SignalListener = Callable[[TranscriptSignal], None]


class SpeechRecognizer(ABC):
    """Host speech-to-text capability."""

    @property
    @abstractmethod
    def is_supported(self) -> bool:
        """Feature-detection flag; recording must not be offered when False."""
        ...

    @abstractmethod
    async def start(self, sink: SignalListener) -> None:
        """
        Begin continuous recognition, delivering results to `sink`.

        Raises:
            SpeechCaptureError: If capture cannot start (e.g. permission denied).
        """
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop recognition. Must be safe to call when not started."""
        ...


class UnsupportedSpeechRecognizer(SpeechRecognizer):
    """Stand-in for hosts without speech recognition; typed input only."""

    @property
    def is_supported(self) -> bool:
        return False

    async def start(self, sink: SignalListener) -> None:
        raise SpeechCaptureError(SpeechErrorKind.UNSUPPORTED)

    async def stop(self) -> None:
        return None


class Subscription:
    """Handle returned by `TranscriptCaptureAdapter.subscribe`."""

    def __init__(self, adapter: TranscriptCaptureAdapter, listener: SignalListener) -> None:
        self._adapter = adapter
        self._listener = listener

    @property
    def active(self) -> bool:
        return self._adapter.has_listener(self._listener)

    def unsubscribe(self) -> None:
        self._adapter.remove_listener(self._listener)


class TranscriptCaptureAdapter:
    def __init__(self, recognizer: SpeechRecognizer) -> None:
        self._recognizer = recognizer
        self._listeners: list[SignalListener] = []
        self._listening = False
        self._pending_stop: asyncio.Task[None] | None = None

    @property
    def supported(self) -> bool:
        return self._recognizer.is_supported

    @property
    def is_listening(self) -> bool:
        return self._listening

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: SignalListener) -> Subscription:
        if listener not in self._listeners:
            self._listeners.append(listener)
        return Subscription(self, listener)

    def has_listener(self, listener: SignalListener) -> bool:
        return listener in self._listeners

    def remove_listener(self, listener: SignalListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def start(self) -> None:
        """
        Start capture.

        Raises:
            SpeechCaptureError: If unsupported or the recognizer refuses to start.
        """
        if not self.supported:
            raise SpeechCaptureError(SpeechErrorKind.UNSUPPORTED)
        if self._listening:
            return
        await self._await_pending_stop()
        self._listening = True
        try:
            await self._recognizer.start(self._dispatch)
        except SpeechCaptureError:
            self._listening = False
            self._listeners.clear()
            raise
        logger.info("Speech capture started")

    async def stop(self) -> None:
        """Stop capture and drop all listeners. Idempotent."""
        was_listening = self._listening
        self._listening = False
        self._listeners.clear()
        await self._await_pending_stop()
        if was_listening:
            await self._recognizer.stop()
            logger.info("Speech capture stopped")

    def _dispatch(self, signal: TranscriptSignal) -> None:
        if not self._listening:
            return
        listeners = list(self._listeners)
        if isinstance(signal, SpeechCaptureError):
            logger.warning(f"Speech capture error ({signal.error_kind.value}): {signal.message}")
            self._listening = False
            self._listeners.clear()
            self._pending_stop = asyncio.get_running_loop().create_task(self._recognizer.stop())
        for listener in listeners:
            listener(signal)

    async def _await_pending_stop(self) -> None:
        task, self._pending_stop = self._pending_stop, None
        if task is not None:
            await task
