"""Local continuous recognizer: microphone chunks -> faster-whisper -> final segments."""

from __future__ import annotations

import asyncio
import contextlib
import importlib.util
import logging

from interview_session_engine.errors import SpeechCaptureError
from interview_session_engine.schemas import SpeechErrorKind, TranscriptEvent
from interview_session_engine.voice.microphone import MicrophoneCapture, MicrophoneError
from interview_session_engine.voice.stt import STTProvider, WhisperSTT
from interview_session_engine.voice.transcript import SignalListener, SpeechRecognizer

logger = logging.getLogger(__name__)


class WhisperSpeechRecognizer(SpeechRecognizer):
    """
    Records fixed-length chunks and transcribes each one as a final segment.

    Several silent chunks in a row end recognition with a no-speech error.
    """

    def __init__(
        self,
        stt: STTProvider | None = None,
        microphone: MicrophoneCapture | None = None,
        chunk_seconds: float = 4.0,
        max_silent_chunks: int = 3,
    ) -> None:
        self._stt = stt or WhisperSTT()
        self._microphone = microphone or MicrophoneCapture()
        self._chunk_seconds = chunk_seconds
        self._max_silent_chunks = max_silent_chunks
        self._task: asyncio.Task[None] | None = None

    @property
    def is_supported(self) -> bool:
        return all(
            importlib.util.find_spec(name) is not None
            for name in ("sounddevice", "faster_whisper")
        )

    async def start(self, sink: SignalListener) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._loop(sink), name="whisper-recognizer")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        self._microphone.abort()
        if task is asyncio.current_task():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _loop(self, sink: SignalListener) -> None:
        silent_chunks = 0
        while True:
            try:
                audio = await self._microphone.record_chunk(self._chunk_seconds)
            except MicrophoneError as e:
                kind = SpeechErrorKind.PERMISSION_DENIED if e.permission_denied else SpeechErrorKind.AUDIO_CAPTURE
                sink(SpeechCaptureError(kind))
                return
            if audio.size == 0:
                continue

            result = await self._stt.transcribe_audio(audio)
            if not result.is_empty:
                silent_chunks = 0
                sink(TranscriptEvent(text=result.text, is_final=True))
                continue

            silent_chunks += 1
            logger.debug(f"No speech in chunk ({silent_chunks}/{self._max_silent_chunks})")
            if silent_chunks >= self._max_silent_chunks:
                sink(SpeechCaptureError(SpeechErrorKind.NO_SPEECH))
                return
