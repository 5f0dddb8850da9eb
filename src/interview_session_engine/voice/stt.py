"""Local speech-to-text for answer capture.

Transcribes in-memory microphone chunks with `faster-whisper` (voice extra).
Segments the model marks as probable silence are dropped so background noise
does not leak into the answer.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class STTConfig:
    model_size: str = "small"
    device: str = "cpu"  # cpu|cuda; auto resolves to cpu
    compute_type: str | None = None  # e.g. int8, float16
    language: str | None = "en"
    vad_filter: bool = True
    # Segments above this no-speech probability are dropped.
    max_no_speech_prob: float = 0.8


@dataclass(frozen=True)
class TranscriptionResult:
    text: str
    avg_logprob: float | None = None
    no_speech_prob: float | None = None

    @property
    def is_empty(self) -> bool:
        return not self.text


class STTProvider(ABC):
    @abstractmethod
    async def transcribe_audio(self, audio: Any) -> TranscriptionResult:
        """Transcribe a mono float32 sample array at 16 kHz."""
        ...


def summarize_segments(segments: Iterable[Any], max_no_speech_prob: float) -> TranscriptionResult:
    """
    Join recognised segments into one result.

    Segments need `text`, `avg_logprob` and `no_speech_prob` attributes, as
    yielded by faster-whisper.
    """
    kept: list[str] = []
    logprobs: list[float] = []
    worst_silence: float | None = None
    for segment in segments:
        silence = segment.no_speech_prob
        worst_silence = silence if worst_silence is None else max(worst_silence, silence)
        text = (segment.text or "").strip()
        if silence > max_no_speech_prob or not text:
            continue
        kept.append(text)
        logprobs.append(segment.avg_logprob)

    return TranscriptionResult(
        text=" ".join(kept),
        avg_logprob=sum(logprobs) / len(logprobs) if logprobs else None,
        no_speech_prob=worst_silence,
    )


class WhisperSTT(STTProvider):
    """faster-whisper model loaded on first use and run off the event loop."""

    def __init__(self, config: STTConfig | None = None) -> None:
        self._config = config or STTConfig()
        self._model = None

    @property
    def config(self) -> STTConfig:
        return self._config

    def _ensure_model(self):
        if self._model is None:
            try:
                from faster_whisper import WhisperModel  # type: ignore
            except ImportError as e:  # pragma: no cover
                raise RuntimeError(
                    "faster-whisper is required for speech capture. Install with: pip install -e '.[voice]'"
                ) from e

            device = "cpu" if self._config.device == "auto" else self._config.device
            options = {"compute_type": self._config.compute_type} if self._config.compute_type else {}
            logger.info(f"Loading faster-whisper model '{self._config.model_size}' on {device}")
            self._model = WhisperModel(self._config.model_size, device=device, **options)
        return self._model

    async def transcribe_audio(self, audio: Any) -> TranscriptionResult:
        def _transcribe() -> TranscriptionResult:
            segments, _info = self._ensure_model().transcribe(
                audio,
                language=self._config.language,
                vad_filter=self._config.vad_filter,
            )
            return summarize_segments(segments, self._config.max_no_speech_prob)

        return await asyncio.to_thread(_transcribe)
