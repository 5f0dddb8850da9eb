"""Microphone capture.

"Dumb hardware I/O": records fixed-length chunks from the default input
device and knows nothing about sessions or transcripts.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)


class MicrophoneError(RuntimeError):
    """Raised when the input device cannot be opened or read."""

    def __init__(self, message: str, permission_denied: bool = False) -> None:
        super().__init__(message)
        self.permission_denied = permission_denied


@dataclass(frozen=True)
class MicrophoneConfig:
    sample_rate: int = 16000
    channels: int = 1


class MicrophoneCapture:
    def __init__(self, config: MicrophoneConfig | None = None) -> None:
        self._config = config or MicrophoneConfig()
        self._aborted = False

    @property
    def config(self) -> MicrophoneConfig:
        return self._config

    def _require_sounddevice(self):
        try:
            import sounddevice as sd  # type: ignore

            return sd
        except Exception as e:  # pragma: no cover
            raise MicrophoneError(
                "sounddevice is required for speech capture. Install Python deps with: pip install -e '.[voice]'. "
                "If you see 'PortAudio library not found', install PortAudio (Debian/Ubuntu: sudo apt-get install portaudio19-dev)."
            ) from e

    async def record_chunk(self, seconds: float) -> np.ndarray:
        """
        Record `seconds` of mono audio.

        Returns:
            float32 samples in [-1, 1], shape (samples,). Empty if aborted.

        Raises:
            MicrophoneError: If the device cannot be used.
        """
        sd = self._require_sounddevice()
        self._aborted = False
        frames = int(seconds * self._config.sample_rate)

        def _record() -> np.ndarray:
            try:
                audio = sd.rec(
                    frames,
                    samplerate=self._config.sample_rate,
                    channels=self._config.channels,
                    dtype="float32",
                )
                sd.wait()
            except sd.PortAudioError as e:
                message = str(e)
                denied = "permission" in message.lower() or "not allowed" in message.lower()
                raise MicrophoneError(f"Microphone unavailable: {message}", permission_denied=denied) from e
            return audio

        audio = await asyncio.to_thread(_record)
        if self._aborted:
            return np.zeros(0, dtype=np.float32)
        if audio.ndim > 1:
            audio = audio.mean(axis=1)
        return audio.astype(np.float32, copy=False)

    def abort(self) -> None:
        """Stop an in-progress recording."""
        self._aborted = True
        try:
            sd = self._require_sounddevice()
        except MicrophoneError:
            return
        sd.stop()
