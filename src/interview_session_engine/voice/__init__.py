"""Speech capture subsystem.

mic -> STT -> transcript adapter -> session orchestrator

The orchestrator remains the single authority for session flow; this package
only produces transcript events.
"""

from interview_session_engine.voice.stt import STTConfig, STTProvider, TranscriptionResult, WhisperSTT
from interview_session_engine.voice.transcript import (
    SpeechRecognizer,
    Subscription,
    TranscriptCaptureAdapter,
    UnsupportedSpeechRecognizer,
)

__all__ = [
    "STTConfig",
    "STTProvider",
    "SpeechRecognizer",
    "Subscription",
    "TranscriptCaptureAdapter",
    "TranscriptionResult",
    "UnsupportedSpeechRecognizer",
    "WhisperSTT",
]


# Optional audio dependencies (numpy + sounddevice). Keep import-time lightweight.
try:
    from interview_session_engine.voice.microphone import MicrophoneCapture, MicrophoneConfig
    from interview_session_engine.voice.whisper_recognizer import WhisperSpeechRecognizer

    __all__.extend(["MicrophoneCapture", "MicrophoneConfig", "WhisperSpeechRecognizer"])
except (ModuleNotFoundError, ImportError):
    pass
