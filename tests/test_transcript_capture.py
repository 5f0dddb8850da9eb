"""Tests for the transcript capture adapter and the local whisper recognizer."""

import asyncio

import pytest

from interview_session_engine.errors import SpeechCaptureError
from interview_session_engine.schemas import SpeechErrorKind, TranscriptEvent
from interview_session_engine.voice.stt import TranscriptionResult
from interview_session_engine.voice.transcript import TranscriptCaptureAdapter, UnsupportedSpeechRecognizer

from conftest import FakeRecognizer


class TestTranscriptCaptureAdapter:
    @pytest.mark.asyncio
    async def test_unsupported_start_raises(self) -> None:
        adapter = TranscriptCaptureAdapter(UnsupportedSpeechRecognizer())

        assert not adapter.supported
        with pytest.raises(SpeechCaptureError) as exc_info:
            await adapter.start()
        assert exc_info.value.error_kind == SpeechErrorKind.UNSUPPORTED

    @pytest.mark.asyncio
    async def test_events_reach_subscribers(self) -> None:
        recognizer = FakeRecognizer()
        adapter = TranscriptCaptureAdapter(recognizer)
        received = []
        adapter.subscribe(received.append)

        await adapter.start()
        recognizer.emit(TranscriptEvent(text="hello", is_final=False))
        recognizer.emit(TranscriptEvent(text="hello there", is_final=True))

        assert [event.text for event in received] == ["hello", "hello there"]
        assert adapter.is_listening

    @pytest.mark.asyncio
    async def test_stop_drops_listeners_and_is_idempotent(self) -> None:
        recognizer = FakeRecognizer()
        adapter = TranscriptCaptureAdapter(recognizer)
        received = []
        subscription = adapter.subscribe(received.append)
        await adapter.start()

        await adapter.stop()
        await adapter.stop()
        recognizer.emit(TranscriptEvent(text="late", is_final=True))

        assert recognizer.stop_calls == 1
        assert not subscription.active
        assert adapter.listener_count == 0
        assert received == []

    @pytest.mark.asyncio
    async def test_error_stops_capture(self) -> None:
        recognizer = FakeRecognizer()
        adapter = TranscriptCaptureAdapter(recognizer)
        received = []
        adapter.subscribe(received.append)
        await adapter.start()

        recognizer.emit(SpeechCaptureError(SpeechErrorKind.NO_SPEECH))
        recognizer.emit(TranscriptEvent(text="after error", is_final=True))
        await asyncio.sleep(0)

        assert len(received) == 1
        assert received[0].error_kind == SpeechErrorKind.NO_SPEECH
        assert not adapter.is_listening
        assert adapter.listener_count == 0
        assert recognizer.stop_calls == 1

    @pytest.mark.asyncio
    async def test_start_failure_clears_listeners(self) -> None:
        recognizer = FakeRecognizer()
        recognizer.start_error = SpeechCaptureError(SpeechErrorKind.PERMISSION_DENIED)
        adapter = TranscriptCaptureAdapter(recognizer)
        adapter.subscribe(lambda signal: None)

        with pytest.raises(SpeechCaptureError):
            await adapter.start()

        assert not adapter.is_listening
        assert adapter.listener_count == 0

    @pytest.mark.asyncio
    async def test_unsubscribe(self) -> None:
        recognizer = FakeRecognizer()
        adapter = TranscriptCaptureAdapter(recognizer)
        received = []
        subscription = adapter.subscribe(received.append)
        await adapter.start()

        subscription.unsubscribe()
        recognizer.emit(TranscriptEvent(text="ignored", is_final=True))

        assert received == []
        await adapter.stop()


class FakeMicrophone:
    def __init__(self, np, chunks: int = 100, error=None) -> None:
        self._np = np
        self._chunks = chunks
        self._error = error
        self.aborted = False

    async def record_chunk(self, seconds: float):
        await asyncio.sleep(0)
        if self._error is not None:
            raise self._error
        if self._chunks <= 0:
            await asyncio.sleep(3600)
        self._chunks -= 1
        return self._np.ones(16, dtype=self._np.float32)

    def abort(self) -> None:
        self.aborted = True


class ScriptedSTT:
    def __init__(self, texts: list[str]) -> None:
        self._texts = list(texts)

    async def transcribe_audio(self, audio) -> TranscriptionResult:
        return TranscriptionResult(text=self._texts.pop(0) if self._texts else "")


class TestWhisperSpeechRecognizer:
    @pytest.fixture
    def np(self):
        return pytest.importorskip("numpy")

    @staticmethod
    async def collect_until(signals: list, predicate) -> None:
        for _ in range(200):
            if predicate(signals):
                return
            await asyncio.sleep(0)

    @pytest.mark.asyncio
    async def test_chunks_become_final_segments(self, np) -> None:
        from interview_session_engine.voice.whisper_recognizer import WhisperSpeechRecognizer

        recognizer = WhisperSpeechRecognizer(
            stt=ScriptedSTT(["I built", "the billing service"]),
            microphone=FakeMicrophone(np, chunks=2),
        )
        signals: list = []

        await recognizer.start(signals.append)
        await self.collect_until(signals, lambda s: len(s) >= 2)
        await recognizer.stop()

        assert [signal.text for signal in signals] == ["I built", "the billing service"]
        assert all(signal.is_final for signal in signals)

    @pytest.mark.asyncio
    async def test_silence_reports_no_speech(self, np) -> None:
        from interview_session_engine.voice.whisper_recognizer import WhisperSpeechRecognizer

        recognizer = WhisperSpeechRecognizer(
            stt=ScriptedSTT([]),
            microphone=FakeMicrophone(np),
            max_silent_chunks=2,
        )
        signals: list = []

        await recognizer.start(signals.append)
        await self.collect_until(signals, lambda s: len(s) >= 1)
        await recognizer.stop()

        assert len(signals) == 1
        assert signals[0].error_kind == SpeechErrorKind.NO_SPEECH

    @pytest.mark.asyncio
    async def test_microphone_denied(self, np) -> None:
        from interview_session_engine.voice.microphone import MicrophoneError
        from interview_session_engine.voice.whisper_recognizer import WhisperSpeechRecognizer

        microphone = FakeMicrophone(np, error=MicrophoneError("denied", permission_denied=True))
        recognizer = WhisperSpeechRecognizer(stt=ScriptedSTT([]), microphone=microphone)
        signals: list = []

        await recognizer.start(signals.append)
        await self.collect_until(signals, lambda s: len(s) >= 1)
        await recognizer.stop()

        assert signals[0].error_kind == SpeechErrorKind.PERMISSION_DENIED
        assert microphone.aborted


class Segment:
    def __init__(self, text: str, no_speech_prob: float, avg_logprob: float = -0.2) -> None:
        self.text = text
        self.no_speech_prob = no_speech_prob
        self.avg_logprob = avg_logprob


def test_summarize_segments_drops_silence() -> None:
    from interview_session_engine.voice.stt import summarize_segments

    result = summarize_segments(
        [
            Segment(" I scaled ", 0.1, -0.2),
            Segment("(wind noise)", 0.95, -1.5),
            Segment("the search cluster", 0.2, -0.4),
        ],
        max_no_speech_prob=0.8,
    )

    assert result.text == "I scaled the search cluster"
    assert result.avg_logprob == pytest.approx(-0.3)
    assert result.no_speech_prob == 0.95


def test_summarize_segments_all_silent() -> None:
    from interview_session_engine.voice.stt import summarize_segments

    result = summarize_segments([Segment("", 0.9)], max_no_speech_prob=0.8)

    assert result.is_empty
    assert result.avg_logprob is None
