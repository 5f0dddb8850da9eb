"""
Main entry point for the interview session engine.
"""

import argparse
import asyncio
import logging
import sys

from interview_session_engine.config import Settings, get_settings
from interview_session_engine.db.gateway import SqlInteractionStore
from interview_session_engine.drafts.store import JsonFileDraftStore
from interview_session_engine.io.text_interface import TextInterface
from interview_session_engine.orchestrator.session_orchestrator import SessionOrchestrator
from interview_session_engine.questions.http_provider import HttpQuestionProvider
from interview_session_engine.questions.provider import QuestionProvider, ResilientQuestionProvider
from interview_session_engine.questions.question_bank import QuestionBank
from interview_session_engine.schemas import SessionType
from interview_session_engine.voice.transcript import TranscriptCaptureAdapter


def setup_logging() -> None:
    """Configure application logging."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def build_question_provider(settings: Settings) -> QuestionProvider:
    """
    Build the question provider described by settings.

    Uses the question-generation service when a URL is configured, wrapped
    so the local question bank takes over when it is unavailable.
    """
    bank = QuestionBank()
    if not settings.question_service_url:
        return bank
    service = HttpQuestionProvider(
        endpoint=settings.question_service_url,
        timeout=settings.question_service_timeout,
    )
    return ResilientQuestionProvider(
        primary=service,
        fallback=bank,
        fallback_enabled=settings.question_fallback_enabled,
    )


def build_transcript(settings: Settings, voice: bool) -> TranscriptCaptureAdapter | None:
    """Build a speech capture adapter when voice input is requested."""
    if not voice:
        return None

    # Lazy import so text mode doesn't require optional voice deps.
    from interview_session_engine.voice.microphone import MicrophoneCapture
    from interview_session_engine.voice.stt import STTConfig, WhisperSTT
    from interview_session_engine.voice.whisper_recognizer import WhisperSpeechRecognizer

    recognizer = WhisperSpeechRecognizer(
        stt=WhisperSTT(STTConfig(model_size=settings.stt_model_size, device=settings.stt_device)),
        microphone=MicrophoneCapture(),
        chunk_seconds=settings.speech_chunk_seconds,
    )
    return TranscriptCaptureAdapter(recognizer)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="interview-session")
    parser.add_argument("--user", required=True, help="Identifier of the user answering")
    parser.add_argument("--session", help="Resume an existing session by id")
    parser.add_argument("--role", default="Software Engineer", help="Role for a new session")
    parser.add_argument(
        "--type",
        dest="session_type",
        choices=[t.value for t in SessionType],
        default=SessionType.BEHAVIORAL.value,
        help="Interview type for a new session",
    )
    parser.add_argument("--level", default="mid", help="Experience level for a new session")
    parser.add_argument("--industry", help="Industry for a new session")
    parser.add_argument("--voice", action="store_true", help="Enable spoken answers")
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create database tables before starting",
    )
    return parser.parse_args(argv)


async def run_session(argv: list[str] | None = None) -> None:
    """
    Run an interactive session.

    Creates a new session unless one is given, then hands it to the
    terminal interface.
    """
    settings = get_settings()
    logger = logging.getLogger(__name__)
    args = parse_args(argv)

    store = SqlInteractionStore.from_url(settings.database_url, echo=settings.debug)
    questions = build_question_provider(settings)
    try:
        if args.create_schema:
            await store.create_schema()

        session_id = args.session
        if session_id is None:
            session = await store.create_session(
                user_id=args.user,
                role=args.role,
                session_type=SessionType(args.session_type),
                experience_level=args.level,
                industry=args.industry,
            )
            session_id = session.id
            logger.info(f"Created session {session_id}")

        orchestrator = SessionOrchestrator(
            session_id=session_id,
            user_id=args.user,
            store=store,
            question_provider=questions,
            transcript=build_transcript(settings, args.voice),
            draft_store=JsonFileDraftStore(settings.drafts_dir),
            settings=settings,
        )
        print(f"Session id: {session_id}")
        await TextInterface(orchestrator).run()
    finally:
        await questions.close()
        await store.dispose()


def main() -> None:
    """Main entry point for the application."""
    setup_logging()

    try:
        asyncio.run(run_session(sys.argv[1:]))
    except KeyboardInterrupt:
        print("\nSession interrupted. Your draft has been kept.")
        sys.exit(0)
    except Exception as e:
        logging.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
