"""
Text-based session interface.

Provides a command-line REPL for answering a live interview session by
typing, with optional speech capture when a recognizer is available.
"""

import asyncio
from abc import ABC, abstractmethod

from interview_session_engine.errors import FinalizeFailedError, SessionEngineError
from interview_session_engine.orchestrator.session_orchestrator import SessionOrchestrator
from interview_session_engine.schemas import SessionSummary

HELP_TEXT = """Commands:
  /record   start speaking your answer
  /stop     stop recording
  /submit   save the answer and move to the next question
  /skip     skip this question
  /retry    retry the last failed step
  /end      end the interview
  /quit     leave (your draft is kept)
Any other line replaces your answer text."""


class SessionInterface(ABC):
    """Abstract base class for session interfaces."""

    @abstractmethod
    async def run(self) -> None:
        """Run the session interface."""
        ...

    @abstractmethod
    async def send_message(self, message: str) -> None:
        """
        Send a message to the user.

        Args:
            message: Message to display.
        """
        ...

    @abstractmethod
    async def receive_input(self) -> str:
        """
        Receive input from the user.

        Returns:
            User's input string.
        """
        ...


class TextInterface(SessionInterface):
    """
    Command-line interface for a live interview session.

    The orchestrator owns all session flow; this class only maps commands
    to transitions and renders notices.
    """

    def __init__(self, orchestrator: SessionOrchestrator) -> None:
        """
        Initialize the text interface.

        Args:
            orchestrator: Loaded or unloaded session orchestrator.
        """
        self._orchestrator = orchestrator
        self._retry: str | None = None
        self._unsaved_summary: SessionSummary | None = None

    async def run(self) -> None:
        """Run the interactive session until it completes or the user leaves."""
        orchestrator = self._orchestrator
        print("\n" + "=" * 60)
        print("Interview Practice Session")
        print("=" * 60 + "\n")

        try:
            draft = await orchestrator.load()
        except SessionEngineError as e:
            await self.send_message(f"Error: {e.message}")
            return

        session = orchestrator.session
        if session is not None:
            print(f"{session.session_type.value} interview for {session.role}")
        print(f"Question {orchestrator.question_count + 1} of {orchestrator.max_questions}")
        print(HELP_TEXT)

        if draft is not None:
            await self.send_message(f"Recovered unsent answer:\n  {draft.text}")
            keep = await self._get_input("Keep it? [Y/n]: ")
            if keep.strip().lower() in ("n", "no"):
                await orchestrator.discard_recovered_draft()
            else:
                orchestrator.accept_recovered_draft()

        await self._attempt("fetch")

        try:
            while orchestrator.is_active:
                line = await self.receive_input()
                if not await self._handle(line):
                    break
        finally:
            await orchestrator.dispose()

        if orchestrator.summary is not None:
            await self._display_summary(orchestrator.summary)
        elif self._unsaved_summary is not None:
            print("\nThe session could not be marked complete. Your answers are saved.")
            await self._display_summary(self._unsaved_summary)

    async def _handle(self, line: str) -> bool:
        """Handle one input line. Returns False when the user leaves."""
        command = line.strip().lower()
        orchestrator = self._orchestrator

        if command in ("/quit", "/exit"):
            warning = orchestrator.unsaved_changes_warning
            if warning:
                confirm = await self._get_input(f"{warning} [y/N]: ")
                if confirm.strip().lower() not in ("y", "yes"):
                    return True
            return False
        if command == "/help":
            print(HELP_TEXT)
        elif command == "/record":
            if await orchestrator.start_recording():
                print("Recording... type /stop when finished.")
            else:
                self._show_notice()
        elif command == "/stop":
            await orchestrator.stop_recording()
            await self.send_message(f"Your answer: {orchestrator.answer_text or '(empty)'}")
        elif command in ("/submit", "/skip") and orchestrator.current_question is None:
            self._explain_missing_question()
        elif command == "/submit":
            if not orchestrator.answer_text.strip():
                print("Answer is empty. Type an answer or use /skip.")
            else:
                await self._attempt("submit")
        elif command == "/skip":
            await self._attempt("skip")
        elif command == "/retry":
            if self._retry is None:
                print("Nothing to retry.")
            else:
                await self._attempt(self._retry)
        elif command == "/end":
            await self._attempt("end")
        elif command.startswith("/"):
            print(f"Unknown command: {command}")
        elif line.strip():
            orchestrator.set_answer_text(line.strip())
        return True

    async def _attempt(self, action: str) -> None:
        orchestrator = self._orchestrator
        before = orchestrator.question_count
        try:
            if action == "fetch":
                await orchestrator.fetch_question()
            elif action == "submit":
                await orchestrator.advance()
            elif action == "skip":
                await orchestrator.skip_question()
            elif action == "end":
                await orchestrator.end_session()
            self._retry = None
            self._unsaved_summary = None
        except FinalizeFailedError as e:
            # Any answer was saved; only completing the session remains.
            self._retry = "end"
            self._unsaved_summary = e.summary
            self._report_saved(before)
            await self.send_message(f"Error: {e.message} (type /retry)")
            return
        except SessionEngineError as e:
            self._retry = action
            await self.send_message(f"Error: {e.message} (type /retry)")
            return

        self._report_saved(before)
        if orchestrator.error is not None:
            # Answer saved but the follow-up fetch failed.
            self._retry = "fetch"
            self._show_notice()
        elif orchestrator.is_active and orchestrator.current_question:
            await self.send_message(
                f"Question {orchestrator.question_count + 1}: {orchestrator.current_question}"
            )

    def _report_saved(self, before: int) -> None:
        orchestrator = self._orchestrator
        if orchestrator.question_count > before:
            print(f"Saved answer {orchestrator.question_count} of {orchestrator.max_questions}.")

    def _explain_missing_question(self) -> None:
        orchestrator = self._orchestrator
        if orchestrator.question_count >= orchestrator.max_questions:
            print("All questions are answered. Type /end to finish the interview.")
            return
        self._retry = "fetch"
        print("No question is loaded yet. Type /retry to load it; your answer is kept.")

    def _show_notice(self) -> None:
        notice = self._orchestrator.error
        if notice is not None:
            print(f"! {notice.message}")
            self._orchestrator.dismiss_error()

    async def send_message(self, message: str) -> None:
        """
        Display a message to the terminal.

        Args:
            message: Message to display.
        """
        print(f"\n{message}\n")

    async def receive_input(self) -> str:
        """
        Get input from the terminal.

        Returns:
            User's input string.
        """
        return await self._get_input("> ")

    async def _get_input(self, prompt: str) -> str:
        # Read in a worker thread so speech capture keeps running on the loop.
        try:
            return await asyncio.to_thread(input, prompt)
        except EOFError:
            return "/quit"

    async def _display_summary(self, summary: SessionSummary) -> None:
        """Display the session summary."""
        print("\n" + "=" * 60)
        print("Interview Complete")
        print("=" * 60)
        print(f"Questions answered: {summary.total_questions}")
        if summary.final_score is not None:
            print(f"Completion score: {summary.final_score}%")
        minutes, seconds = divmod(int(summary.duration_seconds), 60)
        print(f"Duration: {minutes}m {seconds}s")
        for interaction in summary.interactions:
            print(f"\n{interaction.order}. {interaction.question_text}")
            print(f"   {interaction.answer_text}")
        print()
