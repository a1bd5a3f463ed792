"""Terminal interview screen."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from pubsub import pub
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..errors import InterviewClientError
from ..models.events import RecorderEvent, SessionEvent
from ..models.interview import Message, Role
from ..models.api import InterviewReport
from ..publisher import EventPublisher, RECORDER_STATE_TOPIC, TRANSCRIPT_TOPIC
from ..services.phase_controller import TOTAL_STEPS
from ..services.session_controller import SessionController

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "Type an answer and press Enter to send it.\n"
    "/record  start recording a spoken answer\n"
    "/stop    stop recording (the recording waits until you send it)\n"
    "/send    send the recording\n"
    "/cancel  throw the recording away\n"
    "/report  show the feedback report\n"
    "/restart start a new interview\n"
    "/quit    leave"
)


def format_time(seconds: int) -> str:
    """Format whole seconds as m:ss."""
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes}:{secs:02d}"


class InterviewScreen:
    """Line-based interview UI on top of a SessionController."""

    def __init__(self, controller: SessionController, publisher: Optional[EventPublisher] = None,
                 console: Optional[Console] = None):
        self.controller = controller
        self.console = console or Console()
        self.publisher = publisher
        self.running = False
        self._shown = 0

        if publisher is not None:
            pub.subscribe(self._on_transcript_event, publisher.topic(TRANSCRIPT_TOPIC))
            pub.subscribe(self._on_recorder_state, publisher.topic(RECORDER_STATE_TOPIC))

    def show_header(self) -> None:
        phases = self.controller.phases
        title = Text("⚖️  Interview", style="bold blue")
        if self.controller.is_complete:
            status = Text("Interview complete, type /report for feedback", style="bold green")
        else:
            status = Text(f"Question {phases.progress()} of {TOTAL_STEPS} · {phases.label()}")
        bar = "".join("●" if step <= phases.progress() else "○" for step in range(1, TOTAL_STEPS + 1))
        self.console.print(Panel(Text.assemble(title, "\n", status, "\n", bar)))

    def show_message(self, message: Message) -> None:
        if message.role is Role.INTERVIEWER:
            self.console.print(Panel(message.content, title="Interviewer", title_align="left", style="cyan"))
        else:
            self.console.print(Text(f"You: {message.content}", style="white"))

    def show_new_messages(self) -> None:
        transcript = self.controller.transcript
        if self._shown > len(transcript):
            self._shown = 0
        for message in transcript[self._shown:]:
            if message.role is Role.INTERVIEWER:
                self.show_message(message)
        self._shown = len(transcript)

    def show_report(self, report: InterviewReport) -> None:
        self.console.print(Panel(report.summary, title=f"Overall score: {report.overall_score:g}",
                                 style="bold"))

        table = Table(title="Criteria")
        table.add_column("Criterion")
        table.add_column("Score", justify="right")
        table.add_column("Feedback")
        for criterion in report.criteria:
            table.add_row(criterion.name, f"{criterion.score:g}", criterion.feedback)
        self.console.print(table)

        if report.strengths:
            self.console.print("💪 Strengths", style="bold green")
            for item in report.strengths:
                self.console.print(f"  • {item}")
        if report.improvements:
            self.console.print("🎯 To improve", style="bold yellow")
            for item in report.improvements:
                self.console.print(f"  • {item}")
        self.console.print(f"\nRecommendation: {report.recommendation}", style="bold")

    async def run(self, candidate_name: Optional[str] = None, cv_text: Optional[str] = None,
                  cv_file: Optional[Path] = None) -> None:
        """Start an interview and process input lines until the user quits."""
        self.running = True
        self.console.print("🔧 Starting interview...", style="blue")
        await self.controller.start_session(candidate_name, cv_text=cv_text, cv_file=cv_file)
        self.show_header()
        self.show_new_messages()
        self.console.print(HELP_TEXT, style="dim")

        while self.running:
            try:
                line = await asyncio.to_thread(self.console.input, "[bold]> [/bold]")
            except EOFError:
                break
            await self.handle_line(line, candidate_name, cv_text, cv_file)

    async def handle_line(self, line: str, candidate_name: Optional[str] = None,
                          cv_text: Optional[str] = None, cv_file: Optional[Path] = None) -> None:
        command = line.strip()
        try:
            if not command:
                return
            if command == "/quit":
                self.running = False
            elif command == "/help":
                self.console.print(HELP_TEXT, style="dim")
            elif command == "/record":
                await self.controller.start_recording()
            elif command == "/stop":
                artifact = await self.controller.stop_recording()
                if artifact:
                    self.console.print(f"Recording ready ({format_time(artifact.duration_seconds)}), "
                                       f"/send to submit", style="green")
            elif command == "/cancel":
                self.controller.cancel_recording()
                self.console.print("⏹️  Recording discarded", style="yellow")
            elif command == "/report":
                with self.console.status("Preparing your report..."):
                    report = await self.controller.request_report()
                self.show_report(report)
            elif command == "/restart":
                await self.controller.restart()
                await self.controller.start_session(candidate_name, cv_text=cv_text, cv_file=cv_file)
                self.show_header()
                self.show_new_messages()
            elif command == "/send":
                await self._send("")
            elif command.startswith("/"):
                self.console.print(f"Unknown command: {command}", style="yellow")
            else:
                await self._send(command)
        except InterviewClientError as e:
            logger.warning(f"Command '{command}' failed: {e}")
            self.console.print(f"❌ {e}", style="bold red")

    async def _send(self, text: str) -> None:
        with self.console.status("Interviewer is thinking..."):
            await self.controller.send(text)
        self.show_new_messages()
        self.show_header()

    def _on_transcript_event(self, event: SessionEvent) -> None:
        if event.event_type == "rolled_back":
            self.console.print("Your answer was not delivered, please try again.", style="yellow")
        elif event.event_type == "cleared":
            self._shown = 0

    def _on_recorder_state(self, event: RecorderEvent) -> None:
        if event.state == "recording":
            self.console.print("🔴 Recording... /stop when you are done", style="bold red")
