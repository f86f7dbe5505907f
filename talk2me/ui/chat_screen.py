"""Console chat screen: type to send text, toggle recording with /r."""

import logging
from typing import TYPE_CHECKING, Optional

from pubsub import pub
from rich.console import Console
from rich.panel import Panel

from ..audio.status_pub import CAPTURE_TOPIC, PLAYBACK_TOPIC
from ..errors import DeviceAccessError, PlaybackError, RemoteCallError
from ..models.audio import CaptureState
from ..models.conversation import RemoteReply
from ..models.events import CaptureStateEvent, PlaybackEvent

if TYPE_CHECKING:
    from ..main import ChatApp

logger = logging.getLogger(__name__)


class ChatScreen:
    """Line-based chat interface rendered with rich."""

    def __init__(self, app: "ChatApp", console: Optional[Console] = None):
        self.app = app
        self.console = console or Console()
        self.running = False

        pub.subscribe(self.on_capture_event, CAPTURE_TOPIC)
        pub.subscribe(self.on_playback_event, PLAYBACK_TOPIC)

    def on_capture_event(self, event: CaptureStateEvent) -> None:
        if event.state == CaptureState.RECORDING:
            self.console.print("🔴 RECORDING - type /r to stop and send", style="bold red")
        elif event.metadata.get("error"):
            self.console.print(f"❌ Microphone stopped: {event.metadata['error']} "
                               f"- type /r to send what was captured", style="red")
        else:
            self.console.print("⏹️  Recording stopped", style="yellow")

    def on_playback_event(self, event: PlaybackEvent) -> None:
        if event.event_type == "started":
            self.console.print(f"🔊 Playing reply ({event.duration_seconds:.1f}s)", style="blue")

    def show_header(self) -> None:
        self.console.print(Panel.fit("🎙️  Talk2Me", style="bold blue"))
        self.console.print("Type a message and press Enter to send.")
        self.console.print("  [bold green]/r[/bold green] - Start/stop recording")
        self.console.print("  [bold blue]/h[/bold blue] - Show history")
        self.console.print("  [bold red]/q[/bold red] - Quit")
        self.console.print()
        self.show_history()

    def show_history(self) -> None:
        for message in self.app.conversation.history:
            if message.role == "user":
                self.console.print(f"[bold]You:[/bold] {message.text}")
            else:
                self.console.print(f"[bold cyan]Assistant:[/bold cyan] {message.text}")

    def show_reply(self, reply: Optional[RemoteReply]) -> None:
        if reply is None:
            self.console.print("No audio data captured", style="yellow")
            return
        self.console.print(f"[bold cyan]Assistant:[/bold cyan] {reply.text}")
        try:
            self.app.play_reply(reply)
        except PlaybackError as e:
            logger.error(f"Error playing audio: {e}")
            self.console.print("Sorry, there was an error playing the audio.", style="red")

    def toggle_recording(self) -> None:
        if self.app.capture_manager.session is None:
            try:
                self.app.start_recording()
            except DeviceAccessError as e:
                logger.error(f"Error starting recording: {e}")
                self.console.print(f"❌ {e}", style="red")
            return

        try:
            with self.console.status("Sending audio..."):
                reply = self.app.stop_recording()
        except RemoteCallError as e:
            logger.error(f"Error sending audio message: {e}")
            self.console.print("Sorry, there was an error processing your audio message.", style="red")
            return
        self.show_reply(reply)

    def send_text(self, text: str) -> None:
        try:
            with self.console.status("Thinking..."):
                reply = self.app.send_text(text)
        except RemoteCallError as e:
            logger.error(f"Error calling API: {e}")
            self.console.print("Sorry, there was an error processing your request.", style="red")
            return
        self.show_reply(reply)

    def handle_input(self, line: str) -> bool:
        """Handle one input line. Returns False to quit."""
        command = line.strip()
        if not command:
            return True
        if command == "/q":
            return False
        if command == "/r":
            self.toggle_recording()
        elif command == "/h":
            self.show_history()
        else:
            self.send_text(command)
        return True

    def run(self) -> None:
        """Run the input loop until /q, EOF or Ctrl-C."""
        self.show_header()
        self.running = True
        try:
            while self.running:
                try:
                    line = self.console.input("[bold]> [/bold]")
                except EOFError:
                    break
                self.running = self.handle_input(line)
        finally:
            self.running = False
            pub.unsubscribe(self.on_capture_event, CAPTURE_TOPIC)
            pub.unsubscribe(self.on_playback_event, PLAYBACK_TOPIC)
            logger.info("Chat screen closed")
