"""Main application entry point for Talk2Me."""

import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Optional

from talk2me import __version__
from talk2me.audio.playback import AudioPlayer, PlaybackHandle
from talk2me.audio.session_manager import CaptureSessionManager
from talk2me.audio.status_pub import StatusPublisher
from talk2me.chat.engine import DEFAULT_BASE_URL, OpenAIAudioChatEngine
from talk2me.errors import PlaybackError, RemoteCallError
from talk2me.models.conversation import RemoteReply
from talk2me.services.conversation_service import (
    DEFAULT_AUDIO_PLACEHOLDER,
    DEFAULT_AUDIO_PROMPT,
    DEFAULT_GREETING,
    ConversationService,
)

from .config import Talk2MeConfig

logger = logging.getLogger(__name__)


class ChatApp:
    """Wires capture, conversation and playback together for one UI session."""

    def __init__(self, config_path: Optional[str] = None, log_level: Optional[str] = None):
        self.config = Talk2MeConfig(config_path)
        if log_level:
            self.config.set('logging.level', log_level)
        setup_logging(self.config, self.config.get('logging.level', 'INFO'))

        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.status_publisher: Optional[StatusPublisher] = None
        self.conversation: Optional[ConversationService] = None
        self.capture_manager: Optional[CaptureSessionManager] = None
        self.player: Optional[AudioPlayer] = None
        self.last_reply: Optional[RemoteReply] = None

    def init(self) -> None:
        logger.info("Initializing services...")

        self.status_publisher = StatusPublisher()

        engine = OpenAIAudioChatEngine(
            api_key=self.config.get_openai_api_key(),
            model=self.config.get('openai.model', 'gpt-4o-audio-preview'),
            voice=self.config.get('openai.voice', 'alloy'),
            base_url=self.config.get('openai.base_url', DEFAULT_BASE_URL),
            timeout_seconds=self.config.get('openai.timeout_seconds', 60)
        )
        self.conversation = ConversationService(
            engine,
            greeting=self.config.get('conversation.greeting', DEFAULT_GREETING),
            audio_prompt=self.config.get('conversation.audio_prompt', DEFAULT_AUDIO_PROMPT),
            audio_placeholder=self.config.get('conversation.audio_placeholder', DEFAULT_AUDIO_PLACEHOLDER)
        )

        sample_rate = self.config.get('audio.sample_rate')
        chunk_size = self.config.get('audio.chunk_size', 4096)
        logger.info(f"Audio settings: {sample_rate or 'device default'} Hz, {chunk_size} samples/chunk")

        self.capture_manager = CaptureSessionManager(
            submit_callback=self.send_audio,
            sample_rate=sample_rate,
            chunk_size=chunk_size,
            input_device_index=self.config.get('audio.input_device_index'),
            status_publisher=self.status_publisher
        )
        self.player = AudioPlayer(
            output_device_index=self.config.get('audio.output_device_index'),
            status_publisher=self.status_publisher
        )
        self.loop = asyncio.new_event_loop()

    def send_text(self, text: str) -> RemoteReply:
        """Send a typed message and return the assistant's reply."""
        self.last_reply = self.loop.run_until_complete(self.conversation.submit_text(text))
        return self.last_reply

    def send_audio(self, container: bytes) -> Optional[RemoteReply]:
        """Send a recorded WAV container and return the assistant's reply."""
        self.last_reply = self.loop.run_until_complete(self.conversation.submit_audio(container))
        return self.last_reply

    def start_recording(self) -> None:
        self.capture_manager.start()

    def stop_recording(self) -> Optional[RemoteReply]:
        """Stop recording and submit it. Returns the reply, or None if nothing was sent."""
        self.last_reply = None
        self.capture_manager.stop()
        return self.last_reply

    def play_reply(self, reply: Optional[RemoteReply]) -> Optional[PlaybackHandle]:
        """Play the reply's audio, if it has any."""
        if reply is None or not reply.has_audio:
            return None
        return self.player.play(reply.audio.data)

    def cleanup(self) -> None:
        if self.capture_manager:
            self.capture_manager.teardown()
        if self.player:
            self.player.close()
        if self.loop and not self.loop.is_closed():
            self.loop.close()
        logger.info("Talk2Me shut down")


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'logs/talk2me.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger = logging.getLogger(__name__)
    logger.info("="*50)
    logger.info("Talk2Me application starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("="*50)


def run_single_turn(app: ChatApp, text: str) -> None:
    """Send one text message, print the reply and play its audio to the end."""
    try:
        reply = app.send_text(text)
    except RemoteCallError as e:
        logger.error(f"Error calling API: {e}")
        print("Sorry, there was an error processing your request.")
        return
    print(f"Assistant: {reply.text}")

    try:
        handle = app.play_reply(reply)
    except PlaybackError as e:
        logger.error(f"Error playing audio: {e}")
        print("Sorry, there was an error playing the audio.")
        return
    if handle:
        handle.wait()


def main() -> None:
    """Main entry point for Talk2Me application."""
    parser = argparse.ArgumentParser(
        description="Talk2Me - voice and text chat with an audio-capable model",
        epilog="Commands: /r=Start/stop recording, /h=History, /q=Quit"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in defaults)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (overrides config)"
    )

    parser.add_argument(
        "--text",
        type=str,
        help="Send a single text message, play the reply and exit"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Talk2Me v{__version__}"
    )

    args = parser.parse_args()

    app = ChatApp(args.config, args.log_level)
    try:
        app.init()
        if args.text:
            run_single_turn(app, args.text)
        else:
            from talk2me.ui.chat_screen import ChatScreen
            ChatScreen(app).run()
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
    except Exception as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        app.cleanup()


if __name__ == "__main__":
    main()
