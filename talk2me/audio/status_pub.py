"""Status publisher for capture and playback events over pypubsub."""

import logging
from pubsub import pub

from ..models.events import CaptureStateEvent, PlaybackEvent

logger = logging.getLogger(__name__)

CAPTURE_TOPIC = "capture_events"
PLAYBACK_TOPIC = "playback_events"


class StatusPublisher:
    """Publishes capture state and playback lifecycle events using pubsub.pub."""

    def __init__(self, capture_topic: str = CAPTURE_TOPIC, playback_topic: str = PLAYBACK_TOPIC):
        """Initialize status publisher.

        Args:
            capture_topic: Pub/sub topic for capture state events
            playback_topic: Pub/sub topic for playback events
        """
        self.capture_topic = capture_topic
        self.playback_topic = playback_topic
        logger.info(f"StatusPublisher initialized with topics: {capture_topic}, {playback_topic}")

    def publish_capture_state(self, event: CaptureStateEvent) -> None:
        """Publish a capture state change."""
        pub.sendMessage(self.capture_topic, event=event)
        logger.debug(f"Published capture state: {event.state.value} ({event.session_id})")

    def publish_playback_event(self, event: PlaybackEvent) -> None:
        """Publish a playback lifecycle event."""
        pub.sendMessage(self.playback_topic, event=event)
        logger.debug(f"Published playback event: {event.event_type} ({event.playback_id})")
