"""Process-wide tracker components, wired once from settings.

Route handlers reach them through the `get_*` dependencies so tests can
swap them with `app.dependency_overrides`.
"""

from app.config import settings
from app.tracker.board_store import BoardStore
from app.tracker.client import TrackerClient
from app.tracker.cooldown import CooldownTable
from app.tracker.coordinator import SubmissionCoordinator
from app.tracker.sinks import HttpSubmissionSink, NotificationFeed

board_store = BoardStore()
notifications = NotificationFeed(maxlen=settings.notification_feed_size)
client = TrackerClient(settings.api_base_url, settings.api_key, timeout=settings.request_timeout_s)
submission_sink = HttpSubmissionSink(client, board_store, notifier=notifications)
coordinator = SubmissionCoordinator(
    board_store,
    submission_sink,
    cooldowns=CooldownTable(settings.submission_cooldown_ms),
    notifier=notifications,
    config=settings,
)
board_store.subscribe(coordinator.rebuild_index)


def get_board_store() -> BoardStore:
    return board_store


def get_coordinator() -> SubmissionCoordinator:
    return coordinator


def get_client() -> TrackerClient:
    return client


def get_notifications() -> NotificationFeed:
    return notifications
