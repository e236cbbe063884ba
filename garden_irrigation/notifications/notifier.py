from garden_irrigation.interfaces import NotifierLike
from garden_irrigation.utils.logger import get_logger


DEFAULT_TITLE = "Garden Irrigation"

# Dedicated logger so notification lines can be filtered out of the engine log
_notification_logger = get_logger("notifications")
logger = get_logger("notifier")


class LogfileNotifier:
    """Writes each notification as a single log line."""

    def __init__(self, service: str = None):
        self.service = service

    def notify(self, title: str, preamble: str, body: str) -> None:
        if self.service:
            _notification_logger.info(f"[{self.service}] {title} | {preamble} | {body}")
        else:
            _notification_logger.info(f"{title} | {preamble} | {body}")


class CompositeNotifier:
    """Fans one notification out to several sinks. A failing sink does not stop the others."""

    def __init__(self, *notifiers: NotifierLike):
        self.notifiers = list(notifiers)

    def notify(self, title: str, preamble: str, body: str) -> None:
        for notifier in self.notifiers:
            safe_notify(notifier, title, preamble, body)


def safe_notify(notifier: NotifierLike, title: str, preamble: str, body: str) -> None:
    """Fire-and-forget notification. Failures are logged and never reach the irrigation control flow."""
    try:
        notifier.notify(title, preamble, body)
    except Exception as e:
        logger.error(f"Failed to send notification '{body}': {e}")
