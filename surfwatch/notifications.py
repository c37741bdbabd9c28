# ABOUTME: Notification dispatcher used when no push service is wired in
# ABOUTME: Logs each alert notification and can keep a record of what was sent

import logging
from dataclasses import dataclass

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SentNotification:
    target_user_id: int
    title: str
    body: str
    metadata: dict


class LoggingDispatcher:
    """
    Writes notifications to the log instead of a push service.

    With record=True each notification is also appended to `sent`. Leave it
    off in long-running processes, the list is never trimmed.
    """

    def __init__(self, record: bool = False):
        self.record = record
        self.sent: list[SentNotification] = []

    def dispatch(self, target_user_id: int, title: str, body: str, metadata: dict) -> None:
        if self.record:
            self.sent.append(SentNotification(target_user_id, title, body, dict(metadata)))
        log.info(f"Notify user {target_user_id}: {title} {body}")
