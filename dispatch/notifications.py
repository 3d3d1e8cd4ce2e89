"""
Purpose: Notification sinks.
Fire-and-forget: the core never waits for or inspects delivery.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from drivers.models import UserRole

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class Notification:
    title: str
    message: str
    user_id: Optional[str] = None
    role: Optional[UserRole] = None
    severity: Severity = Severity.INFO
    sent_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class InMemoryNotificationSink:
    """Keeps every notification; used by tests and the simulation script."""

    def __init__(self):
        self.sent: List[Notification] = []

    def notify(self, title: str, message: str, *, user_id: Optional[str] = None,
               role: Optional[UserRole] = None, severity: Severity = Severity.INFO) -> None:
        self.sent.append(Notification(title, message, user_id=user_id, role=role, severity=severity))

    def for_user(self, user_id: str) -> List[Notification]:
        return [n for n in self.sent if n.user_id == user_id]

    def for_role(self, role: UserRole) -> List[Notification]:
        return [n for n in self.sent if n.role == role]


class LoggingNotificationSink:

    def notify(self, title: str, message: str, *, user_id: Optional[str] = None,
               role: Optional[UserRole] = None, severity: Severity = Severity.INFO) -> None:
        target = user_id or (role.value if role else "ALL")
        logger.info("[%s] to %s: %s - %s", severity.value, target, title, message)
