"""User-visible notice delivery.

The watcher has no UI of its own; notices are warnings on the
``vaultstamp.infra.notices`` logger until a desktop notifier is wired in.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_NOTICE_DURATION_MS = 4000


class Notifier(Protocol):  # pragma: no cover - interface only
    """Abstract user-notice publisher."""

    def notify(
        self, message: str, *, duration_ms: int = DEFAULT_NOTICE_DURATION_MS
    ) -> None:
        """Show ``message`` to the user for roughly ``duration_ms``."""


@dataclass
class LoggingNotifier(Notifier):
    """Default notifier that emits notices as warnings."""

    def notify(
        self, message: str, *, duration_ms: int = DEFAULT_NOTICE_DURATION_MS
    ) -> None:
        logger.warning(
            "user_notice",
            extra={"notice": message, "duration_ms": duration_ms},
        )


_singleton: LoggingNotifier | None = None


def get_notifier() -> Notifier:
    """Return the process-wide notifier."""

    global _singleton
    if _singleton is None:
        _singleton = LoggingNotifier()
    return _singleton
