"""User-facing notifications (toasts).

Notifications are fire-and-forget: a failing notifier is logged and never
changes the outcome of a settlement step.
"""

from __future__ import annotations

import logging
from typing import Protocol

_LOG = logging.getLogger(__name__)

DEFAULT = "default"
DESTRUCTIVE = "destructive"


class Notifier(Protocol):
    def notify(self, title: str, description: str, variant: str = DEFAULT) -> None: ...


class LoggingNotifier:
    """Writes notifications to the ``atlascipher.notify`` logger."""

    def notify(self, title: str, description: str, variant: str = DEFAULT) -> None:
        level = logging.WARNING if variant == DESTRUCTIVE else logging.INFO
        _LOG.log(level, "%s: %s", title, description)


def send(notifier: Notifier, title: str, description: str, variant: str = DEFAULT) -> None:
    try:
        notifier.notify(title, description, variant)
    except Exception:
        _LOG.exception("notifier failed for %r", title)
