"""
Haptic signal sinks.

The core never produces vibration itself; it tells a sink which kind of
event should fire and moves on.
"""

import logging
from typing import List, Protocol

from .models import HapticKind

logger = logging.getLogger(__name__)


class HapticSink(Protocol):
    def signal(self, kind: HapticKind) -> None: ...


class NullHapticSink:
    """Sink that drops every signal."""

    def signal(self, kind: HapticKind) -> None:
        return None


class LoggingHapticSink:
    """Sink that records signals in the log, for headless callers."""

    def signal(self, kind: HapticKind) -> None:
        logger.debug("Haptic signal: %s", kind)


class RecordingHapticSink:
    """Sink that keeps every signal in order. Useful in tests."""

    def __init__(self) -> None:
        self.signals: List[HapticKind] = []

    def signal(self, kind: HapticKind) -> None:
        self.signals.append(kind)
