"""Tracks whether network-dependent tiers may be used."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from inbox_sage.core.datetime_utils import utc_now

LOGGER = logging.getLogger(__name__)

NetworkListener = Callable[[bool], None]


class NetworkMonitor:
    """Holds the online/offline flag and notifies listeners when it flips."""

    def __init__(
        self, *, offline: bool = False, clock: Callable[[], datetime] = utc_now
    ) -> None:
        self._offline = offline
        self._clock = clock
        self._listeners: list[NetworkListener] = []
        self.last_online_at: datetime | None = None if offline else clock()
        self.last_offline_at: datetime | None = clock() if offline else None

    def is_offline(self) -> bool:
        """Return ``True`` when the local and cloud tiers must be skipped."""
        return self._offline

    def mark_online(self) -> None:
        """Leave offline mode."""
        if not self._offline:
            return
        self._offline = False
        self.last_online_at = self._clock()
        LOGGER.info("Network back online")
        self._notify()

    def mark_offline(self) -> None:
        """Enter offline mode."""
        if self._offline:
            return
        self._offline = True
        self.last_offline_at = self._clock()
        LOGGER.warning("Network offline; model tiers will be skipped")
        self._notify()

    def add_listener(self, listener: NetworkListener) -> None:
        """Call ``listener(is_offline)`` on every transition."""
        self._listeners.append(listener)

    def remove_listener(self, listener: NetworkListener) -> None:
        """Stop notifying ``listener``; unknown listeners are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._offline)
            except Exception:  # noqa: BLE001
                LOGGER.exception("Network listener failed")


__all__ = ["NetworkListener", "NetworkMonitor"]
