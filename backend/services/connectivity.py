"""
Connectivity state.

New records are stamped `synced` with the current state; the sync
reconciler listens for offline -> online transitions.
"""

import logging
from typing import Callable, List

logger = logging.getLogger(__name__)


class Connectivity:
    def __init__(self, online: bool = True):
        self._online = online
        self._listeners: List[Callable[[bool], None]] = []

    @property
    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool):
        """Update state; listeners fire only on an actual transition."""
        if online == self._online:
            return
        self._online = online
        logger.info(f"Connectivity changed: {'online' if online else 'offline'}")
        for listener in list(self._listeners):
            try:
                listener(online)
            except Exception as e:
                logger.warning(f"Connectivity listener failed: {e}")

    def on_change(self, listener: Callable[[bool], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
