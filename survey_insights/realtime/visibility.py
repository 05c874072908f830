"""Visibility sources tell a poll controller whether anyone is watching.

A host environment (a dashboard window, a terminal UI, a test) implements
:class:`VisibilitySource`; the controller pauses while the source reports
hidden and resumes when it becomes visible again.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, List, Protocol

logger = logging.getLogger(__name__)

VisibilityCallback = Callable[[bool], None]


class VisibilitySource(Protocol):
    def is_visible(self) -> bool: ...

    def subscribe(self, callback: VisibilityCallback) -> Callable[[], None]:
        """Register *callback*; return a function that unregisters it."""
        ...


class AlwaysVisible:
    """Source for headless consumers that are always being observed."""

    def is_visible(self) -> bool:
        return True

    def subscribe(self, callback: VisibilityCallback) -> Callable[[], None]:
        return lambda: None


class ManualVisibility:
    """Visibility flag flipped explicitly by the host via :meth:`set_visible`."""

    def __init__(self, visible: bool = True) -> None:
        self._visible = visible
        self._callbacks: List[VisibilityCallback] = []
        self._lock = threading.Lock()

    def is_visible(self) -> bool:
        return self._visible

    def subscribe(self, callback: VisibilityCallback) -> Callable[[], None]:
        with self._lock:
            self._callbacks.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return _unsubscribe

    def set_visible(self, visible: bool) -> None:
        with self._lock:
            if visible == self._visible:
                return
            self._visible = visible
            callbacks = list(self._callbacks)
        for callback in callbacks:
            try:
                callback(visible)
            except Exception:  # noqa: BLE001 – one bad observer must not block others
                logger.exception("Visibility callback failed")

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._callbacks)
