"""Per-runtime session state shared by the plugin and its dispatcher."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional, Tuple

from appsflyer_bridge.errors import NotInitialized

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class BridgeSession:
    """Initialization flag, registered listener and current operation label.

    The host owns this object and hands it to the plugin.  ``initialized``
    goes false → true once per runtime; only :meth:`reset` (host teardown)
    puts it back.  The listener is read from SDK callback threads, so it is
    published and cleared under a lock.

    The listener is held strongly until :meth:`reset`; the host revokes it
    through teardown rather than through weak-reference expiry.

    ``generation`` is bumped on every reset, so events captured under an
    earlier registration can be told apart from the current one.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._initialized = False
        self._listener: Optional[Listener] = None
        self._generation = 0
        self.current_operation = ""

    @property
    def initialized(self) -> bool:
        with self._lock:
            return self._initialized

    @property
    def listener(self) -> Optional[Listener]:
        with self._lock:
            return self._listener

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def snapshot(self) -> Tuple[Optional[Listener], int]:
        """Listener and generation, read together."""
        with self._lock:
            return self._listener, self._generation

    def register(self, listener: Listener) -> bool:
        """Store the listener and mark the session initialized.

        Returns False (and changes nothing) if already initialized.
        """
        with self._lock:
            if self._initialized:
                return False
            self._listener = listener
            self._initialized = True
            return True

    def require_initialized(self) -> None:
        if not self.initialized:
            raise NotInitialized()

    def reset(self) -> None:
        """Release the listener and return to the uninitialized state."""
        with self._lock:
            self._listener = None
            self._initialized = False
            self._generation += 1
        self.current_operation = ""
        logger.debug("Session reset")
