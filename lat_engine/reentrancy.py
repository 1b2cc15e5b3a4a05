"""
Mutual exclusion around engine operations.
"""
import threading
from contextlib import contextmanager
from typing import Optional

from lat_engine.errors import ReentrancyError


class ReentrancyGuard:
    """
    Held for the full duration of a guarded operation, including nested
    calls into token and vault capabilities.

    Re-entry from the holding thread is rejected. Other threads wait for
    the holder to finish. A callback routed through another thread cannot
    be told apart from an unrelated caller; with `timeout` set, such a wait
    gives up with ReentrancyError instead of blocking forever.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.lock = threading.Lock()
        self.timeout = timeout
        self._owner = None
        self._operation = None

    @property
    def locked(self) -> bool:
        return self.lock.locked()

    @property
    def operation(self) -> Optional[str]:
        """Operation currently holding the guard."""
        return self._operation

    @contextmanager
    def hold(self, operation: str = ""):
        if self._owner == threading.get_ident():
            raise ReentrancyError(f"Reentrant call rejected: {operation} during {self._operation}")
        acquired = self.lock.acquire(timeout=-1 if self.timeout is None else self.timeout)
        if not acquired:
            raise ReentrancyError(
                f"{operation} timed out after {self.timeout}s waiting for {self._operation}"
            )
        self._owner = threading.get_ident()
        self._operation = operation
        try:
            yield
        finally:
            self._owner = None
            self._operation = None
            self.lock.release()
