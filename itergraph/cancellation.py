import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from typing import Any


class CancellationToken:
    """
    A one-way abort latch shared by the tasks of an invocation.

    Once cancelled it stays cancelled. Only the first reason is kept, so the failure
    that triggered the abort is never overwritten by later ones. A token linked to a
    parent also reports cancelled as soon as its parent is.
    """

    def __init__(self, parent: "CancellationToken | None" = None) -> None:
        self.parent = parent
        self._lock = threading.Lock()
        self._cancelled = False
        self._reason: "Any" = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled or (self.parent is not None and self.parent.cancelled)

    @property
    def reason(self) -> "Any":
        if self._cancelled:
            return self._reason

        return self.parent.reason if self.parent is not None else None

    def cancel(self, reason: "Any" = "aborted") -> bool:
        """Latch the token. Returns False if it was already cancelled."""
        with self._lock:
            if self._cancelled:
                return False

            self._reason = reason
            self._cancelled = True
            return True

    def child(self) -> "CancellationToken":
        return CancellationToken(parent=self)
