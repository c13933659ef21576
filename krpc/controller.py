"""State tracking for a single RPC call."""

from __future__ import annotations

from typing import Callable


class Controller:
    """Records whether an RPC call failed and why."""

    def __init__(self) -> None:
        self._failed = False
        self._error_text = ""
        self.cancel_requested = False
        self._cancel_callbacks: list[Callable[[], object]] = []

    def reset(self) -> None:
        """Clear the failure flag, error text and cancellation state."""
        self._failed = False
        self._error_text = ""
        self.cancel_requested = False
        self._cancel_callbacks.clear()

    def failed(self) -> bool:
        return self._failed

    def error_text(self) -> str:
        return self._error_text

    def set_failed(self, reason: str) -> None:
        """Mark the call as failed with ``reason``."""
        self._failed = True
        self._error_text = reason

    def start_cancel(self) -> None:
        """Record a client-side cancellation request.

        The request is never sent to the server, so the call itself
        is not cancelled and :meth:`is_canceled` stays false.
        """
        self.cancel_requested = True

    def is_canceled(self) -> bool:
        """Calls are never cancelled."""
        return False

    def notify_on_cancel(self, callback) -> None:
        """Register ``callback`` for cancellation.

        Cancellation never reaches the server, so it is never invoked.
        """
        self._cancel_callbacks.append(callback)