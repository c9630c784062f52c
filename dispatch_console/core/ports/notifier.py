from __future__ import annotations

from typing import Literal, Protocol

NoticeLevel = Literal["info", "warning", "error"]


class Notifier(Protocol):
    """User-facing notification sink (toasts in the console UI)."""

    def notify(self, title: str, message: str, *, level: NoticeLevel = "info") -> None:
        """Show a single notification."""
