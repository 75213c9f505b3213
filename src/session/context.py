"""Explicit per-session state.

A LivenessToken tells an async continuation whether the session that started
it is still open. SessionContext also carries the pending deep-link target so
nothing lives in module-level globals.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


class LivenessToken:
    """Flag shared between a session and its in-flight work."""

    def __init__(self):
        self._alive = True

    @property
    def alive(self) -> bool:
        return self._alive

    def kill(self) -> None:
        self._alive = False


@dataclass
class SessionContext:
    token: LivenessToken = field(default_factory=LivenessToken)
    pending_deep_link: Optional[Dict[str, Any]] = None
    deep_link_processing: bool = False

    @property
    def is_open(self) -> bool:
        return self.token.alive

    def set_pending_deep_link(self, target: Dict[str, Any]) -> bool:
        """Queue a deep-link target. Ignored while another one is being processed."""
        if self.deep_link_processing or not self.is_open:
            return False
        self.pending_deep_link = target
        return True

    def take_pending_deep_link(self) -> Optional[Dict[str, Any]]:
        """Pop the pending target and mark it as processing."""
        target = self.pending_deep_link
        if target is not None:
            self.pending_deep_link = None
            self.deep_link_processing = True
        return target

    def finish_deep_link(self) -> None:
        self.deep_link_processing = False

    def close(self) -> None:
        self.token.kill()
        self.pending_deep_link = None
        self.deep_link_processing = False
