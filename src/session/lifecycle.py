"""App foreground/background signal."""

from enum import Enum
from typing import Callable, List

from src.utils.logger_config import get_logger

logger = get_logger(__name__)


class AppState(str, Enum):
    ACTIVE = "active"
    BACKGROUND = "background"
    INACTIVE = "inactive"


class AppLifecycleMonitor:
    """Fans app state transitions out to subscribers."""

    def __init__(self, initial_state: AppState = AppState.ACTIVE):
        self.state = initial_state
        self._subscribers: List[Callable[[AppState], None]] = []

    def subscribe(self, callback: Callable[[AppState], None]) -> Callable[[], None]:
        """Register a callback. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def emit(self, state: AppState) -> None:
        """Record a transition and notify subscribers. A failing subscriber is logged and skipped."""
        state = AppState(state)
        logger.debug(f"App state {self.state.value} -> {state.value}")
        self.state = state
        for callback in list(self._subscribers):
            try:
                callback(state)
            except Exception as e:
                logger.error(f"App state subscriber failed: {e}")
