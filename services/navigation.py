"""Client-side navigation targets for see-other recoveries."""

from collections import deque

from ui.log_utils import write_cli_log

MAX_HISTORY = 50


class LogNavigator:
    """Record navigation requests instead of driving a browser."""

    def __init__(self, max_history: int = MAX_HISTORY) -> None:
        self.history: deque[str] = deque(maxlen=max_history)

    @property
    def location(self) -> str | None:
        return self.history[-1] if self.history else None

    def navigate(self, location: str) -> None:
        self.history.append(location)
        write_cli_log("NAVIGATE", "Redirected", location=location)
