"""
Global note debounce.

One physical key press can arrive through several open input ports, so
repeats of the same note number inside the window are dropped no
matter which device delivered them.
"""

import time
from typing import Callable, Dict, Optional


class NoteDebouncer:
    """
    Accepts a note at most once per ``window_ms``.

    Args:
        window_ms: Debounce window in milliseconds
        clock: Monotonic clock in seconds
    """

    def __init__(self, window_ms: float = 200, clock: Callable[[], float] = time.monotonic):
        self.window = window_ms / 1000.0
        self._clock = clock
        self._last_accepted: Dict[int, float] = {}

    def accept(self, note: int, now: Optional[float] = None) -> bool:
        """Return True and record ``now`` if ``note`` is outside its window."""
        now = self._clock() if now is None else now
        last = self._last_accepted.get(note)
        if last is not None and now - last < self.window:
            return False
        self._last_accepted[note] = now
        return True

    def reset(self):
        self._last_accepted.clear()
