"""
Persists the time of the last successful contact-form submission.
"""

import json
import logging
import math
import time
from collections.abc import Callable
from pathlib import Path

log = logging.getLogger(__name__)

COOLDOWN_SECONDS = 60
STATE_KEY = "contact_last_sent"


class SubmissionCooldown:
    """
    A client-side resubmission guard backed by a small JSON file.

    The timestamp is stored in milliseconds. This is advisory only: deleting
    the file resets it.
    """

    def __init__(
        self,
        state_dir: Path,
        window_seconds: int = COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.state_path = state_dir / "contact_state.json"
        self.window_ms = window_seconds * 1000
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def last_sent_ms(self) -> int:
        """Returns the stored timestamp, or 0 if nothing was sent yet."""
        if not self.state_path.is_file():
            return 0
        try:
            with open(self.state_path, encoding="utf-8") as f:
                return int(json.load(f).get(STATE_KEY, 0))
        except (json.JSONDecodeError, OSError, TypeError, ValueError) as e:
            log.debug(f"Ignoring unreadable cooldown state: {e}")
            return 0

    def remaining_ms(self) -> int:
        return max(0, self.window_ms - (self._now_ms() - self.last_sent_ms()))

    def remaining_seconds(self) -> int:
        return math.ceil(self.remaining_ms() / 1000)

    def record_success(self) -> None:
        """Stores the current time as the last successful submission."""
        try:
            self.state_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.state_path, "w", encoding="utf-8") as f:
                json.dump({STATE_KEY: self._now_ms()}, f)
        except OSError as e:
            log.warning(f"Could not persist contact cooldown: {e}")
