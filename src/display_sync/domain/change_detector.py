import logging

logger = logging.getLogger(__name__)


class ChangeDetector:
    """Edge detector for display power readings.

    Remembers the last reading (``None`` until the first one) and reports
    ``True`` only when a reading differs from the previous one and the new
    reading is "on".
    """

    def __init__(self) -> None:
        self._last_state: bool | None = None

    @property
    def last_state(self) -> bool | None:
        return self._last_state

    def observe(self, is_on: bool) -> bool:
        if is_on == self._last_state:
            return False

        logger.info(
            "Display state changed: %s", "On" if is_on else "Off", extra={"event": "state_change"}
        )
        self._last_state = is_on
        return is_on
