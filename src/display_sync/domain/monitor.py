import asyncio
import logging

from display_sync.domain.change_detector import ChangeDetector
from display_sync.ports.display import DisplayProbeError, DisplayProbePort
from display_sync.ports.signaling import SignalSenderPort

logger = logging.getLogger(__name__)


class DisplayMonitor:
    def __init__(
        self,
        probe: DisplayProbePort,
        sender: SignalSenderPort,
        poll_interval_seconds: float = 1.0,
        detector: ChangeDetector | None = None,
    ) -> None:
        self._probe = probe
        self._sender = sender
        self._poll_interval_seconds = poll_interval_seconds
        self._detector = detector or ChangeDetector()
        self._stop_requested = asyncio.Event()
        self._running = False
        self._signals_sent = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def signals_sent(self) -> int:
        return self._signals_sent

    @property
    def detector(self) -> ChangeDetector:
        return self._detector

    async def _read_display_state(self) -> bool:
        try:
            return await self._probe.is_display_on()
        except (DisplayProbeError, OSError) as exc:
            logger.warning("Display probe failed, treating display as off: %s", exc)
            return False

    async def poll_once(self) -> bool:
        is_on = await self._read_display_state()
        if not self._detector.observe(is_on):
            return False

        logger.info("Sending device on signal")
        if await self._sender.send():
            self._signals_sent += 1
        return True

    async def run(self) -> None:
        self._running = True
        logger.info("Monitoring display state every %.1fs", self._poll_interval_seconds)

        try:
            while not self._stop_requested.is_set():
                await self.poll_once()
                try:
                    await asyncio.wait_for(
                        self._stop_requested.wait(),
                        timeout=self._poll_interval_seconds,
                    )
                except asyncio.TimeoutError:
                    pass
        except asyncio.CancelledError:
            logger.info("Display monitor cancelled")
        finally:
            self._running = False
            logger.info("Shutting down gracefully...")

    def request_stop(self) -> None:
        self._running = False
        self._stop_requested.set()
