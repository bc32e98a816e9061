import asyncio
import logging
from collections.abc import Callable

from display_sync.ports.signaling import SignalListenerPort

logger = logging.getLogger(__name__)


class ListenerBindError(Exception):
    pass


class ListenerSupervisor:
    """Keeps one signal listener bound for as long as the receiver runs.

    A listener that fails after a successful start is discarded and a fresh
    one is bound on the same endpoint. A failed rebind counts as another
    failure and is retried after ``rebind_delay_seconds``. Only the very
    first bind is fatal.
    """

    def __init__(
        self,
        listener_factory: Callable[[], SignalListenerPort],
        rebind_delay_seconds: float = 1.0,
    ) -> None:
        self._listener_factory = listener_factory
        self._rebind_delay_seconds = rebind_delay_seconds
        self._listener: SignalListenerPort | None = None
        self._stop_requested = asyncio.Event()
        self._running = False
        self._restart_count = 0

    @property
    def listener(self) -> SignalListenerPort | None:
        return self._listener

    @property
    def running(self) -> bool:
        return self._running

    @property
    def restart_count(self) -> int:
        return self._restart_count

    async def _bind(self) -> None:
        listener = self._listener_factory()
        await listener.start()
        if not listener.is_serving:
            await listener.stop()
            raise OSError("listener is not accepting connections after start")
        self._listener = listener

    async def start(self) -> None:
        try:
            await self._bind()
        except OSError as exc:
            logger.error("Failed to create listener: %s", exc)
            raise ListenerBindError(str(exc)) from exc
        self._running = True

    async def run(self) -> None:
        if self._listener is None:
            await self.start()

        try:
            while not self._stop_requested.is_set():
                if self._listener is None:
                    await self._rebind()
                    continue

                failed = await self._wait_for_failure_or_stop(self._listener)
                if self._stop_requested.is_set():
                    break
                if failed:
                    logger.error("Listener failed, restarting")
                    await self._discard_listener()
        except asyncio.CancelledError:
            logger.info("Listener supervisor cancelled")
        finally:
            self._running = False
            await self._discard_listener()
            logger.info("Shutting down gracefully...")

    async def _wait_for_failure_or_stop(self, listener: SignalListenerPort) -> bool:
        failure_task = asyncio.create_task(listener.wait_failed())
        stop_task = asyncio.create_task(self._stop_requested.wait())
        try:
            done, _ = await asyncio.wait(
                {failure_task, stop_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            failure_task.cancel()
            stop_task.cancel()
        return failure_task in done

    async def _rebind(self) -> None:
        try:
            await self._bind()
        except OSError as exc:
            logger.error("Failed to restart listener: %s", exc)
            try:
                await asyncio.wait_for(
                    self._stop_requested.wait(),
                    timeout=self._rebind_delay_seconds,
                )
            except asyncio.TimeoutError:
                pass
            return

        self._restart_count += 1
        logger.info("Listener restarted successfully", extra={"event": "listener_restarted"})

    async def _discard_listener(self) -> None:
        listener, self._listener = self._listener, None
        if listener is not None:
            await listener.stop()

    def request_stop(self) -> None:
        self._running = False
        self._stop_requested.set()
