import asyncio
import contextlib
import logging

from display_sync.domain.connection import ConnectionState, SignalConnection
from display_sync.ports.display import DisplaySleeperPort

logger = logging.getLogger(__name__)

DEFAULT_READ_CHUNK_SIZE = 1024
DEFAULT_WATCH_INTERVAL_SECONDS = 0.2


class TcpSignalSender:
    def __init__(
        self,
        host: str,
        port: int,
        payload: str,
        connect_timeout_seconds: float = 5.0,
    ) -> None:
        self._host = host
        self._port = port
        self._payload = payload
        self._connect_timeout_seconds = connect_timeout_seconds

    async def send(self) -> bool:
        logger.debug("Preparing connection to %s:%d...", self._host, self._port)
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self._host, self._port),
                timeout=self._connect_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(
                "Connection to %s:%d timed out after %.1fs",
                self._host, self._port, self._connect_timeout_seconds,
            )
            return False
        except (OSError, UnicodeError) as exc:
            logger.error("Connection failed: %s", exc)
            return False

        try:
            writer.write(self._payload.encode("utf-8"))
            await writer.drain()
            logger.info("Signal sent: %s", self._payload, extra={"event": "signal_sent"})
            return True
        except OSError as exc:
            logger.error("Failed to send signal: %s", exc)
            return False
        finally:
            writer.close()
            with contextlib.suppress(OSError):
                await writer.wait_closed()
            logger.debug("Connection to %s:%d closed", self._host, self._port)


class TcpSignalListener:
    def __init__(
        self,
        host: str,
        port: int,
        expected_signal: str,
        sleeper: DisplaySleeperPort,
        read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
        watch_interval_seconds: float = DEFAULT_WATCH_INTERVAL_SECONDS,
    ) -> None:
        self._host = host
        self._port = port
        self._expected_signal = expected_signal
        self._sleeper = sleeper
        self._read_chunk_size = read_chunk_size
        self._watch_interval_seconds = watch_interval_seconds
        self._server: asyncio.Server | None = None
        self._serve_task: asyncio.Task | None = None
        self._watch_task: asyncio.Task | None = None
        self._failed = asyncio.Event()
        self._stopping = False
        self._handler_tasks: set[asyncio.Task] = set()

    @property
    def is_serving(self) -> bool:
        return self._server is not None and self._server.is_serving()

    @property
    def bound_port(self) -> int | None:
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        self._server = await asyncio.start_server(
            self._handle_connection,
            host=self._host,
            port=self._port,
            reuse_address=True,
        )
        self._serve_task = asyncio.create_task(self._server.serve_forever())
        self._serve_task.add_done_callback(self._on_serve_done)
        self._watch_task = asyncio.create_task(self._watch_serving())
        logger.info("Listening on %s:%d...", self._host, self.bound_port or self._port)

    async def _watch_serving(self) -> None:
        # serve_forever() only returns once every open connection has closed,
        # so a closed server is noticed here instead.
        while self._server is not None and self._server.is_serving():
            await asyncio.sleep(self._watch_interval_seconds)
        self._report_failure()

    def _on_serve_done(self, task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            self._report_failure(f"failed: {task.exception()}")
        else:
            self._report_failure()

    def _report_failure(self, detail: str = "stopped unexpectedly") -> None:
        if self._stopping or self._failed.is_set():
            return
        logger.error("Listener on %s:%d %s", self._host, self._port, detail)
        self._failed.set()

    async def wait_failed(self) -> None:
        await self._failed.wait()

    async def stop(self) -> None:
        self._stopping = True
        if self._server is not None:
            self._server.close()
        if self._watch_task is not None:
            self._watch_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._watch_task

        handlers = list(self._handler_tasks)
        for task in handlers:
            task.cancel()
        if handlers:
            await asyncio.gather(*handlers, return_exceptions=True)

        if self._serve_task is not None and not self._serve_task.done():
            self._serve_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._serve_task

        self._server = None
        self._serve_task = None
        self._watch_task = None
        logger.debug("Listener on %s:%d closed", self._host, self._port)

    async def _handle_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        task = asyncio.current_task()
        if task is not None:
            self._handler_tasks.add(task)

        peer = _format_peer(writer.get_extra_info("peername"))
        connection = SignalConnection(self._expected_signal, peer=peer)
        logger.info("New connection from %s", peer)

        try:
            while True:
                connection.begin_read()
                chunk = await reader.read(self._read_chunk_size)
                if not chunk:
                    break
                if connection.receive(chunk) is ConnectionState.MATCHED:
                    await self._sleeper.sleep_display()
        except OSError as exc:
            logger.error("Receive error from %s: %s", peer, exc)
        except Exception:
            logger.exception("Error handling connection from %s", peer)
        finally:
            connection.close()
            writer.close()
            with contextlib.suppress(OSError):
                await writer.wait_closed()
            logger.debug("Connection from %s closed", peer)
            if task is not None:
                self._handler_tasks.discard(task)


def _format_peer(peername: object) -> str:
    if isinstance(peername, tuple) and len(peername) >= 2:
        return f"{peername[0]}:{peername[1]}"
    return str(peername)
