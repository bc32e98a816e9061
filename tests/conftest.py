import asyncio
import socket
from collections.abc import Callable

import pytest

from display_sync.ports.display import DisplayProbeError

SIGNAL = "sleep_display"


def find_unused_tcp_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


async def wait_until(condition: Callable[[], bool], timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not condition():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


async def send_raw(port: int, *chunks: bytes, pause: float = 0.0) -> None:
    _, writer = await asyncio.open_connection("127.0.0.1", port)
    try:
        for chunk in chunks:
            writer.write(chunk)
            await writer.drain()
            if pause:
                await asyncio.sleep(pause)
    finally:
        writer.close()
        await writer.wait_closed()


class FakeDisplayProbe:
    """Replays scripted readings; ``None`` entries raise a probe error."""

    def __init__(self, readings: list[bool | None] | None = None) -> None:
        self._readings = list(readings or [])
        self._call_count = 0

    @property
    def call_count(self) -> int:
        return self._call_count

    async def is_display_on(self) -> bool:
        self._call_count += 1
        if not self._readings:
            return False
        reading = self._readings.pop(0)
        if reading is None:
            raise DisplayProbeError("probe unavailable")
        return reading

    def feed(self, readings: list[bool | None]) -> None:
        self._readings.extend(readings)


class FakeDisplaySleeper:
    def __init__(self) -> None:
        self._sleep_count = 0

    @property
    def sleep_count(self) -> int:
        return self._sleep_count

    async def sleep_display(self) -> None:
        await asyncio.sleep(0)
        self._sleep_count += 1


class FakeSignalSender:
    def __init__(self, succeed: bool = True) -> None:
        self._succeed = succeed
        self._send_count = 0

    @property
    def send_count(self) -> int:
        return self._send_count

    async def send(self) -> bool:
        self._send_count += 1
        return self._succeed


class FakeSignalListener:
    def __init__(self, fail_on_start: bool = False, serves: bool = True) -> None:
        self._fail_on_start = fail_on_start
        self._serves = serves
        self._failed = asyncio.Event()
        self.started = False
        self.stopped = False

    @property
    def is_serving(self) -> bool:
        return self._serves and self.started and not self.stopped

    async def start(self) -> None:
        if self._fail_on_start:
            raise OSError("address already in use")
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    async def wait_failed(self) -> None:
        await self._failed.wait()

    def fail(self) -> None:
        self._failed.set()


class FakeListenerFactory:
    """Hands out listeners; ``start_failures`` makes the first N starts fail.

    ``silent_starts`` listeners after those start cleanly but never serve.
    """

    def __init__(self, start_failures: int = 0, silent_starts: int = 0) -> None:
        self._start_failures = start_failures
        self._silent_starts = silent_starts
        self.created: list[FakeSignalListener] = []

    def __call__(self) -> FakeSignalListener:
        index = len(self.created)
        fail = index < self._start_failures
        silent = not fail and index < self._start_failures + self._silent_starts
        listener = FakeSignalListener(fail_on_start=fail, serves=not silent)
        self.created.append(listener)
        return listener


@pytest.fixture
def unused_port() -> int:
    return find_unused_tcp_port()


@pytest.fixture
def fake_probe():
    return FakeDisplayProbe()


@pytest.fixture
def fake_sleeper():
    return FakeDisplaySleeper()


@pytest.fixture
def fake_sender():
    return FakeSignalSender()


@pytest.fixture
def clean_env(monkeypatch):
    import os

    for key in list(os.environ):
        if key.startswith("DISPLAY_SYNC_"):
            monkeypatch.delenv(key)
