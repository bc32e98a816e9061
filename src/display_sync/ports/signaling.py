from typing import Protocol


class SignalSenderPort(Protocol):
    async def send(self) -> bool: ...


class SignalListenerPort(Protocol):
    @property
    def is_serving(self) -> bool: ...

    async def start(self) -> None: ...
    async def stop(self) -> None: ...
    async def wait_failed(self) -> None: ...
