from typing import Protocol


class DisplayProbeError(Exception):
    pass


class DisplayProbePort(Protocol):
    async def is_display_on(self) -> bool: ...


class DisplaySleeperPort(Protocol):
    async def sleep_display(self) -> None: ...
