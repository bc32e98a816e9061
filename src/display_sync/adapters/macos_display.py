import asyncio
import logging
import re

from display_sync.adapters.process import run_command
from display_sync.ports.display import DisplayProbeError

logger = logging.getLogger(__name__)

IOREG_COMMAND = ["ioreg", "-n", "IODisplayWrangler", "-r", "-d", "1"]
PMSET_SLEEP_COMMAND = ["pmset", "displaysleepnow"]

DISPLAY_ASLEEP_POWER_STATE = 1

_POWER_MANAGEMENT_PATTERN = re.compile(r'"IOPowerManagement"\s*=\s*\{([^}]*)\}')
_CURRENT_POWER_STATE_PATTERN = re.compile(r'"CurrentPowerState"\s*=\s*(\d+)')


def parse_display_wrangler_power_state(ioreg_output: str) -> int | None:
    power_management = _POWER_MANAGEMENT_PATTERN.search(ioreg_output)
    if not power_management:
        return None
    state = _CURRENT_POWER_STATE_PATTERN.search(power_management.group(1))
    if not state:
        return None
    return int(state.group(1))


class IoregDisplayProbe:
    def __init__(self, timeout: float = 5.0) -> None:
        self._timeout = timeout

    async def is_display_on(self) -> bool:
        try:
            result = await run_command(IOREG_COMMAND, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise DisplayProbeError("ioreg timed out") from exc

        if result.returncode != 0:
            raise DisplayProbeError(
                f"Unable to get display services (ioreg exited with {result.returncode}): "
                f"{result.stderr.strip()}"
            )

        power_state = parse_display_wrangler_power_state(result.stdout)
        if power_state is None:
            logger.debug("No CurrentPowerState in IODisplayWrangler properties")
            return False
        return power_state != DISPLAY_ASLEEP_POWER_STATE


class PmsetDisplaySleeper:
    def __init__(self, timeout: float = 5.0) -> None:
        self._timeout = timeout

    async def sleep_display(self) -> None:
        try:
            result = await run_command(PMSET_SLEEP_COMMAND, timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.error("Error putting display to sleep: pmset timed out")
            return
        except OSError as exc:
            logger.error("Error putting display to sleep: %s", exc)
            return

        if result.returncode != 0:
            logger.error(
                "Error putting display to sleep (pmset exited with %d): %s",
                result.returncode,
                result.stderr.strip(),
            )
            return
        logger.info("Display sleep signal sent successfully")
