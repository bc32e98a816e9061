import asyncio
import logging
import re

from display_sync.adapters.process import run_command
from display_sync.ports.display import DisplayProbeError

logger = logging.getLogger(__name__)

XSET_QUERY_COMMAND = ["xset", "q"]
XSET_SLEEP_COMMAND = ["xset", "dpms", "force", "off"]

_MONITOR_STATE_PATTERN = re.compile(r"Monitor is (\w+)")


def parse_xset_monitor_state(xset_output: str) -> bool:
    """Read the DPMS monitor state out of ``xset q`` output.

    Only "On" counts as on. When DPMS is disabled the monitor line is
    missing and the display never powers down, so it is reported as on.
    """
    match = _MONITOR_STATE_PATTERN.search(xset_output)
    if match:
        return match.group(1).lower() == "on"
    if "DPMS is Disabled" in xset_output:
        return True
    raise DisplayProbeError("No DPMS section in xset output")


class XsetDisplayProbe:
    def __init__(self, timeout: float = 5.0) -> None:
        self._timeout = timeout

    async def is_display_on(self) -> bool:
        try:
            result = await run_command(XSET_QUERY_COMMAND, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise DisplayProbeError("xset timed out") from exc

        if result.returncode != 0:
            raise DisplayProbeError(
                f"xset exited with {result.returncode}: {result.stderr.strip()}"
            )
        return parse_xset_monitor_state(result.stdout)


class XsetDisplaySleeper:
    def __init__(self, timeout: float = 5.0) -> None:
        self._timeout = timeout

    async def sleep_display(self) -> None:
        try:
            result = await run_command(XSET_SLEEP_COMMAND, timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.error("Error putting display to sleep: xset timed out")
            return
        except OSError as exc:
            logger.error("Error putting display to sleep: %s", exc)
            return

        if result.returncode != 0:
            logger.error(
                "Error putting display to sleep (xset exited with %d): %s",
                result.returncode,
                result.stderr.strip(),
            )
            return
        logger.info("Display sleep signal sent successfully")
