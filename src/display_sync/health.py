import logging
import shutil
import socket
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from display_sync.config import DisplaySyncConfig
from display_sync.factory import resolve_backend

logger = logging.getLogger(__name__)

Role = Literal["sender", "receiver"]

PROBE_TOOLS = {"macos": "ioreg", "x11": "xset"}
SLEEP_TOOLS = {"macos": "pmset", "x11": "xset"}

CRITICAL_CHECKS = {"probe_tool", "sleep_tool"}


@dataclass
class HealthCheckResult:
    name: str
    passed: bool
    detail: str


def run_startup_checks(
    role: Role,
    config: DisplaySyncConfig,
    which: Callable[[str], str | None] | None = None,
) -> list[HealthCheckResult]:
    which = which or shutil.which
    if role == "sender":
        results = [
            _check_tool("probe_tool", PROBE_TOOLS[resolve_backend(config)], which),
            _check_target_resolves(config),
        ]
    else:
        results = [
            _check_tool("sleep_tool", SLEEP_TOOLS[resolve_backend(config)], which),
        ]

    passed = sum(1 for r in results if r.passed)
    logger.info("Health check: %d/%d passed", passed, len(results))
    for result in results:
        level = logging.INFO if result.passed else logging.WARNING
        symbol = "OK" if result.passed else "FAIL"
        logger.log(level, "  [%s] %s: %s", symbol, result.name, result.detail)

    return results


def has_critical_failures(results: list[HealthCheckResult]) -> bool:
    return any(not r.passed and r.name in CRITICAL_CHECKS for r in results)


def _check_tool(
    name: str, tool: str, which: Callable[[str], str | None]
) -> HealthCheckResult:
    path = which(tool)
    if path is None:
        return HealthCheckResult(name=name, passed=False, detail=f"'{tool}' not found on PATH")
    return HealthCheckResult(name=name, passed=True, detail=f"'{tool}' at {path}")


def _check_target_resolves(config: DisplaySyncConfig) -> HealthCheckResult:
    name = "target_host"
    try:
        infos = socket.getaddrinfo(config.target_host, config.port, type=socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError) as exc:
        return HealthCheckResult(
            name=name, passed=False, detail=f"Cannot resolve {config.target_host}: {exc}"
        )
    address = infos[0][4][0] if infos else config.target_host
    return HealthCheckResult(name=name, passed=True, detail=f"{config.target_host} -> {address}")
