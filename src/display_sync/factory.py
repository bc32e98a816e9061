import logging
import sys
from collections.abc import Callable

from display_sync.config import DisplaySyncConfig
from display_sync.adapters.tcp_signal import TcpSignalListener, TcpSignalSender
from display_sync.domain.monitor import DisplayMonitor
from display_sync.domain.supervisor import ListenerSupervisor
from display_sync.ports.display import DisplayProbePort, DisplaySleeperPort

logger = logging.getLogger(__name__)


def resolve_backend(config: DisplaySyncConfig, platform: str = sys.platform) -> str:
    if config.display_backend != "auto":
        return config.display_backend
    return "macos" if platform == "darwin" else "x11"


def create_probe(config: DisplaySyncConfig) -> DisplayProbePort:
    if resolve_backend(config) == "macos":
        from display_sync.adapters.macos_display import IoregDisplayProbe

        return IoregDisplayProbe(timeout=config.command_timeout_seconds)
    from display_sync.adapters.x11_display import XsetDisplayProbe

    return XsetDisplayProbe(timeout=config.command_timeout_seconds)


def create_sleeper(config: DisplaySyncConfig) -> DisplaySleeperPort:
    if resolve_backend(config) == "macos":
        from display_sync.adapters.macos_display import PmsetDisplaySleeper

        return PmsetDisplaySleeper(timeout=config.command_timeout_seconds)
    from display_sync.adapters.x11_display import XsetDisplaySleeper

    return XsetDisplaySleeper(timeout=config.command_timeout_seconds)


def create_sender(config: DisplaySyncConfig) -> TcpSignalSender:
    return TcpSignalSender(
        host=config.target_host,
        port=config.port,
        payload=config.signal,
        connect_timeout_seconds=config.connect_timeout_seconds,
    )


def create_listener_factory(
    config: DisplaySyncConfig, sleeper: DisplaySleeperPort
) -> Callable[[], TcpSignalListener]:
    def create_listener() -> TcpSignalListener:
        return TcpSignalListener(
            host=config.listen_host,
            port=config.port,
            expected_signal=config.signal,
            sleeper=sleeper,
            read_chunk_size=config.read_chunk_size,
        )

    return create_listener


def create_monitor(
    config: DisplaySyncConfig, probe: DisplayProbePort | None = None
) -> DisplayMonitor:
    return DisplayMonitor(
        probe=probe or create_probe(config),
        sender=create_sender(config),
        poll_interval_seconds=config.poll_interval_seconds,
    )


def create_supervisor(
    config: DisplaySyncConfig, sleeper: DisplaySleeperPort | None = None
) -> ListenerSupervisor:
    return ListenerSupervisor(
        listener_factory=create_listener_factory(config, sleeper or create_sleeper(config)),
        rebind_delay_seconds=config.rebind_delay_seconds,
    )
