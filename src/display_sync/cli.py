import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Callable

from pydantic import ValidationError

from display_sync.config import DisplaySyncConfig
from display_sync.log_format import setup_logging

logger = logging.getLogger("display_sync")

CONFIG_ERROR_EXIT_CODE = 2


def port_number(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port number: {value!r}") from None
    if not 1 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"port number {port} must be between 1-65535")
    return port


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--port", type=port_number, help="Port number (default: 12345)")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument(
        "--skip-checks", action="store_true", help="Skip startup health checks"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")


def build_sender_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="display-sync-sender",
        description="Watch the local display and signal a peer when it turns on",
        epilog=(
            "example: display-sync-sender --host 192.168.1.100 --port 8080\n"
            "         display-sync-sender --content custom_message"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--host", help="Target host IP address (default: 127.0.0.1)")
    parser.add_argument("--content", help="Message content to send (default: sleep_display)")
    _add_common_arguments(parser)
    return parser


def build_receiver_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="display-sync-receiver",
        description="Put the local display to sleep when a peer signals",
        epilog=(
            "example: display-sync-receiver --port 8080 --ip 127.0.0.1\n"
            "         display-sync-receiver --signal custom_sleep_signal"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--ip", help="Listen IP address (default: 0.0.0.0)")
    parser.add_argument("--signal", help="Expected signal message (default: sleep_display)")
    _add_common_arguments(parser)
    return parser


def load_config(overrides: dict[str, object]) -> DisplaySyncConfig:
    """Build the config from the environment with CLI values on top.

    Exits with a usage error when validation fails, before any socket is
    opened.
    """
    try:
        return DisplaySyncConfig(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as exc:
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"])
            print(f"Error: invalid {field}: {error['msg']}", file=sys.stderr)
        sys.exit(CONFIG_ERROR_EXIT_CODE)


def _announce_defaults(parser: argparse.ArgumentParser, argv: list[str]) -> None:
    if argv:
        return
    logger.info("Note: No parameters specified, using default configuration")
    parser.print_help()
    logger.info("Continuing with default configuration...")


def _install_signal_handlers(request_stop: Callable[[], None]) -> None:
    shutdown_triggered = False

    def handle_signal() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            logger.warning("Forced exit")
            sys.exit(1)
        shutdown_triggered = True
        logger.info("Shutting down...")
        request_stop()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal)


def _check_health(role: str, config: DisplaySyncConfig, skip: bool) -> None:
    if skip:
        return
    from display_sync.health import has_critical_failures, run_startup_checks

    results = run_startup_checks(role, config)
    if has_critical_failures(results):
        logger.error("Critical health check failures, aborting startup")
        sys.exit(1)


def sender_main(argv: list[str] | None = None) -> None:
    argv = sys.argv[1:] if argv is None else argv
    parser = build_sender_parser()
    args = parser.parse_args(argv)

    config = load_config(
        {"target_host": args.host, "port": args.port, "signal": args.content, "log_file": args.log_file}
    )
    setup_logging(verbose=args.verbose, log_file=config.log_file)
    _announce_defaults(parser, argv)
    _check_health("sender", config, args.skip_checks)

    logger.info(
        "Configuration: target host=%s target port=%d message content=%s",
        config.target_host, config.port, config.signal,
    )
    logger.info("Starting to monitor display state...")
    logger.info("Press Control-C to terminate the program")

    asyncio.run(_run_sender(config))


def receiver_main(argv: list[str] | None = None) -> None:
    argv = sys.argv[1:] if argv is None else argv
    parser = build_receiver_parser()
    args = parser.parse_args(argv)

    config = load_config(
        {"listen_host": args.ip, "port": args.port, "signal": args.signal, "log_file": args.log_file}
    )
    setup_logging(verbose=args.verbose, log_file=config.log_file)
    _announce_defaults(parser, argv)
    _check_health("receiver", config, args.skip_checks)

    logger.info(
        "Configuration: listen IP=%s listen port=%d expected signal=%s",
        config.listen_host, config.port, config.signal,
    )
    logger.info("Starting listener...")
    logger.info("Press Control-C to terminate the program")

    if not asyncio.run(_run_receiver(config)):
        sys.exit(1)


async def _run_sender(config: DisplaySyncConfig) -> None:
    from display_sync.factory import create_monitor

    monitor = create_monitor(config)
    _install_signal_handlers(monitor.request_stop)
    await monitor.run()


async def _run_receiver(config: DisplaySyncConfig) -> bool:
    from display_sync.domain.supervisor import ListenerBindError
    from display_sync.factory import create_supervisor

    supervisor = create_supervisor(config)
    _install_signal_handlers(supervisor.request_stop)
    try:
        await supervisor.start()
    except ListenerBindError:
        return False
    await supervisor.run()
    return True
