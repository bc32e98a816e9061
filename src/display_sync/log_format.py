import logging

RESET = "\033[0m"
DIM = "\033[2m"
BOLD = "\033[1m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
CYAN = "\033[36m"
MAGENTA = "\033[35m"

LEVEL_COLORS = {
    logging.DEBUG: DIM,
    logging.INFO: GREEN,
    logging.WARNING: YELLOW,
    logging.ERROR: RED,
    logging.CRITICAL: RED + BOLD,
}

# Keyed on the ``event`` attribute passed through ``extra=``.
EVENT_STYLES = {
    "state_change": BOLD + CYAN,
    "signal_sent": BOLD + GREEN,
    "signal_received": BOLD + MAGENTA,
    "listener_restarted": BOLD + YELLOW,
}

PLAIN_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


class ColoredFormatter(logging.Formatter):
    """Terminal formatter: short component name, level colour, event highlights."""

    def _message_style(self, record: logging.LogRecord) -> str:
        style = EVENT_STYLES.get(getattr(record, "event", None), "")
        if style:
            return style
        if record.levelno == logging.DEBUG:
            return DIM
        if record.levelno >= logging.WARNING:
            return LEVEL_COLORS.get(record.levelno, "")
        return ""

    def format(self, record: logging.LogRecord) -> str:
        level_color = LEVEL_COLORS.get(record.levelno, "")
        component = record.name.rsplit(".", 1)[-1]
        msg = record.getMessage()
        style = self._message_style(record)
        if style:
            msg = f"{style}{msg}{RESET}"

        line = (
            f"{DIM}{self.formatTime(record, self.datefmt)}{RESET} "
            f"{level_color}{record.levelname:<5}{RESET} "
            f"{DIM}{component:<16}{RESET} {msg}"
        )
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(verbose: bool = False, log_file: str = "") -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(ColoredFormatter(datefmt="%H:%M:%S"))
    handlers: list[logging.Handler] = [handler]

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=handlers,
        force=True,
    )
