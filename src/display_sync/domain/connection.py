import logging
from enum import Enum, auto

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    OPENED = auto()
    READING = auto()
    MATCHED = auto()
    IGNORED = auto()
    CLOSED = auto()


VALID_TRANSITIONS: dict[ConnectionState, set[ConnectionState]] = {
    ConnectionState.OPENED: {ConnectionState.READING, ConnectionState.CLOSED},
    ConnectionState.READING: {ConnectionState.MATCHED, ConnectionState.IGNORED, ConnectionState.CLOSED},
    ConnectionState.MATCHED: {ConnectionState.READING, ConnectionState.CLOSED},
    ConnectionState.IGNORED: {ConnectionState.READING, ConnectionState.CLOSED},
    ConnectionState.CLOSED: set(),
}


class InvalidTransitionError(Exception):
    pass


def validate_transition(current: ConnectionState, target: ConnectionState) -> None:
    if target not in VALID_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(f"Cannot transition from {current.name} to {target.name}")


class SignalConnection:
    """Lifecycle of one accepted connection.

    Every chunk returned by a single read is matched on its own. Chunks are
    never reassembled, so a signal split across two reads does not match.
    """

    def __init__(self, expected_signal: str, peer: str = "") -> None:
        self._expected_signal = expected_signal
        self._peer = peer
        self._state = ConnectionState.OPENED
        self._match_count = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def match_count(self) -> int:
        return self._match_count

    @property
    def is_closed(self) -> bool:
        return self._state is ConnectionState.CLOSED

    def _transition_to(self, target: ConnectionState) -> None:
        validate_transition(self._state, target)
        self._state = target

    def begin_read(self) -> None:
        self._transition_to(ConnectionState.READING)

    def receive(self, chunk: bytes) -> ConnectionState:
        try:
            message = chunk.decode("utf-8")
        except UnicodeDecodeError:
            logger.debug("Ignoring undecodable chunk from %s (%d bytes)", self._peer, len(chunk))
            self._transition_to(ConnectionState.IGNORED)
            return self._state

        if message == self._expected_signal:
            logger.info(
                "Received %s signal from %s", self._expected_signal, self._peer,
                extra={"event": "signal_received"},
            )
            self._match_count += 1
            self._transition_to(ConnectionState.MATCHED)
        else:
            logger.warning("Received unexpected message from %s: %r", self._peer, message)
            self._transition_to(ConnectionState.IGNORED)
        return self._state

    def close(self) -> None:
        if self._state is ConnectionState.CLOSED:
            return
        self._transition_to(ConnectionState.CLOSED)
