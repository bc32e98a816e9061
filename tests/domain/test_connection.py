import pytest

from display_sync.domain.connection import (
    ConnectionState,
    InvalidTransitionError,
    SignalConnection,
    validate_transition,
)

SIGNAL = "sleep_display"


class TestConnectionTransitions:
    def test_opened_to_reading(self):
        validate_transition(ConnectionState.OPENED, ConnectionState.READING)

    def test_opened_to_closed(self):
        validate_transition(ConnectionState.OPENED, ConnectionState.CLOSED)

    def test_reading_to_matched(self):
        validate_transition(ConnectionState.READING, ConnectionState.MATCHED)

    def test_reading_to_ignored(self):
        validate_transition(ConnectionState.READING, ConnectionState.IGNORED)

    def test_matched_back_to_reading(self):
        validate_transition(ConnectionState.MATCHED, ConnectionState.READING)

    def test_ignored_to_closed(self):
        validate_transition(ConnectionState.IGNORED, ConnectionState.CLOSED)

    def test_invalid_opened_to_matched(self):
        with pytest.raises(InvalidTransitionError):
            validate_transition(ConnectionState.OPENED, ConnectionState.MATCHED)

    def test_invalid_matched_to_ignored(self):
        with pytest.raises(InvalidTransitionError):
            validate_transition(ConnectionState.MATCHED, ConnectionState.IGNORED)

    def test_closed_is_terminal(self):
        for target in ConnectionState:
            with pytest.raises(InvalidTransitionError):
                validate_transition(ConnectionState.CLOSED, target)


class TestSignalConnection:
    def setup_method(self):
        self.connection = SignalConnection(SIGNAL, peer="127.0.0.1:50000")

    def test_starts_opened(self):
        assert self.connection.state is ConnectionState.OPENED

    def test_exact_signal_matches(self):
        self.connection.begin_read()
        assert self.connection.receive(b"sleep_display") is ConnectionState.MATCHED
        assert self.connection.match_count == 1

    def test_signal_with_suffix_is_ignored(self):
        self.connection.begin_read()
        assert self.connection.receive(b"sleep_displayX") is ConnectionState.IGNORED

    def test_different_case_is_ignored(self):
        self.connection.begin_read()
        assert self.connection.receive(b"Sleep_Display") is ConnectionState.IGNORED

    def test_trailing_newline_is_not_trimmed(self):
        self.connection.begin_read()
        assert self.connection.receive(b"sleep_display\n") is ConnectionState.IGNORED

    def test_undecodable_chunk_is_ignored(self):
        self.connection.begin_read()
        assert self.connection.receive(b"\xff\xfe\xfd") is ConnectionState.IGNORED
        assert self.connection.match_count == 0

    def test_split_signal_does_not_match(self):
        self.connection.begin_read()
        assert self.connection.receive(b"sleep_disp") is ConnectionState.IGNORED
        self.connection.begin_read()
        assert self.connection.receive(b"lay") is ConnectionState.IGNORED
        assert self.connection.match_count == 0

    def test_keeps_reading_after_match(self):
        for _ in range(3):
            self.connection.begin_read()
            self.connection.receive(b"sleep_display")
        assert self.connection.match_count == 3

    def test_receive_without_read_is_invalid(self):
        with pytest.raises(InvalidTransitionError):
            self.connection.receive(b"sleep_display")

    def test_close_is_idempotent(self):
        self.connection.begin_read()
        self.connection.close()
        self.connection.close()
        assert self.connection.is_closed

    def test_cannot_read_after_close(self):
        self.connection.close()
        with pytest.raises(InvalidTransitionError):
            self.connection.begin_read()

    def test_custom_signal(self):
        connection = SignalConnection("custom_sleep_signal")
        connection.begin_read()
        assert connection.receive("custom_sleep_signal".encode()) is ConnectionState.MATCHED

    def test_non_ascii_signal(self):
        connection = SignalConnection("écran_veille")
        connection.begin_read()
        assert connection.receive("écran_veille".encode("utf-8")) is ConnectionState.MATCHED
