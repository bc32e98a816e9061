import random

import pytest

from display_sync.domain.change_detector import ChangeDetector


def count_edges(readings: list[bool]) -> int:
    detector = ChangeDetector()
    return sum(1 for reading in readings if detector.observe(reading))


def expected_edges(readings: list[bool]) -> int:
    edges = 0
    previous = None
    for reading in readings:
        if reading and previous is not True:
            edges += 1
        previous = reading
    return edges


class TestChangeDetector:
    def test_initial_state_is_unknown(self):
        assert ChangeDetector().last_state is None

    def test_first_reading_on_fires(self):
        detector = ChangeDetector()
        assert detector.observe(True)

    def test_first_reading_off_does_not_fire(self):
        detector = ChangeDetector()
        assert not detector.observe(False)
        assert detector.last_state is False

    def test_repeated_on_fires_once(self):
        assert count_edges([True, True, True, True]) == 1

    def test_off_to_off_never_fires(self):
        assert count_edges([False, False, False]) == 0

    def test_turn_off_does_not_fire(self):
        detector = ChangeDetector()
        detector.observe(True)
        assert not detector.observe(False)

    def test_second_turn_on_after_off_fires_again(self):
        assert count_edges([False, True, False, True]) == 2

    def test_state_updates_on_every_change(self):
        detector = ChangeDetector()
        detector.observe(True)
        detector.observe(False)
        assert detector.last_state is False

    @pytest.mark.parametrize(
        "readings, edges",
        [
            ([], 0),
            ([True], 1),
            ([False, True, True, False, False, True], 2),
            ([True, False, True, False, True, False], 3),
        ],
    )
    def test_one_edge_per_run_of_on_readings(self, readings, edges):
        assert count_edges(readings) == edges

    def test_random_sequences_match_run_count(self):
        rng = random.Random(1234)
        for _ in range(200):
            readings = [rng.random() < 0.5 for _ in range(rng.randint(0, 30))]
            assert count_edges(readings) == expected_edges(readings)
