import random
import unittest

from playback.navigator import CLAMP_START, STOP, compute_next, compute_previous
from shared.models import RepeatMode

PLAYLIST = ["a", "b", "c", "d"]


class TestComputeNext(unittest.TestCase):

    def test_empty_playlist_stops(self):
        for mode in RepeatMode:
            self.assertTrue(compute_next([], 0, mode, False).stop)
            self.assertTrue(compute_next([], 0, mode, True).stop)

    def test_sequential_advance(self):
        outcome = compute_next(PLAYLIST, 1, RepeatMode.NONE, False)
        self.assertEqual(outcome.index, 2)
        self.assertFalse(outcome.stop)

    def test_end_without_repeat_stops(self):
        self.assertIs(compute_next(PLAYLIST, 3, RepeatMode.NONE, False), STOP)

    def test_repeat_all_wraps(self):
        self.assertEqual(compute_next(PLAYLIST, 3, RepeatMode.ALL, False).index, 0)

    def test_repeat_one_beats_shuffle(self):
        rng = random.Random(1)
        for _ in range(20):
            self.assertEqual(compute_next(PLAYLIST, 2, RepeatMode.ONE, True, rng).index, 2)

    def test_shuffle_stays_in_range_and_can_repeat_current(self):
        rng = random.Random(3)
        seen = {compute_next(PLAYLIST, 0, RepeatMode.NONE, True, rng).index for _ in range(200)}
        self.assertEqual(seen, set(range(len(PLAYLIST))))

    def test_shuffle_never_stops_on_last_song(self):
        rng = random.Random(5)
        for _ in range(20):
            self.assertFalse(compute_next(PLAYLIST, 3, RepeatMode.NONE, True, rng).stop)


class TestComputePrevious(unittest.TestCase):

    def test_empty_playlist_clamps(self):
        self.assertIs(compute_previous([], 0, RepeatMode.ALL), CLAMP_START)

    def test_step_back(self):
        self.assertEqual(compute_previous(PLAYLIST, 2, RepeatMode.NONE).index, 1)

    def test_start_without_repeat_clamps(self):
        outcome = compute_previous(PLAYLIST, 0, RepeatMode.NONE)
        self.assertTrue(outcome.clamp_start)

    def test_repeat_one_does_not_wrap(self):
        self.assertTrue(compute_previous(PLAYLIST, 0, RepeatMode.ONE).clamp_start)
        self.assertEqual(compute_previous(PLAYLIST, 3, RepeatMode.ONE).index, 2)

    def test_repeat_all_wraps_to_last(self):
        self.assertEqual(compute_previous(PLAYLIST, 0, RepeatMode.ALL).index, 3)


if __name__ == '__main__':
    unittest.main()
