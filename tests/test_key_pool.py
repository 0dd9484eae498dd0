"""
Tests for the KeyPool class and its helpers.
"""
import unittest
import sys
import os

# Add the parent directory to the path so we can import the application modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from exceptions import ConfigurationError, NoAvailableCredentialsError
from services.key_pool import Credential, KeyPool, parse_keys, sweep_expired

DAY = 24 * 60 * 60


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestParseKeys(unittest.TestCase):
    """Test cases for building a pool from configuration."""

    def test_trims_and_keeps_order(self):
        self.assertEqual(parse_keys("a, b ,c"), ["a", "b", "c"])

    def test_drops_empty_entries(self):
        self.assertEqual(parse_keys("a,,  ,b,"), ["a", "b"])

    def test_invalid_inputs(self):
        for raw in ("", "   ", " , ,", ",,,", None):
            with self.subTest(raw=raw):
                with self.assertRaises(ConfigurationError):
                    parse_keys(raw)

    def test_non_string_input(self):
        with self.assertRaises(ConfigurationError):
            parse_keys(["a", "b"])

    def test_pool_construction(self):
        pool = KeyPool("a, b ,c")
        self.assertEqual([c.secret for c in pool.credentials], ["a", "b", "c"])
        self.assertEqual(pool.size, 3)
        self.assertEqual(pool.cursor, 0)
        self.assertTrue(all(not c.exhausted for c in pool.credentials))
        self.assertTrue(all(c.last_exhausted_at == 0.0 for c in pool.credentials))

    def test_pool_construction_fails_without_keys(self):
        with self.assertRaises(ConfigurationError):
            KeyPool("")


class TestSweepExpired(unittest.TestCase):
    """Test cases for the pure reset sweep."""

    def test_clears_only_expired(self):
        creds = [
            Credential("old", exhausted=True, last_exhausted_at=0.0),
            Credential("recent", exhausted=True, last_exhausted_at=DAY - 1),
            Credential("fresh"),
        ]
        swept = sweep_expired(creds, now=DAY, window=DAY)

        self.assertFalse(swept[0].exhausted)
        self.assertTrue(swept[1].exhausted)
        self.assertFalse(swept[2].exhausted)
        # Input list is untouched
        self.assertTrue(creds[0].exhausted)

    def test_boundary_is_inclusive(self):
        creds = [Credential("k", exhausted=True, last_exhausted_at=100.0)]
        self.assertFalse(sweep_expired(creds, now=100.0 + DAY, window=DAY)[0].exhausted)

    def test_keeps_last_exhausted_timestamp(self):
        creds = [Credential("k", exhausted=True, last_exhausted_at=5.0)]
        self.assertEqual(sweep_expired(creds, now=10 * DAY, window=DAY)[0].last_exhausted_at, 5.0)


class TestKeyPoolRotation(unittest.TestCase):
    """Test cases for exhaustion marking and rotation."""

    def setUp(self):
        self.clock = FakeClock()
        self.pool = KeyPool("k0,k1,k2", reset_window_seconds=DAY, clock=self.clock)

    def test_current_credential_starts_at_first(self):
        self.assertEqual(self.pool.current_credential(), "k0")

    def test_mark_exhausted_moves_to_next(self):
        self.pool.mark_exhausted()

        self.assertEqual(self.pool.cursor, 1)
        self.assertEqual(self.pool.current_credential(), "k1")
        first = self.pool.credentials[0]
        self.assertTrue(first.exhausted)
        self.assertEqual(first.last_exhausted_at, self.clock.now)

    def test_rotation_skips_exhausted(self):
        # Exhaust k1 first, then come back to k0 via rotation
        self.pool.rotate()
        self.pool.mark_exhausted()
        self.assertEqual(self.pool.cursor, 2)
        self.pool.rotate()
        self.assertEqual(self.pool.cursor, 0)

        # Marking k0 skips the exhausted k1 and lands on k2
        self.pool.mark_exhausted()
        self.assertEqual(self.pool.cursor, 2)

    def test_available_until_every_key_marked(self):
        for remaining in (2, 1):
            self.pool.mark_exhausted()
            self.assertTrue(self.pool.has_available())
            self.assertEqual(sum(not c.exhausted for c in self.pool.credentials), remaining)

        self.pool.mark_exhausted()
        self.assertFalse(self.pool.has_available())
        self.assertEqual(self.pool.cursor, 2)

    def test_current_credential_fails_when_all_exhausted(self):
        for _ in range(3):
            self.pool.mark_exhausted()

        with self.assertRaises(NoAvailableCredentialsError):
            self.pool.current_credential()

    def test_full_loop_sweeps_keys_past_window(self):
        self.pool.mark_exhausted()  # k0
        self.clock.advance(DAY)
        self.pool.mark_exhausted()  # k1
        self.pool.mark_exhausted()  # k2, wraps to k0 and sweeps

        creds = self.pool.credentials
        self.assertFalse(creds[0].exhausted)
        self.assertTrue(creds[1].exhausted)
        self.assertTrue(creds[2].exhausted)
        self.assertEqual(self.pool.cursor, 0)
        self.assertEqual(self.pool.current_credential(), "k0")

    def test_sweep_moves_cursor_off_exhausted_start(self):
        # k1 and k2 exhausted long ago, k0 just now: the wrap lands on k0
        # but the sweep frees k1, so the cursor must move there.
        self.pool.rotate()
        self.pool.mark_exhausted()  # k1 at t0
        self.pool.mark_exhausted()  # k2 at t0, cursor -> k0
        self.clock.advance(DAY + 1)
        self.pool.mark_exhausted()  # k0 now, wraps and sweeps

        creds = self.pool.credentials
        self.assertTrue(creds[0].exhausted)
        self.assertFalse(creds[1].exhausted)
        self.assertFalse(creds[2].exhausted)
        self.assertEqual(self.pool.cursor, 1)
        self.assertEqual(self.pool.current_credential(), "k1")

    def test_no_reset_inside_window(self):
        for _ in range(3):
            self.pool.mark_exhausted()
        self.clock.advance(DAY - 1)
        self.pool.rotate()

        self.assertFalse(self.pool.has_available())

    def test_recovers_after_window_on_next_rotation(self):
        for _ in range(3):
            self.pool.mark_exhausted()
        self.clock.advance(DAY)

        # Nothing changes until a rotation runs
        self.assertFalse(self.pool.has_available())
        self.pool.rotate()
        self.assertTrue(self.pool.has_available())
        self.assertEqual(self.pool.current_credential(), "k2")

    def test_no_sweep_when_start_key_usable(self):
        self.pool.rotate()
        self.pool.mark_exhausted()  # k1
        self.pool.mark_exhausted()  # k2, cursor -> k0
        self.clock.advance(DAY)
        self.pool.rotate()  # loops back to k0, which is still usable

        self.assertEqual(self.pool.cursor, 0)
        self.assertTrue(self.pool.credentials[1].exhausted)
        self.assertTrue(self.pool.credentials[2].exhausted)

    def test_single_key_pool(self):
        pool = KeyPool("only", reset_window_seconds=DAY, clock=self.clock)
        pool.mark_exhausted()
        self.assertFalse(pool.has_available())
        self.assertEqual(pool.cursor, 0)

        self.clock.advance(DAY)
        pool.rotate()
        self.assertEqual(pool.current_credential(), "only")

    def test_rotate_never_raises_when_exhausted(self):
        for _ in range(3):
            self.pool.mark_exhausted()
        for _ in range(5):
            self.pool.rotate()
            self.pool.mark_exhausted()
        self.assertFalse(self.pool.has_available())

    def test_snapshot_masks_keys(self):
        pool = KeyPool("AIzaSyA-long-secret-key-value", clock=self.clock)
        pool.mark_exhausted()
        snapshot = pool.snapshot()

        self.assertEqual(snapshot["total"], 1)
        self.assertEqual(snapshot["available"], 0)
        self.assertNotIn("AIzaSyA-long-secret-key-value", str(snapshot))
        self.assertTrue(snapshot["keys"][0]["exhausted"])


if __name__ == '__main__':
    unittest.main()
