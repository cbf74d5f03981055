import threading
import unittest

from dispatch_pool import BoundedDispatchPool, OVERFLOW_BLOCK


class TestBoundedDispatchPool(unittest.TestCase):
    def test_runs_submitted_calls(self):
        seen = []
        with BoundedDispatchPool(max_workers=2, max_queue=2) as pool:
            for i in range(4):
                self.assertTrue(pool.submit(seen.append, i))
        self.assertEqual(sorted(seen), [0, 1, 2, 3])
        self.assertEqual(pool.in_flight, 0)

    def test_reject_when_full(self):
        release = threading.Event()
        pool = BoundedDispatchPool(max_workers=1, max_queue=1)
        try:
            self.assertTrue(pool.submit(release.wait, 5))
            self.assertTrue(pool.submit(release.wait, 5))
            self.assertFalse(pool.submit(release.wait, 5))
            self.assertEqual(pool.in_flight, 2)
        finally:
            release.set()
            pool.shutdown(wait=True)
        self.assertEqual(pool.in_flight, 0)
        # A shut-down pool refuses new work.
        self.assertFalse(pool.submit(print, "after shutdown"))

    def test_block_waits_for_a_free_slot(self):
        release = threading.Event()
        pool = BoundedDispatchPool(max_workers=1, max_queue=0, overflow=OVERFLOW_BLOCK, block_timeout=5)
        try:
            self.assertTrue(pool.submit(release.wait, 5))
            threading.Timer(0.05, release.set).start()
            self.assertTrue(pool.submit(lambda: None))
        finally:
            release.set()
            pool.shutdown(wait=True)

    def test_block_gives_up_after_timeout(self):
        release = threading.Event()
        pool = BoundedDispatchPool(max_workers=1, max_queue=0, overflow=OVERFLOW_BLOCK, block_timeout=0.05)
        try:
            self.assertTrue(pool.submit(release.wait, 5))
            self.assertFalse(pool.submit(lambda: None))
        finally:
            release.set()
            pool.shutdown(wait=True)

    def test_handler_errors_are_counted_not_raised(self):
        def boom():
            raise ValueError("bad update")

        with BoundedDispatchPool(max_workers=1, max_queue=4) as pool:
            self.assertTrue(pool.submit(boom))
            self.assertTrue(pool.submit(boom))
        self.assertEqual(pool.failed, 2)

    def test_invalid_configuration(self):
        with self.assertRaises(ValueError):
            BoundedDispatchPool(max_workers=0)
        with self.assertRaises(ValueError):
            BoundedDispatchPool(max_queue=-1)
        with self.assertRaises(ValueError):
            BoundedDispatchPool(overflow="drop-oldest")


if __name__ == "__main__":
    unittest.main()
