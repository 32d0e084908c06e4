import asyncio
import threading
import unittest

from src.utils.async_runner import AsyncRunner


class TestAsyncRunner(unittest.TestCase):
    def setUp(self):
        self.runner = AsyncRunner(name="Test")
        self.addCleanup(self.runner.shutdown)

    def test_run_returns_result(self):
        async def add(a, b):
            await asyncio.sleep(0)
            return a + b

        self.assertEqual(self.runner.run(add(2, 3), timeout=5), 5)

    def test_callbacks(self):
        done = threading.Event()
        results = []

        async def value():
            return "ok"

        def on_done(result):
            results.append(result)
            done.set()

        self.runner.submit(value(), on_done=on_done)

        self.assertTrue(done.wait(5))
        self.assertEqual(results, ["ok"])

    def test_error_callback(self):
        done = threading.Event()
        errors = []

        async def fail():
            raise ValueError("kaputt")

        def on_error(exc):
            errors.append(exc)
            done.set()

        with self.assertLogs("src.utils.async_runner", level="ERROR"):
            self.runner.submit(fail(), on_error=on_error)
            self.assertTrue(done.wait(5))
        self.assertIsInstance(errors[0], ValueError)

    def test_coroutines_share_one_loop(self):
        async def current_loop():
            return asyncio.get_running_loop()

        first = self.runner.run(current_loop(), timeout=5)
        second = self.runner.run(current_loop(), timeout=5)
        self.assertIs(first, second)
        self.assertIs(first, self.runner.loop)

    def test_submit_after_shutdown(self):
        self.runner.shutdown()

        async def never():
            return 1

        self.assertIsNone(self.runner.submit(never()))
        with self.assertRaises(RuntimeError):
            self.runner.run(never())


if __name__ == '__main__':
    unittest.main()
