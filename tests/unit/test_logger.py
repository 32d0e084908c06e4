import logging
import unittest

from src.utils.logger import SensitiveDataFilter, log_api_call, mask_sensitive_data


class TestMasking(unittest.TestCase):
    def test_masks_credential_keys(self):
        masked = mask_sensitive_data({
            "api_key": "sk-ant-abcdefghijklmnop",
            "session_cookie": "sid=abc",
            "base_url": "https://api.anthropic.com",
        })
        self.assertEqual(masked["api_key"], "***mnop")
        self.assertEqual(masked["session_cookie"], "***")
        self.assertEqual(masked["base_url"], "https://api.anthropic.com")

    def test_masks_nested_structures(self):
        masked = mask_sensitive_data({"analysis": {"api_key": "abcdefgh"}, "items": [{"token": "x"}]})
        self.assertEqual(masked["analysis"]["api_key"], "***efgh")
        self.assertEqual(masked["items"][0]["token"], "***")

    def test_filter_scrubs_message(self):
        record = logging.LogRecord("t", logging.INFO, __file__, 1, "key is sk-ant-api03-abcdefghijk", None, None)
        SensitiveDataFilter().filter(record)
        self.assertNotIn("abcdefghijk", record.getMessage())


class TestLogApiCall(unittest.IsolatedAsyncioTestCase):
    async def test_wraps_coroutine_and_reraises(self):
        @log_api_call(api_name="Test")
        async def failing():
            raise RuntimeError("boom")

        with self.assertLogs(__name__, level="ERROR"):
            with self.assertRaises(RuntimeError):
                await failing()

    async def test_returns_result(self):
        @log_api_call
        async def ok(x):
            return x * 2

        self.assertEqual(await ok(21), 42)

    def test_rejects_sync_functions(self):
        with self.assertRaises(TypeError):
            @log_api_call(api_name="Test")
            def sync():
                return 1


if __name__ == '__main__':
    unittest.main()
