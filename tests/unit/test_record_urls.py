import unittest

from src.core import config
from src.core.record_urls import create_record_url, extract_record_id


class TestExtractRecordId(unittest.TestCase):
    def test_extracts_trailing_id(self):
        url = "https://my.living-apps.de/rest/apps/69983b520a1e6808728fba51/records/abcdef0123456789abcdef01"
        self.assertEqual(extract_record_id(url), "abcdef0123456789abcdef01")

    def test_bare_id(self):
        self.assertEqual(extract_record_id("abcdef0123456789abcdef01"), "abcdef0123456789abcdef01")

    def test_uppercase_keeps_casing(self):
        self.assertEqual(extract_record_id("x/ABCDEF0123456789ABCDEF01"), "ABCDEF0123456789ABCDEF01")

    def test_empty_and_none(self):
        self.assertIsNone(extract_record_id(""))
        self.assertIsNone(extract_record_id(None))

    def test_short_id_does_not_match(self):
        self.assertIsNone(extract_record_id("https://x/records/abc123"))

    def test_trailing_slash_does_not_match(self):
        self.assertIsNone(extract_record_id("https://x/records/abcdef0123456789abcdef01/"))

    def test_non_hex_does_not_match(self):
        self.assertIsNone(extract_record_id("https://x/records/zzzzzz0123456789abcdef01"))

    def test_longer_hex_run_returns_last_24(self):
        self.assertEqual(
            extract_record_id("ff" + "abcdef0123456789abcdef01"),
            "abcdef0123456789abcdef01",
        )


class TestCreateRecordUrl(unittest.TestCase):
    def test_format(self):
        url = create_record_url("69983b520a1e6808728fba51", "abcdef0123456789abcdef01")
        self.assertEqual(
            url,
            "https://my.living-apps.de/rest/apps/69983b520a1e6808728fba51/records/abcdef0123456789abcdef01",
        )

    def test_extract_inverts_create(self):
        record_id = "0123456789abcdef01234567"
        url = create_record_url(config.APP_IDS["KATEGORIEN"], record_id)
        self.assertEqual(extract_record_id(url), record_id)


if __name__ == '__main__':
    unittest.main()
