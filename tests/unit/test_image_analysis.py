import base64
import os
import tempfile
import unittest
from unittest.mock import AsyncMock, MagicMock

from src.core import config
from src.core.image_analysis import (
    analyze_product_image,
    encode_image_file,
    parse_product_info,
    strip_code_fences,
)
from src.integrations.anthropic_client import AnthropicAPIError


def _client(reply=None, error=None):
    client = MagicMock()
    client.messages_with_image = AsyncMock(return_value=reply, side_effect=error)
    return client


class TestParseProductInfo(unittest.TestCase):
    def test_strips_json_fence(self):
        self.assertEqual(parse_product_info('```json\n{"hersteller":"Nike"}\n```'), {"hersteller": "Nike"})

    def test_strips_plain_fence(self):
        self.assertEqual(strip_code_fences('```\n{"a": 1}\n```'), '{"a": 1}')

    def test_non_json_gives_empty(self):
        self.assertEqual(parse_product_info("Das ist ein Schuh."), {})

    def test_json_array_gives_empty(self):
        self.assertEqual(parse_product_info('["Nike"]'), {})

    def test_unknown_keys_dropped(self):
        info = parse_product_info('{"hersteller": "Adidas", "zustand": "neu"}')
        self.assertEqual(info, {"hersteller": "Adidas"})

    def test_numbers_become_strings(self):
        info = parse_product_info('{"preis": 45, "groesse": 42.0, "modell": 3.5}')
        self.assertEqual(info, {"preis": "45", "groesse": "42", "modell": "3.5"})

    def test_nested_and_null_values_dropped(self):
        info = parse_product_info('{"farbe": null, "modell": {"name": "x"}, "hersteller": "Puma"}')
        self.assertEqual(info, {"hersteller": "Puma"})


class TestAnalyzeProductImage(unittest.IsolatedAsyncioTestCase):
    async def test_sends_prompt_and_image(self):
        client = _client(reply='{"hersteller": "Nike", "modell": "Air Max"}')

        info = await analyze_product_image(client, "aGVsbG8=", "image/png")

        self.assertEqual(info, {"hersteller": "Nike", "modell": "Air Max"})
        client.messages_with_image.assert_awaited_once_with(
            config.PRODUCT_ANALYSIS_PROMPT, "aGVsbG8=", "image/png"
        )

    async def test_api_error_gives_empty(self):
        client = _client(error=AnthropicAPIError("Bilderkennung fehlgeschlagen: boom", status=500))

        self.assertEqual(await analyze_product_image(client, "aGVsbG8=", "image/jpeg"), {})

    async def test_fenced_reply(self):
        client = _client(reply='```json\n{"hersteller":"Nike"}\n```')

        self.assertEqual(await analyze_product_image(client, "aGVsbG8=", "image/jpeg"), {"hersteller": "Nike"})


class TestEncodeImageFile(unittest.TestCase):
    def _write(self, suffix, data=b"\x89PNG fake"):
        fd, path = tempfile.mkstemp(suffix=suffix)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        self.addCleanup(os.remove, path)
        return path

    def test_png(self):
        data, media_type = encode_image_file(self._write(".png"))
        self.assertEqual(media_type, "image/png")
        self.assertEqual(base64.b64decode(data), b"\x89PNG fake")

    def test_unknown_extension_defaults_to_jpeg(self):
        _, media_type = encode_image_file(self._write(".bin"))
        self.assertEqual(media_type, "image/jpeg")

    def test_missing_file_raises(self):
        with self.assertRaises(OSError):
            encode_image_file("/nonexistent/photo.jpg")


if __name__ == '__main__':
    unittest.main()
