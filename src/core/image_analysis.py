"""
Product Photo Analysis
======================

Turns a product photo into best-effort form hints by asking a multimodal model
for a bare JSON object and parsing its reply.

The result is advisory only: every key may be missing, values are untyped
strings, and any failure yields an empty result so manual entry is never
blocked.
"""

import base64
import json
import logging
import mimetypes
import re
from pathlib import Path
from typing import Any, Tuple, Union

from src.core import config
from src.core.models import ProductInfo
from src.integrations.anthropic_client import AnthropicAPIError, AnthropicClient

logger = logging.getLogger(__name__)

_FENCE_OPEN_RE = re.compile(r"```json\s*")
_FENCE_RE = re.compile(r"```\s*")


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences (```json / ```) the model may wrap its answer in."""
    return _FENCE_RE.sub("", _FENCE_OPEN_RE.sub("", text)).strip()


def parse_product_info(text: str) -> ProductInfo:
    """
    Parse a model reply into ProductInfo.

    Only the six known keys are kept. Values are converted to strings; nested
    or null values are dropped. Anything that is not a JSON object gives {}.
    """
    try:
        data = json.loads(strip_code_fences(text))
    except (json.JSONDecodeError, TypeError):
        logger.warning("Model reply is not valid JSON; returning empty product info")
        logger.debug(f"Unparseable reply: {text[:300]!r}")
        return ProductInfo()

    if not isinstance(data, dict):
        logger.warning(f"Model reply is JSON {type(data).__name__}, expected an object")
        return ProductInfo()

    info = ProductInfo()
    for key in config.PRODUCT_INFO_KEYS:
        value = data.get(key)
        if value is None or isinstance(value, (dict, list, bool)):
            continue
        info[key] = _as_text(value)
    return info


def _as_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


async def analyze_product_image(
    client: AnthropicClient,
    base64_image: str,
    media_type: str,
) -> ProductInfo:
    """
    Ask the model to describe a product photo.

    Args:
        client: Messages API client
        base64_image: Image bytes, already base64 encoded
        media_type: MIME type of the image

    Returns:
        ProductInfo with whatever keys could be extracted; {} on any failure.
    """
    try:
        text = await client.messages_with_image(
            config.PRODUCT_ANALYSIS_PROMPT, base64_image, media_type
        )
    except AnthropicAPIError as e:
        logger.warning(f"Product photo analysis failed: {e}")
        return ProductInfo()

    info = parse_product_info(text)
    logger.info(f"Product photo analysis extracted {len(info)} field(s): {sorted(info)}")
    return info


def encode_image_file(path: Union[str, Path]) -> Tuple[str, str]:
    """
    Read an image file and return ``(base64_data, media_type)``.

    The media type is guessed from the file name and defaults to image/jpeg.
    """
    path = Path(path)
    with open(path, "rb") as f:
        data = base64.b64encode(f.read()).decode("ascii")

    media_type, _ = mimetypes.guess_type(path.name)
    if not media_type or not media_type.startswith("image/"):
        media_type = config.DEFAULT_IMAGE_MEDIA_TYPE
    return data, media_type
