"""
Record URL helpers.

Living Apps stores cross-collection references ("applookup" fields) as the full
resource URL of the referenced record. These two functions are the only place
where that URL shape is known; everything else works with bare record ids.
"""

import re
from typing import Optional

from src.core import config

# Trailing record id, anchored at the end of the string
_RECORD_ID_RE = re.compile(r"([a-f0-9]{%d})$" % config.RECORD_ID_LENGTH, re.IGNORECASE)


def extract_record_id(url: Optional[str]) -> Optional[str]:
    """
    Return the record id at the very end of a record URL.

    Args:
        url: A record URL such as
             ``https://my.living-apps.de/rest/apps/<app>/records/<id>``,
             or None/empty.

    Returns:
        The trailing 24-character hex id with its original casing, or None
        when the string does not end in one.
    """
    if not url:
        return None
    match = _RECORD_ID_RE.search(url)
    return match.group(1) if match else None


def create_record_url(app_id: str, record_id: str) -> str:
    """Build the canonical resource URL for ``record_id`` in application ``app_id``."""
    return f"{config.LIVING_APPS_RECORD_HOST}/apps/{app_id}/records/{record_id}"
