"""Encoding of relation id lists into transfer text fields.

Relations are saved as text before a page is moved and restored from that
text afterwards. Two forms are understood:

* bare ids: ``"3f1c...-..., 9a0b...-..."``
* Notion URLs: ``"https://www.notion.so/3f1c..., https://www.notion.so/9a0b..."``

Both are written joined with ``", "``. Reading splits on ``","`` and trims, so
text joined with a bare comma decodes to the same ids.
"""

import re
from typing import Iterable, List

from ..exceptions import TransferCodecError
from ..models.summary import NOTION_BASE_URL

DELIMITER = ', '

_HEX_ID = re.compile(r'^[0-9a-fA-F]{32}$')
_URL_ID = re.compile(r'https?://(?:www\.)?notion\.so/(?:[^\s,]*?-)?([0-9a-fA-F]{32})\b')


def normalize_id(page_id: str) -> str:
    """Canonical hyphenated form (8-4-4-4-12) of a page id."""
    compact = page_id.replace('-', '').strip()
    if not _HEX_ID.match(compact):
        raise TransferCodecError(f'Not a page id: {page_id!r}')
    compact = compact.lower()
    return (
        f'{compact[:8]}-{compact[8:12]}-{compact[12:16]}-'
        f'{compact[16:20]}-{compact[20:]}'
    )


def is_page_id(value: str) -> bool:
    return bool(_HEX_ID.match(value.replace('-', '').strip()))


def id_to_url(page_id: str) -> str:
    return f'{NOTION_BASE_URL}/{page_id.replace("-", "")}'


def url_to_id(url: str) -> str:
    """Extract the page id from a Notion URL and restore its hyphens."""
    match = _URL_ID.search(url)
    if not match:
        raise TransferCodecError(f'Not a Notion page URL: {url!r}')
    return normalize_id(match.group(1))


def encode_ids(ids: Iterable[str]) -> str:
    return DELIMITER.join(ids)


def decode_ids(text: str) -> List[str]:
    """Decode a transfer field into page ids, in saved order.

    Bare ids are returned exactly as saved. URL segments are turned back into
    hyphenated ids.

    Raises:
        TransferCodecError: If a segment is neither an id nor a Notion URL
    """
    ids = []
    for segment in (text or '').split(','):
        segment = segment.strip()
        if not segment:
            continue
        if is_page_id(segment):
            ids.append(segment)
        elif segment.startswith(('http://', 'https://')):
            ids.append(url_to_id(segment))
        else:
            raise TransferCodecError(f'Unreadable transfer field segment: {segment!r}')
    return ids


def encode_urls(ids: Iterable[str]) -> str:
    return DELIMITER.join(id_to_url(page_id) for page_id in ids)


def decode_urls(text: str) -> List[str]:
    """Extract every Notion URL from ``text`` as a hyphenated page id."""
    return [normalize_id(match) for match in _URL_ID.findall(text or '')]
