"""Tests for the transfer field codec."""

import pytest

from notion_migrate.exceptions import TransferCodecError
from notion_migrate.migration.codec import (
    decode_ids,
    decode_urls,
    encode_ids,
    encode_urls,
    id_to_url,
    is_page_id,
    normalize_id,
    url_to_id,
)

ID_A = '3f1c2b4e-8a9d-4c1e-9b2f-0123456789ab'
ID_B = '9a0b1c2d-3e4f-4a5b-8c6d-7e8f9a0b1c2d'


class TestIds:
    """Test page id helpers."""

    def test_normalize_compact_id(self):
        assert normalize_id('3F1C2B4E8A9D4C1E9B2F0123456789AB') == ID_A

    def test_normalize_keeps_hyphenated_id(self):
        assert normalize_id(ID_A) == ID_A

    def test_normalize_rejects_garbage(self):
        with pytest.raises(TransferCodecError):
            normalize_id('not-an-id')

    @pytest.mark.parametrize(
        'value,expected',
        [
            (ID_A, True),
            (ID_A.replace('-', ''), True),
            ('Website redesign', False),
            ('', False),
        ],
    )
    def test_is_page_id(self, value, expected):
        assert is_page_id(value) is expected

    def test_url_conversion(self):
        url = id_to_url(ID_A)

        assert url == 'https://www.notion.so/3f1c2b4e8a9d4c1e9b2f0123456789ab'
        assert url_to_id(url) == ID_A

    def test_url_with_title_slug(self):
        url = 'https://www.notion.so/Website-redesign-3f1c2b4e8a9d4c1e9b2f0123456789ab'

        assert url_to_id(url) == ID_A

    def test_url_without_id(self):
        with pytest.raises(TransferCodecError):
            url_to_id('https://www.notion.so/workspace')


class TestTransferText:
    """Test encoding and decoding of transfer fields."""

    def test_encode_ids(self):
        assert encode_ids([ID_A, ID_B]) == f'{ID_A}, {ID_B}'

    def test_encode_empty(self):
        assert encode_ids([]) == ''

    def test_decode_keeps_order(self):
        assert decode_ids(f'{ID_B}, {ID_A}') == [ID_B, ID_A]

    def test_decode_bare_comma_and_whitespace(self):
        assert decode_ids(f' {ID_A},{ID_B} ,') == [ID_A, ID_B]

    @pytest.mark.parametrize('text', ['', '   ', None, ', ,'])
    def test_decode_empty(self, text):
        assert decode_ids(text) == []

    def test_decode_urls_in_id_list(self):
        assert decode_ids(encode_urls([ID_A, ID_B])) == [ID_A, ID_B]

    def test_decode_rejects_titles(self):
        with pytest.raises(TransferCodecError) as exc_info:
            decode_ids(f'{ID_A}, Website redesign')

        assert 'Website redesign' in str(exc_info.value)

    def test_decode_urls_from_free_text(self):
        text = f'See {id_to_url(ID_A)} and {id_to_url(ID_B)}'

        assert decode_urls(text) == [ID_A, ID_B]
