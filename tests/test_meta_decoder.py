"""Tests for post-meta decoding and slug helpers."""

from parsers import decode_meta_value, extract_serialized_int, slug_from_url, slugify


class TestDecodeMetaValue:
    """Decoding of the value shapes found in WXR post meta."""

    def test_plain_string(self):
        meta = decode_meta_value('builder')
        assert meta.value == 'builder'
        assert meta.decoded is True

    def test_json_array(self):
        meta = decode_meta_value('[{"id":"a1","elType":"section"}]')
        assert meta.decoded is True
        assert meta.value == [{'id': 'a1', 'elType': 'section'}]

    def test_json_object(self):
        meta = decode_meta_value('{"enabled": true}')
        assert meta.value == {'enabled': True}

    def test_broken_json_is_kept_raw(self):
        meta = decode_meta_value('[not json')
        assert meta.decoded is False
        assert meta.value == '[not json'
        assert meta.raw == '[not json'

    def test_serialized_string(self):
        meta = decode_meta_value('s:11:"Hello world";')
        assert meta.decoded is True
        assert meta.value == 'Hello world'

    def test_serialized_array_is_not_decoded(self):
        raw = 'a:2:{s:5:"width";i:800;s:6:"height";i:600;}'
        meta = decode_meta_value(raw)
        assert meta.decoded is False
        assert meta.value == raw
        assert meta.raw == raw

    def test_none_becomes_empty(self):
        meta = decode_meta_value(None)
        assert meta.raw == ''
        assert meta.value == ''


class TestExtractSerializedInt:

    def test_outer_value_wins(self):
        raw = (
            'a:3:{s:5:"width";i:1920;s:6:"height";i:1080;'
            's:5:"sizes";a:1:{s:5:"thumb";a:2:{s:5:"width";i:150;s:6:"height";i:150;}}}'
        )
        assert extract_serialized_int(raw, 'width') == 1920
        assert extract_serialized_int(raw, 'height') == 1080

    def test_missing_key(self):
        assert extract_serialized_int('a:0:{}', 'width') is None
        assert extract_serialized_int('', 'width') is None


class TestSlugs:

    def test_slugify(self):
        assert slugify('Hello World') == 'hello-world'
        assert slugify('  Fees & Uniforms  ') == 'fees-uniforms'
        assert slugify('Term--Dates') == 'term-dates'
        assert slugify('') == ''

    def test_slug_from_url(self):
        assert slug_from_url('/about-us/') == 'about-us'
        assert slug_from_url('https://site.test/parents/term-dates/') == 'term-dates'
        assert slug_from_url('https://site.test/contact?ref=nav#form') == 'contact'
        assert slug_from_url('https://site.test/') == ''
        assert slug_from_url('') == ''
