"""Parsers package for reading WordPress WXR exports into typed records."""

from .menu_builder import MenuBuilder
from .meta_decoder import decode_meta_value, extract_serialized_int
from .slugs import slugify, slug_from_url
from .wxr_parser import WxrParser, map_status

__all__ = [
    'MenuBuilder',
    'WxrParser',
    'decode_meta_value',
    'extract_serialized_int',
    'map_status',
    'slug_from_url',
    'slugify'
]
