"""
Best-effort decoding of WordPress post-meta values.

Meta values arrive as strings that may hold JSON (Elementor data), PHP
serialized scalars or PHP serialized arrays. Only JSON and the serialized
string case ``s:N:"...";`` are decoded. Serialized arrays and objects are
returned undecoded with the raw string intact; callers that need a field
out of one (e.g. attachment dimensions) use ``extract_serialized_int``.
"""

import json
import logging
import re
from typing import Optional

from models import MetaValue

logger = logging.getLogger('wp_cms_migrator.parsers.meta_decoder')

PHP_STRING_PATTERN = re.compile(r'^s:(\d+):"(.*)";$', re.DOTALL)
PHP_COMPOUND_PATTERN = re.compile(r'^[aO]:\d+:')


def decode_meta_value(raw: Optional[str]) -> MetaValue:
    """
    Decode a single post-meta value into a tagged ``MetaValue``.

    Args:
        raw: Raw meta value text (may be None for empty elements)

    Returns:
        MetaValue with ``decoded`` False when the raw string was kept
    """
    if raw is None:
        return MetaValue(raw='', value='', decoded=True)

    if raw.startswith('s:'):
        match = PHP_STRING_PATTERN.match(raw)
        if match:
            return MetaValue(raw=raw, value=match.group(2), decoded=True)
        logger.debug(f"Unparseable serialized string kept raw: {raw[:40]!r}")
        return MetaValue(raw=raw, value=raw, decoded=False)

    if PHP_COMPOUND_PATTERN.match(raw):
        # Known gap: serialized arrays/objects are not decoded
        return MetaValue(raw=raw, value=raw, decoded=False)

    if raw.startswith('[') or raw.startswith('{'):
        try:
            return MetaValue(raw=raw, value=json.loads(raw), decoded=True)
        except ValueError:
            logger.debug(f"Meta value looked like JSON but failed to parse: {raw[:40]!r}")
            return MetaValue(raw=raw, value=raw, decoded=False)

    return MetaValue(raw=raw, value=raw, decoded=True)


def extract_serialized_int(raw: str, key: str) -> Optional[int]:
    """
    Pull the first integer stored under ``key`` out of a PHP-serialized array.

    Only handles the ``s:N:"key";i:VALUE;`` shape. Top-level keys are
    serialized before nested ones, so the first match is the outer value.
    """
    if not raw:
        return None
    pattern = r's:%d:"%s";i:(\d+);' % (len(key.encode('utf-8')), re.escape(key))
    match = re.search(pattern, raw)
    if match:
        return int(match.group(1))
    return None


__all__ = ['decode_meta_value', 'extract_serialized_int']
