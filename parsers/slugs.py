"""Slug helpers shared by the parser, menu builder and orchestrator."""

import re

_NON_WORD = re.compile(r'[^\w\s-]')
_WHITESPACE = re.compile(r'\s+')
_HYPHENS = re.compile(r'-+')


def slugify(text: str) -> str:
    """
    Create a URL-friendly slug from a string.

    Lowercases, drops everything except word characters, whitespace and
    hyphens, turns whitespace runs into hyphens and collapses repeated hyphens.
    """
    if not text:
        return ''
    slug = _NON_WORD.sub('', text.lower())
    slug = _WHITESPACE.sub('-', slug.strip())
    return _HYPHENS.sub('-', slug)


def slug_from_url(url: str) -> str:
    """Derive a page slug from a menu item URL (``/about-us/`` -> ``about-us``)."""
    if not url:
        return ''
    path = url.split('?', 1)[0].split('#', 1)[0]
    if '://' in path:
        path = path.split('://', 1)[1]
        path = path.split('/', 1)[1] if '/' in path else ''
        path = path.strip('/').split('/')[-1]
    return path.strip('/')


__all__ = ['slugify', 'slug_from_url']
