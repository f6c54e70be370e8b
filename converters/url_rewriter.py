"""Rewrites site URLs from the old WordPress base to the new site base."""

import logging
from typing import Optional

from bs4 import Tag

URL_ATTRIBUTES = ('href', 'src', 'data-src')


class UrlRewriter:
    """
    Maps URLs from an old base to a new base.

    URLs starting with the old base get that prefix swapped for the new base.
    Root-relative URLs (``/path`` but not ``//host``) are prefixed with the
    new base. Everything else, including URLs already on the new base, passes
    through unchanged.
    """

    def __init__(self, old_base: Optional[str] = None, new_base: Optional[str] = None,
                 logger: Optional[logging.Logger] = None):
        self.old_base = old_base or ''
        self.new_base = new_base or ''
        self.logger = logger or logging.getLogger('wp_cms_migrator.converters.url_rewriter')

    @property
    def enabled(self) -> bool:
        return bool(self.old_base or self.new_base)

    def rewrite(self, url: Optional[str]) -> Optional[str]:
        """Rewrite a single URL."""
        if not url or not self.enabled:
            return url

        if self.new_base and url.startswith(self.new_base):
            return url

        if self.old_base and url.startswith(self.old_base):
            return self.new_base + url[len(self.old_base):]

        if self.new_base and url.startswith('/') and not url.startswith('//'):
            return self.new_base.rstrip('/') + url

        return url

    def rewrite_element(self, element: Tag) -> int:
        """
        Rewrite URL attributes on one element in place.

        Returns:
            Number of attributes changed
        """
        changed = 0
        for attribute in URL_ATTRIBUTES:
            value = element.get(attribute)
            if not isinstance(value, str):
                continue
            new_value = self.rewrite(value)
            if new_value != value:
                element[attribute] = new_value
                changed += 1
        return changed


__all__ = ['UrlRewriter', 'URL_ATTRIBUTES']
