"""Converters package for cleaning WordPress and Elementor markup into semantic HTML."""

import logging

from .html_cleaner import ContentCleaner
from .url_rewriter import UrlRewriter
from .widget_converters import Converted, Unrecognized, WidgetRegistry, create_default_registry

logger = logging.getLogger('wp_cms_migrator.converters')

__all__ = [
    'ContentCleaner',
    'Converted',
    'Unrecognized',
    'UrlRewriter',
    'WidgetRegistry',
    'create_default_registry'
]
