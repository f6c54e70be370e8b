"""Content cleaner turning WordPress/Elementor markup into portable semantic HTML."""

import logging
import re
from typing import Any, Dict, List, Optional, Pattern, Union

from bs4 import BeautifulSoup, Comment, Tag

from .url_rewriter import UrlRewriter
from .widget_converters import (
    GENERATED_CLASSES, Converted, WidgetRegistry, create_default_registry
)

CONTAINER_ID = 'migration-content-root'

# Class tokens generated by WordPress and Elementor
VENDOR_CLASS_PATTERNS = [
    re.compile(pattern) for pattern in (
        r'^wp-', r'^elementor(-|$)', r'^e-', r'^attachment-', r'^size-',
        r'^align(left|right|center|none)', r'^gallery-', r'^widget-',
        r'^menu-', r'^post-', r'^page-', r'^entry-', r'^hentry', r'^clearfix',
        r'^has-', r'^is-', r'^block-'
    )
]

VENDOR_ID_PATTERN = re.compile(r'^(elementor-|wp-|post-|page-|widget-|menu-)')

DISALLOWED_TAGS = ['script', 'style', 'noscript']
BLOCKED_IFRAME_HOSTS = ('facebook', 'twitter')
HIDDEN_SELECTORS = '.elementor-screen-only, .screen-reader-text'

SCAFFOLDING_CLASSES = [
    'elementor-section', 'elementor-section-wrap', 'elementor-container',
    'elementor-row', 'elementor-column', 'elementor-column-wrap',
    'elementor-widget-wrap', 'elementor-inner'
]

BLOCK_ELEMENTS = {
    'div', 'p', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6',
    'ul', 'ol', 'table', 'figure', 'article', 'section'
}

TEXT_BREAK_TAGS = sorted(BLOCK_ELEMENTS | {'li', 'br', 'tr', 'td', 'th', 'figcaption', 'summary', 'details'})

EMPTY_CANDIDATES = ['p', 'div', 'span', 'li', 'ul', 'ol', 'section', 'article']
MEDIA_TAGS = ['img', 'iframe', 'video', 'audio', 'canvas', 'svg']

MAX_PASSES = 5

KeepPattern = Union[str, Pattern]


class ContentCleaner:
    """
    Cleans WordPress post HTML.

    The pipeline runs in a fixed order: strip disallowed elements, convert
    builder widgets, unwrap layout scaffolding, strip vendor attributes,
    rewrite URLs, semanticize images, remove empty elements and normalize
    whitespace. The whole pipeline is re-applied until the output stops
    changing, so cleaning an already cleaned fragment is a no-op.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        logger: Optional[logging.Logger] = None,
        registry: Optional[WidgetRegistry] = None
    ):
        """
        Initialize content cleaner.

        Args:
            config: Configuration dictionary (``source``, ``target`` and ``cleaner`` sections)
            logger: Optional logger instance
            registry: Widget converter registry (defaults to the built-in one)
        """
        config = config or {}
        self.logger = logger or logging.getLogger('wp_cms_migrator.converters.html_cleaner')

        cleaner_config = config.get('cleaner', {}) or {}
        self.remove_empty = cleaner_config.get('remove_empty', True)
        self.semanticize = cleaner_config.get('semanticize', True)

        self.keep_classes: List[KeepPattern] = list(cleaner_config.get('keep_classes') or [])
        for pattern in cleaner_config.get('keep_class_patterns') or []:
            self.keep_classes.append(re.compile(pattern))

        self.url_rewriter = UrlRewriter(
            old_base=(config.get('source', {}) or {}).get('base_url'),
            new_base=(config.get('target', {}) or {}).get('base_url'),
            logger=self.logger
        )
        self.registry = registry or create_default_registry(logger=self.logger)

        self.stats = {
            'documents_cleaned': 0,
            'widgets_converted': 0,
            'widgets_unrecognized': 0,
            'unrecognized_types': {}
        }

    def clean(self, html: Any, record_stats: bool = True) -> str:
        """
        Clean an HTML fragment.

        Args:
            html: Raw HTML content
            record_stats: Count this fragment and its widgets in ``stats``

        Returns:
            Cleaned HTML; empty string for empty or non-string input
        """
        if not html or not isinstance(html, str):
            return ''

        result = self._clean_once(html, record_stats=record_stats)
        for _ in range(MAX_PASSES - 1):
            again = self._clean_once(result)
            if again == result:
                break
            result = again
        else:
            self.logger.warning("Cleaning did not reach a stable result")

        if record_stats:
            self.stats['documents_cleaned'] += 1
        return result

    def to_plain_text(self, html: Any) -> str:
        """Visible text of a fragment with whitespace collapsed."""
        if not html or not isinstance(html, str):
            return ''
        soup = BeautifulSoup(html, 'lxml')
        for element in soup.find_all(DISALLOWED_TAGS):
            element.extract()
        # Block boundaries separate words; inline boundaries do not
        for element in soup.find_all(TEXT_BREAK_TAGS):
            element.insert_after(' ')
        return ' '.join(soup.get_text().split())

    def _clean_once(self, html: str, record_stats: bool = False) -> str:
        """Run the eight cleaning steps once."""
        soup = BeautifulSoup(f'<div id="{CONTAINER_ID}">{html}</div>', 'lxml')
        container = soup.find(id=CONTAINER_ID)
        if container is None:
            return ''
        self._reclaim_trailing_content(container)

        self._remove_unwanted_elements(container)
        self._convert_widgets(container, record_stats)
        self._unwrap_scaffolding(container)
        self._clean_attributes(container)
        if self.url_rewriter.enabled:
            self._fix_urls(container)
        if self.semanticize:
            self._semanticize(container)
        if self.remove_empty:
            self._remove_empty_elements(container)

        return self._clean_whitespace(container.decode_contents())

    def _reclaim_trailing_content(self, container: Tag) -> None:
        """Pull back nodes a stray closing tag pushed out of the container."""
        for sibling in list(container.next_siblings):
            container.append(sibling.extract())

    def _remove_unwanted_elements(self, container: Tag) -> None:
        """Step 1: scripts, styles, social embeds, screen-reader nodes and comments."""
        for element in container.find_all(DISALLOWED_TAGS):
            element.extract()

        for iframe in container.find_all('iframe'):
            src = iframe.get('src') or ''
            if any(host in src for host in BLOCKED_IFRAME_HOSTS):
                iframe.extract()

        for element in container.select(HIDDEN_SELECTORS):
            element.extract()

        for element in container.find_all(attrs={'aria-hidden': 'true'}):
            if all(isinstance(child, Comment) for child in element.contents):
                element.extract()

        for comment in container.find_all(string=lambda text: isinstance(text, Comment)):
            comment.extract()

    def _convert_widgets(self, container: Tag, record_stats: bool) -> None:
        """Step 2: replace recognized builder widgets, innermost first."""
        widgets = container.find_all(attrs={'data-widget_type': True})

        for widget in reversed(widgets):
            if widget.parent is None:
                continue
            result = self.registry.convert(widget)
            if isinstance(result, Converted):
                widget.replace_with(*result.nodes)
                if record_stats:
                    self.stats['widgets_converted'] += 1
            else:
                self.logger.debug(f"Leaving widget untouched: {result.reason}")
                if record_stats:
                    self.stats['widgets_unrecognized'] += 1
                    widget_type = widget.get('data-widget_type', 'unknown')
                    counts = self.stats['unrecognized_types']
                    counts[widget_type] = counts.get(widget_type, 0) + 1

    def _unwrap_scaffolding(self, container: Tag) -> None:
        """Step 3: unwrap builder layout containers and redundant divs."""
        selector = ', '.join(f'.{cls}' for cls in SCAFFOLDING_CLASSES)
        for element in container.select(selector):
            element.unwrap()

        for div in container.find_all('div'):
            if div.parent is None or self._has_protected_class(div):
                continue
            element_children = [child for child in div.children if isinstance(child, Tag)]
            if len(element_children) != 1 or element_children[0].name not in BLOCK_ELEMENTS:
                continue
            has_loose_text = any(
                not isinstance(child, Tag) and not isinstance(child, Comment) and child.strip()
                for child in div.children
            )
            if not has_loose_text:
                div.unwrap()

    def _clean_attributes(self, container: Tag) -> None:
        """Step 4: vendor classes, data attributes, inline styles and generated ids."""
        for element in container.find_all(True):
            classes = element.get('class')
            if classes:
                if isinstance(classes, str):
                    classes = classes.split()
                remaining = [
                    cls for cls in classes
                    if not self._is_vendor_class(cls) or self._is_kept(cls)
                ]
                if remaining:
                    element['class'] = remaining
                else:
                    del element['class']
            elif 'class' in element.attrs:
                del element['class']

            for attribute in list(element.attrs):
                if attribute.startswith('data-') and attribute != 'data-src':
                    del element[attribute]

            if 'style' in element.attrs:
                del element['style']

            element_id = element.get('id')
            if isinstance(element_id, str) and VENDOR_ID_PATTERN.match(element_id):
                del element['id']

    def _fix_urls(self, container: Tag) -> None:
        """Step 5: move URLs from the old base to the new base."""
        changed = 0
        for element in container.find_all(True):
            changed += self.url_rewriter.rewrite_element(element)
        if changed:
            self.logger.debug(f"Rewrote {changed} URLs")

    def _semanticize(self, container: Tag) -> None:
        """Step 6: every image gets alt text and lazy loading."""
        for img in container.find_all('img'):
            if img.get('alt') is None:
                img['alt'] = ''
            img['loading'] = 'lazy'

    def _remove_empty_elements(self, container: Tag) -> None:
        """Step 7: drop textless, media-less elements until nothing changes."""
        removed_total = 0
        while True:
            removed = 0
            for element in container.find_all(EMPTY_CANDIDATES):
                if element.parent is None:
                    continue
                if element.get_text().strip():
                    continue
                if element.find(MEDIA_TAGS) is not None:
                    continue
                element.extract()
                removed += 1
            removed_total += removed
            if not removed:
                break

        if removed_total:
            self.logger.debug(f"Removed {removed_total} empty elements")

    @staticmethod
    def _clean_whitespace(html: str) -> str:
        """Step 8: one tag per line boundary, stripped lines, no runs of blank lines."""
        html = re.sub(r'>\s+<', '>\n<', html)
        html = '\n'.join(line.strip() for line in html.split('\n'))
        html = re.sub(r'\n{3,}', '\n\n', html)
        return html.strip()

    def _is_vendor_class(self, cls: str) -> bool:
        return any(pattern.search(cls) for pattern in VENDOR_CLASS_PATTERNS)

    def _is_kept(self, cls: str) -> bool:
        for pattern in self.keep_classes:
            if isinstance(pattern, str):
                if cls == pattern:
                    return True
            elif pattern.search(cls):
                return True
        return False

    def _has_protected_class(self, element: Tag) -> bool:
        classes = element.get('class') or []
        if isinstance(classes, str):
            classes = classes.split()
        return any(cls in GENERATED_CLASSES or self._is_kept(cls) for cls in classes)


__all__ = ['ContentCleaner']
