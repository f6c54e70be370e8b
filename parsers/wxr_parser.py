"""
Parser for WordPress eXtended RSS (WXR) export files.

The whole document is parsed with lxml and every element's children are
indexed by qualified name (``wp:post_type``, ``content:encoded``...). Lookups
always go through lists: WXR drops the list wrapper when an element occurs
once, so repeating elements must never be treated as scalars.
"""

import logging
import mimetypes
import os
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Optional
from urllib.parse import urlparse

from dateutil import parser as date_parser
from lxml import etree

from exceptions import FormatError
from models import (
    Attachment, MenuItem, MenuObjectType, MetaValue, Page, PageStatus,
    ParsedExport, Post, SiteInfo, Term
)
from .menu_builder import MenuBuilder
from .meta_decoder import decode_meta_value, extract_serialized_int
from .slugs import slugify

# Elements consumed as lists regardless of how many times they occur
REPEATING_ELEMENTS = frozenset({'item', 'category', 'wp:category', 'wp:tag', 'wp:term', 'wp:postmeta'})

STATUS_MAP = {
    'publish': PageStatus.PUBLISHED,
    'draft': PageStatus.DRAFT,
    'pending': PageStatus.DRAFT,
    'private': PageStatus.DRAFT,
    'future': PageStatus.DRAFT,
    'trash': PageStatus.ARCHIVED
}

DEFAULT_MIME_TYPE = 'application/octet-stream'

ChildIndex = Dict[str, List[etree._Element]]


def map_status(wp_status: Optional[str]) -> PageStatus:
    """Map a WordPress post status onto the target status set (unknown -> draft)."""
    return STATUS_MAP.get((wp_status or '').strip().lower(), PageStatus.DRAFT)


def guess_mime_type(filename: str) -> str:
    """Guess a MIME type from a file name or URL extension."""
    if not filename:
        return DEFAULT_MIME_TYPE
    mime_type, _ = mimetypes.guess_type(filename.split('?', 1)[0])
    return mime_type or DEFAULT_MIME_TYPE


def extract_filename(url: str) -> str:
    """Return the last path segment of a URL, without the query string."""
    if not url:
        return ''
    return os.path.basename(urlparse(url).path)


class WxrParser:
    """Parses a WXR export into typed records."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize the parser.

        Args:
            logger: Optional logger instance
        """
        self.logger = logger or logging.getLogger('wp_cms_migrator.parsers.wxr_parser')
        self.menu_builder = MenuBuilder(logger=self.logger)
        self.skipped_types: Dict[str, int] = defaultdict(int)

    def parse(self, file_path: str) -> ParsedExport:
        """
        Parse a WordPress XML export file.

        Args:
            file_path: Path to the WXR file

        Returns:
            ParsedExport with every record type extracted

        Raises:
            FormatError: If the document is not well-formed or has no channel
        """
        self.logger.info(f"Parsing WordPress export: {file_path}")

        xml_parser = etree.XMLParser(
            resolve_entities=False,
            no_network=True,
            huge_tree=True,
            remove_blank_text=False
        )
        try:
            tree = etree.parse(file_path, xml_parser)
        except etree.XMLSyntaxError as e:
            raise FormatError(f"Invalid WordPress export file - malformed XML: {e}") from e

        root = tree.getroot()
        channel = None
        if etree.QName(root).localname == 'rss':
            channel = root.find('channel')
        if channel is None:
            raise FormatError('Invalid WordPress export file - no channel found')

        channel_index = self._index_children(channel)

        site_info = SiteInfo(
            title=self._text(channel_index, 'title'),
            link=self._text(channel_index, 'link'),
            description=self._text(channel_index, 'description'),
            language=self._text(channel_index, 'language') or 'en-NZ',
            pub_date=self._text(channel_index, 'pubDate'),
            base_site_url=(
                self._text(channel_index, 'wp:base_site_url')
                or self._text(channel_index, 'link')
            )
        )

        result = ParsedExport(site_info=site_info)

        for item in self._repeated(channel_index, 'item'):
            item_index = self._index_children(item)
            post_type = self._text(item_index, 'wp:post_type')

            if post_type == 'page':
                result.pages.append(self._parse_page(item_index))
            elif post_type == 'post':
                result.posts.append(self._parse_post(item_index))
            elif post_type == 'attachment':
                result.attachments.append(self._parse_attachment(item_index))
            elif post_type == 'nav_menu_item':
                result.menu_items.append(self._parse_menu_item(item_index))
            else:
                self.skipped_types[post_type or 'unknown'] += 1

        for post_type, count in self.skipped_types.items():
            self.logger.debug(f"Ignored {count} items of post type '{post_type}'")

        result.categories = [
            self._parse_category(index) for index in self._list_indexes(channel_index, 'wp:category')
        ]
        result.tags = [
            self._parse_tag(index) for index in self._list_indexes(channel_index, 'wp:tag')
        ]
        result.terms = [
            self._parse_term(index) for index in self._list_indexes(channel_index, 'wp:term')
        ]

        result.menus = self.menu_builder.build(result.menu_items)

        self.logger.info(
            f"Found: {len(result.pages)} pages, {len(result.posts)} posts, "
            f"{len(result.attachments)} attachments"
        )
        self.logger.info(f"Menus: {len(result.menus)} navigation menus")

        return result

    # ------------------------------------------------------------------
    # Record construction
    # ------------------------------------------------------------------

    def _parse_page(self, index: ChildIndex) -> Page:
        """Build a Page from an item's child index."""
        return Page(**self._page_fields(index, 'page'))

    def _parse_post(self, index: ChildIndex) -> Post:
        """Build a Post, including its category and tag assignments."""
        categories: List[Term] = []
        tags: List[Term] = []

        for element in self._repeated(index, 'category'):
            domain = element.get('domain')
            name = (element.text or '').strip()
            slug = element.get('nicename') or slugify(name)
            if domain == 'category':
                categories.append(Term(slug=slug, name=name, type='category'))
            elif domain == 'post_tag':
                tags.append(Term(slug=slug, name=name, type='tag'))

        return Post(categories=categories, tags=tags, **self._page_fields(index, 'post'))

    def _page_fields(self, index: ChildIndex, post_type: str) -> dict:
        """Collect the fields shared by pages and posts."""
        meta = self._parse_post_meta(index)
        post_id = self._text(index, 'wp:post_id')
        title = self._text(index, 'title')

        slug = self._text(index, 'wp:post_name') or slugify(title).strip('-')
        if not slug:
            slug = f"{post_type}-{post_id}"
            self.logger.debug(f"Item {post_id} has no name or title, using slug '{slug}'")

        parent_id = self._text(index, 'wp:post_parent')
        edit_mode = meta.get('_elementor_edit_mode')
        builder_data = meta.get('_elementor_data')
        thumbnail = meta.get('_thumbnail_id')

        return {
            'id': post_id,
            'title': title,
            'slug': slug,
            'raw_content': self._text(index, 'content:encoded', strip=False),
            'excerpt': self._text(index, 'excerpt:encoded', strip=False),
            'status': map_status(self._text(index, 'wp:status')),
            'parent_id': parent_id if parent_id and parent_id != '0' else None,
            'menu_order': self._int(self._text(index, 'wp:menu_order')),
            'created_at': self._created_at(index),
            'modified_at': self._parse_date(
                self._text(index, 'wp:post_modified_gmt') or self._text(index, 'wp:post_modified')
            ) or datetime.now(timezone.utc),
            'author': self._text(index, 'dc:creator'),
            'metadata': meta,
            'is_builder_authored': edit_mode is not None and edit_mode.value == 'builder',
            'builder_payload': builder_data.raw if builder_data is not None and builder_data.raw else None,
            'featured_image_id': thumbnail.raw if thumbnail is not None and thumbnail.raw else None
        }

    def _parse_attachment(self, index: ChildIndex) -> Attachment:
        """Build an Attachment record."""
        meta = self._parse_post_meta(index)
        url = self._text(index, 'wp:attachment_url')

        attached_file = meta.get('_wp_attached_file')
        if attached_file is not None and attached_file.raw:
            mime_type = guess_mime_type(attached_file.raw)
        else:
            mime_type = guess_mime_type(url)

        dimensions = None
        attachment_meta = meta.get('_wp_attachment_metadata')
        if attachment_meta is not None:
            width = extract_serialized_int(attachment_meta.raw, 'width')
            height = extract_serialized_int(attachment_meta.raw, 'height')
            if width is not None and height is not None:
                dimensions = {'width': width, 'height': height}

        alt = meta.get('_wp_attachment_image_alt')
        parent_id = self._text(index, 'wp:post_parent')

        return Attachment(
            id=self._text(index, 'wp:post_id'),
            title=self._text(index, 'title'),
            source_url=url,
            filename=extract_filename(url),
            mime_type=mime_type,
            alt_text=alt.value if alt is not None and isinstance(alt.value, str) else '',
            caption=self._text(index, 'excerpt:encoded'),
            description=self._text(index, 'content:encoded'),
            created_at=self._created_at(index),
            dimensions=dimensions,
            parent_id=parent_id if parent_id and parent_id != '0' else None
        )

    def _parse_menu_item(self, index: ChildIndex) -> MenuItem:
        """Build a flat MenuItem record."""
        meta = self._parse_post_meta(index)

        def meta_text(key: str, default: str = '') -> str:
            value = meta.get(key)
            if value is None or not value.raw:
                return default
            return value.value if isinstance(value.value, str) else value.raw

        object_name = meta_text('_menu_item_object')
        try:
            object_type = MenuObjectType(object_name)
        except ValueError:
            object_type = MenuObjectType.CUSTOM

        classes_meta = meta.get('_menu_item_classes')
        css_classes: List[str] = []
        if classes_meta is not None and isinstance(classes_meta.value, list):
            css_classes = [str(cls) for cls in classes_meta.value if cls]

        menu_name = None
        for element in self._repeated(index, 'category'):
            if element.get('domain') == 'nav_menu':
                menu_name = (element.text or '').strip() or element.get('nicename')
                break

        return MenuItem(
            id=self._text(index, 'wp:post_id'),
            title=self._text(index, 'title'),
            parent_id=meta_text('_menu_item_menu_item_parent', '0'),
            object_type=object_type,
            object_id=meta_text('_menu_item_object_id') or None,
            url=meta_text('_menu_item_url'),
            order=self._int(self._text(index, 'wp:menu_order')),
            target_window=meta_text('_menu_item_target'),
            css_classes=css_classes,
            menu_name=menu_name
        )

    def _parse_category(self, index: ChildIndex) -> Term:
        return Term(
            type='category',
            slug=self._text(index, 'wp:category_nicename') or self._text(index, 'wp:term_slug'),
            name=self._text(index, 'wp:cat_name') or self._text(index, 'wp:term_name'),
            description=self._text(index, 'wp:category_description'),
            parent_slug=self._text(index, 'wp:category_parent')
        )

    def _parse_tag(self, index: ChildIndex) -> Term:
        return Term(
            type='tag',
            slug=self._text(index, 'wp:tag_slug') or self._text(index, 'wp:term_slug'),
            name=self._text(index, 'wp:tag_name') or self._text(index, 'wp:term_name'),
            description=self._text(index, 'wp:tag_description')
        )

    def _parse_term(self, index: ChildIndex) -> Term:
        return Term(
            type='term',
            slug=self._text(index, 'wp:term_slug'),
            name=self._text(index, 'wp:term_name'),
            description=self._text(index, 'wp:term_description'),
            parent_slug=self._text(index, 'wp:term_parent'),
            taxonomy=self._text(index, 'wp:term_taxonomy') or None
        )

    def _parse_post_meta(self, index: ChildIndex) -> Dict[str, MetaValue]:
        """Decode all ``wp:postmeta`` pairs of an item."""
        meta: Dict[str, MetaValue] = {}
        for meta_index in self._list_indexes(index, 'wp:postmeta'):
            key = self._text(meta_index, 'wp:meta_key')
            if not key:
                continue
            meta[key] = decode_meta_value(self._text(meta_index, 'wp:meta_value'))
        return meta

    # ------------------------------------------------------------------
    # Element helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _index_children(element: etree._Element) -> ChildIndex:
        """Index element children by ``prefix:localname`` (always lists)."""
        index: ChildIndex = defaultdict(list)
        for child in element:
            if not isinstance(child.tag, str):
                continue
            localname = etree.QName(child).localname
            key = f"{child.prefix}:{localname}" if child.prefix else localname
            index[key].append(child)
        return index

    @staticmethod
    def _repeated(index: ChildIndex, key: str) -> List[etree._Element]:
        """Every occurrence of a repeating element; a single occurrence is still a list."""
        if key not in REPEATING_ELEMENTS:
            raise KeyError(f"'{key}' is not a repeating WXR element")
        return index.get(key, [])

    def _list_indexes(self, index: ChildIndex, key: str) -> List[ChildIndex]:
        """Child indexes of every occurrence of a repeating element."""
        return [self._index_children(element) for element in self._repeated(index, key)]

    def _text(self, index: ChildIndex, key: str, strip: bool = True) -> str:
        """Text of the first element under ``key``, trying the bare local name second."""
        elements = index.get(key)
        if not elements and ':' in key:
            elements = index.get(key.split(':', 1)[1])
        if not elements:
            return ''
        text = self._element_markup(elements[0])
        return text.strip() if strip else text

    @staticmethod
    def _element_markup(element: etree._Element) -> str:
        """
        Inner content of an element.

        CDATA sections arrive as plain text. Unescaped inline markup is
        serialized back to a string without inherited namespace declarations.
        """
        parts = [element.text or '']
        for child in element:
            clone = etree.fromstring(etree.tostring(child, with_tail=False))
            etree.cleanup_namespaces(clone)
            parts.append(etree.tostring(clone, encoding='unicode', with_tail=False))
            parts.append(child.tail or '')
        return ''.join(parts)

    def _created_at(self, index: ChildIndex) -> datetime:
        """Creation timestamp from pubDate, post_date_gmt or post_date."""
        for key in ('pubDate', 'wp:post_date_gmt', 'wp:post_date'):
            parsed = self._parse_date(self._text(index, key))
            if parsed is not None:
                return parsed
        return datetime.now(timezone.utc)

    @staticmethod
    def _parse_date(value: str) -> Optional[datetime]:
        """Parse a WXR date; naive values are taken as UTC."""
        if not value or value.startswith('0000-00-00'):
            return None
        try:
            parsed = date_parser.parse(value)
        except (ValueError, OverflowError):
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    @staticmethod
    def _int(value: str) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return 0


__all__ = ['WxrParser', 'map_status', 'guess_mime_type', 'extract_filename', 'REPEATING_ELEMENTS']
