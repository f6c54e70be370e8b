"""Turns parsed pages and posts into store-ready page documents and menu sections."""

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from converters import ContentCleaner
from models import Menu, MenuObjectType, MenuSection, Page, PageDocument, Post
from parsers import slug_from_url, slugify

META_DESCRIPTION_LENGTH = 160
NEWS_SECTION = 'news'

YOAST_TITLE_KEY = '_yoast_wpseo_title'
YOAST_DESCRIPTION_KEY = '_yoast_wpseo_metadesc'


class PageTransformer:
    """Cleans content and derives SEO fields for each page or post."""

    def __init__(self, cleaner: ContentCleaner, media_migrator=None,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize page transformer.

        Args:
            cleaner: Content cleaner applied to content and excerpts
            media_migrator: Optional MediaMigrator providing URL-map lookups
            logger: Optional logger instance
        """
        self.cleaner = cleaner
        self.media_migrator = media_migrator
        self.logger = logger or logging.getLogger('wp_cms_migrator.orchestrator.page_transformer')

    def transform(self, page: Page) -> PageDocument:
        """
        Build the PageDocument for a page or post.

        Content is cleaned first; the URL map is then applied to the cleaned
        text so media references point at their migrated location.
        """
        content = self.cleaner.clean(page.raw_content)
        if self.media_migrator is not None:
            content = self.media_migrator.update_content_urls(content)

        is_post = isinstance(page, Post)

        return PageDocument(
            title=page.title,
            slug=page.slug,
            content=content,
            status=page.status,
            page_type=page.page_type,
            menu_order=0 if is_post else page.menu_order,
            menu_section=NEWS_SECTION if is_post else None,
            meta_title=self.meta_title(page),
            meta_description=self.meta_description(page),
            header_image=self._header_image(page),
            created_at=page.created_at,
            updated_at=page.modified_at or page.created_at
        )

    def meta_title(self, page: Page) -> str:
        """SEO title override unless it still holds ``%%`` template variables."""
        override = page.get_meta(YOAST_TITLE_KEY, '')
        if isinstance(override, str) and override.strip() and '%%' not in override:
            return override.strip()
        return page.title

    def meta_description(self, page: Page) -> str:
        """SEO description, else the plain text of the cleaned excerpt, at most 160 characters."""
        description = page.get_meta(YOAST_DESCRIPTION_KEY, '')
        if not isinstance(description, str) or not description.strip() or '%%' in description:
            excerpt = self.cleaner.clean(page.excerpt, record_stats=False)
            description = self.cleaner.to_plain_text(excerpt)
        return ' '.join(description.split())[:META_DESCRIPTION_LENGTH]

    def _header_image(self, page: Page) -> Optional[str]:
        if self.media_migrator is None or not page.featured_image_id:
            return None
        return self.media_migrator.get_new_url(page.featured_image_id)

    def assign_menus(
        self,
        documents: List[PageDocument],
        menus: Dict[str, Menu]
    ) -> Tuple[List[PageDocument], List[MenuSection]]:
        """
        Create one MenuSection per non-empty menu and attach pages to it.

        For every top-level ``page`` item the first document whose slug
        matches the item's URL, or whose title matches the item's title,
        takes the section id and the item's order. Later menus win when a
        page appears in several.

        Returns:
            New list of documents (inputs are not modified) and the sections
        """
        documents = list(documents)
        sections: List[MenuSection] = []

        for menu_name, menu in menus.items():
            if not menu.items:
                continue

            section = MenuSection(id=slugify(menu_name), title=menu_name, order=len(sections))
            sections.append(section)

            for item in menu.items:
                if item.object_type != MenuObjectType.PAGE:
                    continue

                item_slug = slug_from_url(item.url)
                for position, document in enumerate(documents):
                    if (item_slug and document.slug == item_slug) or document.title == item.title:
                        documents[position] = replace(
                            document, menu_section=section.id, menu_order=item.order
                        )
                        break
                else:
                    self.logger.debug(f"No page found for menu item '{item.title}' ({item.url})")

        return documents, sections


__all__ = ['PageTransformer', 'META_DESCRIPTION_LENGTH']
