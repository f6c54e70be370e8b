"""Data models for the WordPress export migration pipeline."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger('wp_cms_migrator')


class PageStatus(Enum):
    """Publication status of a migrated page."""
    PUBLISHED = "published"
    DRAFT = "draft"
    ARCHIVED = "archived"


class PageType(Enum):
    """Page layouts understood by the target CMS."""
    STANDARD = "standard"
    NEWS = "news"
    VIDEO_GALLERY = "video-gallery"
    STAFF_LISTING = "staff-listing"


class MenuObjectType(Enum):
    """Kind of object a navigation menu item points at."""
    POST = "post"
    PAGE = "page"
    CUSTOM = "custom"


@dataclass(frozen=True)
class MetaValue:
    """
    Result of decoding a post-meta value.

    ``decoded`` is False when the raw string was kept because the value could
    not be (or is deliberately not) decoded, e.g. PHP-serialized arrays.
    """

    raw: str
    value: Any
    decoded: bool

    def to_dict(self) -> Dict[str, Any]:
        """Serialize meta value to dictionary."""
        return {'raw': self.raw, 'value': self.value, 'decoded': self.decoded}


@dataclass
class Term:
    """Taxonomy term (category, tag or custom term)."""

    slug: str
    name: str
    type: str = 'category'
    description: str = ''
    parent_slug: str = ''
    taxonomy: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize term to dictionary."""
        return {
            'type': self.type,
            'slug': self.slug,
            'name': self.name,
            'description': self.description,
            'parent_slug': self.parent_slug,
            'taxonomy': self.taxonomy
        }


@dataclass
class SiteInfo:
    """Channel-level metadata of the export."""

    title: str = ''
    link: str = ''
    description: str = ''
    language: str = 'en-NZ'
    pub_date: str = ''
    base_site_url: str = ''

    def to_dict(self) -> Dict[str, Any]:
        """Serialize site info to dictionary."""
        return {
            'title': self.title,
            'link': self.link,
            'description': self.description,
            'language': self.language,
            'pub_date': self.pub_date,
            'base_site_url': self.base_site_url
        }


@dataclass
class Page:
    """A WordPress page as read from the export."""

    id: str
    title: str
    slug: str
    raw_content: str = ''
    excerpt: str = ''
    status: PageStatus = PageStatus.DRAFT
    parent_id: Optional[str] = None
    menu_order: int = 0
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    author: str = ''
    metadata: Dict[str, MetaValue] = field(default_factory=dict)
    is_builder_authored: bool = False
    builder_payload: Optional[str] = None
    featured_image_id: Optional[str] = None

    @property
    def page_type(self) -> PageType:
        """Target page type for this record."""
        return PageType.STANDARD

    def get_meta(self, key: str, default: Any = None) -> Any:
        """Return the (decoded when possible) value of a post-meta key."""
        meta = self.metadata.get(key)
        if meta is None:
            return default
        return meta.value

    def to_dict(self) -> Dict[str, Any]:
        """Serialize page to dictionary."""
        return {
            'id': self.id,
            'title': self.title,
            'slug': self.slug,
            'raw_content': self.raw_content,
            'excerpt': self.excerpt,
            'status': self.status.value,
            'parent_id': self.parent_id,
            'menu_order': self.menu_order,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'modified_at': self.modified_at.isoformat() if self.modified_at else None,
            'author': self.author,
            'metadata': {key: meta.to_dict() for key, meta in self.metadata.items()},
            'is_builder_authored': self.is_builder_authored,
            'builder_payload': self.builder_payload,
            'featured_image_id': self.featured_image_id
        }


@dataclass
class Post(Page):
    """A WordPress blog post; always migrated as a news page."""

    categories: List[Term] = field(default_factory=list)
    tags: List[Term] = field(default_factory=list)

    @property
    def page_type(self) -> PageType:
        return PageType.NEWS

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['categories'] = [term.to_dict() for term in self.categories]
        data['tags'] = [term.to_dict() for term in self.tags]
        return data


@dataclass
class Attachment:
    """A media attachment referenced by the export."""

    id: str
    title: str
    source_url: str
    filename: str
    mime_type: str = 'application/octet-stream'
    alt_text: str = ''
    caption: str = ''
    description: str = ''
    created_at: Optional[datetime] = None
    dimensions: Optional[Dict[str, int]] = None
    parent_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize attachment to dictionary."""
        return {
            'id': self.id,
            'title': self.title,
            'source_url': self.source_url,
            'filename': self.filename,
            'mime_type': self.mime_type,
            'alt_text': self.alt_text,
            'caption': self.caption,
            'description': self.description,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'dimensions': self.dimensions,
            'parent_id': self.parent_id
        }


@dataclass
class MenuItem:
    """A navigation menu entry; ``children`` is only populated on tree nodes."""

    id: str
    title: str
    parent_id: str = '0'
    object_type: MenuObjectType = MenuObjectType.CUSTOM
    object_id: Optional[str] = None
    url: str = ''
    order: int = 0
    target_window: str = ''
    css_classes: List[str] = field(default_factory=list)
    menu_name: Optional[str] = None
    children: List['MenuItem'] = field(default_factory=list)

    def is_root(self) -> bool:
        """Check if this item sits at the top level of its menu."""
        return self.parent_id == '0'

    def to_dict(self) -> Dict[str, Any]:
        """Serialize menu item (and its subtree) to dictionary."""
        return {
            'id': self.id,
            'title': self.title,
            'parent_id': self.parent_id,
            'object_type': self.object_type.value,
            'object_id': self.object_id,
            'url': self.url,
            'order': self.order,
            'target_window': self.target_window,
            'css_classes': list(self.css_classes),
            'menu_name': self.menu_name,
            'children': [child.to_dict() for child in self.children]
        }


@dataclass
class Menu:
    """A named navigation menu holding an ordered tree of items."""

    name: str
    slug: str
    items: List[MenuItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize menu to dictionary."""
        return {
            'name': self.name,
            'slug': self.slug,
            'items': [item.to_dict() for item in self.items]
        }


@dataclass
class ParsedExport:
    """Everything the parser extracted from one WXR file."""

    site_info: SiteInfo
    pages: List[Page] = field(default_factory=list)
    posts: List[Post] = field(default_factory=list)
    attachments: List[Attachment] = field(default_factory=list)
    categories: List[Term] = field(default_factory=list)
    tags: List[Term] = field(default_factory=list)
    terms: List[Term] = field(default_factory=list)
    menus: Dict[str, Menu] = field(default_factory=dict)
    menu_items: List[MenuItem] = field(default_factory=list)

    def get_statistics(self) -> Dict[str, int]:
        """Get record counts per type."""
        return {
            'pages': len(self.pages),
            'posts': len(self.posts),
            'attachments': len(self.attachments),
            'menu_items': len(self.menu_items),
            'menus': len(self.menus),
            'categories': len(self.categories),
            'tags': len(self.tags),
            'terms': len(self.terms)
        }


@dataclass
class MenuSection:
    """Output document describing one navigation section."""

    id: str
    title: str
    order: int
    description: str = ''
    visible: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Serialize section to its store representation."""
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'order': self.order,
            'visible': self.visible
        }


@dataclass
class PageDocument:
    """Store-ready page shape produced for every migrated page or post."""

    title: str
    slug: str
    content: str
    status: PageStatus
    page_type: PageType
    menu_order: int = 0
    menu_section: Optional[str] = None
    meta_title: str = ''
    meta_description: str = ''
    header_image: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: str = 'migration'
    updated_by: str = 'migration'

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the store representation (camelCase keys)."""
        return {
            'title': self.title,
            'slug': self.slug,
            'content': self.content,
            'status': self.status.value,
            'pageType': self.page_type.value,
            'menuSection': self.menu_section,
            'menuOrder': self.menu_order,
            'metaTitle': self.meta_title,
            'metaDescription': self.meta_description,
            'headerImage': self.header_image,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
            'createdBy': self.created_by,
            'updatedBy': self.updated_by
        }

    def to_summary(self) -> Dict[str, str]:
        """Short form used in the migration report."""
        return {'title': self.title, 'slug': self.slug, 'status': self.status.value}


@dataclass
class MediaDocument:
    """Store-ready metadata for an uploaded attachment."""

    filename: str
    url: str
    original_url: str
    mime_type: str
    alt: str = ''
    caption: str = ''
    created_at: Optional[datetime] = None
    uploaded_by: str = 'migration'

    @property
    def type(self) -> str:
        """Major MIME type, e.g. ``image`` for ``image/png``."""
        major = (self.mime_type or '').split('/')[0]
        return major or 'file'

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the store representation (camelCase keys)."""
        return {
            'filename': self.filename,
            'url': self.url,
            'originalUrl': self.original_url,
            'type': self.type,
            'mimeType': self.mime_type,
            'alt': self.alt,
            'caption': self.caption,
            'createdAt': self.created_at,
            'uploadedBy': self.uploaded_by
        }


@dataclass
class MediaMigrationResult:
    """Aggregate outcome of a media migration run."""

    stats: Dict[str, Any]
    url_map: Dict[str, str]


@dataclass
class MigrationOptions:
    """Run-time switches for one orchestrator invocation."""

    dry_run: bool = False
    download_media: bool = False
    upload_media: bool = False
    verbose: int = 0
    output_dir: str = './migration/output'
    url_map_path: Optional[str] = None

    @property
    def media_requested(self) -> bool:
        """Check if any media stage was requested."""
        return self.download_media or self.upload_media


__all__ = [
    'Attachment',
    'MediaDocument',
    'MediaMigrationResult',
    'Menu',
    'MenuItem',
    'MenuObjectType',
    'MenuSection',
    'MetaValue',
    'MigrationOptions',
    'Page',
    'PageDocument',
    'PageStatus',
    'PageType',
    'ParsedExport',
    'Post',
    'SiteInfo',
    'Term'
]
