"""Export package for the WordPress migration pipeline.

Package Structure:
- media_migrator: Downloads attachments, uploads them to a blob store and keeps the URL map
- preview_writer: Writes cleaned page HTML to ``cleaned-content/`` for review

Configuration Referenced:
- media.concurrency / media.timeout / media.max_redirects: Download behaviour
- media.skip_existing: Reuse files already present in the download directory
- media.download_dir: Local media directory
"""

from .media_migrator import MediaMigrator
from .preview_writer import PreviewWriter, PREVIEW_DIRECTORY

__all__ = [
    'MediaMigrator',
    'PreviewWriter',
    'PREVIEW_DIRECTORY'
]
