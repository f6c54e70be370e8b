"""Writes cleaned page HTML to disk for review before anything is committed."""

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Union

from models import PageDocument

PREVIEW_DIRECTORY = 'cleaned-content'


class PreviewWriter:
    """Writes one ``<slug>.html`` file per page document."""

    def __init__(self, output_dir: Union[str, Path], logger: Optional[logging.Logger] = None):
        self.output_dir = Path(output_dir)
        self.preview_dir = self.output_dir / PREVIEW_DIRECTORY
        self.logger = logger or logging.getLogger('wp_cms_migrator.exporters.preview_writer')

    @staticmethod
    def preview_filename(slug: str) -> str:
        """File name for a slug; path separators cannot escape the preview directory."""
        safe = re.sub(r'[\\/]+', '-', slug or '').strip('.') or 'untitled'
        return f"{safe}.html"

    def write(self, documents: List[PageDocument]) -> List[Path]:
        """
        Write previews for all documents.

        A later document with the same slug overwrites an earlier one.

        Returns:
            Paths written, in document order
        """
        self.preview_dir.mkdir(parents=True, exist_ok=True)

        written: List[Path] = []
        seen: Dict[str, str] = {}
        for document in documents:
            filename = self.preview_filename(document.slug)
            if filename in seen:
                self.logger.warning(
                    f"Duplicate slug '{document.slug}': preview of '{seen[filename]}' overwritten by '{document.title}'"
                )
            seen[filename] = document.title

            path = self.preview_dir / filename
            path.write_text(document.content, encoding='utf-8')
            written.append(path)

        self.logger.info(f"Cleaned content saved to: {self.preview_dir}/")
        return written


__all__ = ['PreviewWriter', 'PREVIEW_DIRECTORY']
