"""Media migrator for downloading WordPress attachments and remapping their URLs."""

import json
import logging
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter
from tqdm import tqdm
from urllib3.util.retry import Retry

from converters.url_rewriter import UrlRewriter
from exceptions import AttachmentError
from models import Attachment, MediaMigrationResult
from parsers.wxr_parser import extract_filename


class MediaMigrator:
    """
    Downloads attachments, optionally uploads them to a blob store and builds
    the old-URL/old-id to new-URL map.

    Attachments are processed in fixed-size chunks. Every member of a chunk
    runs concurrently and the chunk fully resolves before the next one
    starts. Workers only ever write their own attachment's URL-map keys;
    shared counters are guarded by a lock.
    """

    def __init__(
        self,
        config: Dict[str, Any],
        blob_store=None,
        session: Optional[requests.Session] = None,
        download_dir: Optional[Union[str, Path]] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the media migrator.

        Args:
            config: Configuration dictionary
            blob_store: Optional BlobStore; without one the local path stands in as the new URL
            session: Optional requests session (a retrying session is created otherwise)
            download_dir: Optional download directory override (takes precedence over config)
            logger: Logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger('wp_cms_migrator.exporters.media_migrator')

        media_config = config.get('media', {}) or {}
        self.download_dir = Path(download_dir or media_config.get('download_dir', './migration/downloads'))
        self.concurrency = max(1, int(media_config.get('concurrency', 5)))
        self.timeout = media_config.get('timeout', 30)
        self.skip_existing = media_config.get('skip_existing', True)
        self.max_redirects = int(media_config.get('max_redirects', 5))
        self.max_retries = int(media_config.get('max_retries', 3))
        self.public_path_prefix = media_config.get('public_path_prefix', '/images').rstrip('/')
        self.show_progress = (config.get('logging', {}) or {}).get('progress_bars', True)

        self.blob_store = blob_store
        self.session = session or self._create_session()
        self.url_rewriter = UrlRewriter(
            old_base=(config.get('source', {}) or {}).get('base_url'),
            new_base=(config.get('target', {}) or {}).get('base_url')
        )

        self.url_map: Dict[str, str] = {}
        self._lock = threading.Lock()
        self.stats = self._empty_stats()

    def _create_session(self) -> requests.Session:
        """Session retrying transient failures; redirects are followed manually."""
        session = requests.Session()
        retry_strategy = Retry(
            total=self.max_retries,
            backoff_factor=1.0,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET"],
            raise_on_status=False
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    @staticmethod
    def _empty_stats() -> Dict[str, Any]:
        return {
            'total': 0,
            'downloaded': 0,
            'uploaded': 0,
            'skipped': 0,
            'failed': 0,
            'errors': []
        }

    def migrate(self, attachments: List[Attachment]) -> MediaMigrationResult:
        """
        Migrate media files referenced by the export.

        Args:
            attachments: Attachment records from the parser

        Returns:
            MediaMigrationResult with stats and the URL map
        """
        self.logger.info(f"Migrating {len(attachments)} media files...")
        self.download_dir.mkdir(parents=True, exist_ok=True)

        self.stats = self._empty_stats()
        self.stats['total'] = len(attachments)

        chunks = [
            attachments[start:start + self.concurrency]
            for start in range(0, len(attachments), self.concurrency)
        ]

        with tqdm(total=len(attachments), desc="Media", unit="file",
                  disable=not self.show_progress) as progress:
            for chunk in chunks:
                with ThreadPoolExecutor(max_workers=len(chunk)) as executor:
                    futures = [executor.submit(self._process_attachment, attachment) for attachment in chunk]
                    for future in futures:
                        future.result()
                        progress.update(1)

        self._log_summary()
        return MediaMigrationResult(stats=self.get_stats(), url_map=dict(self.url_map))

    def _process_attachment(self, attachment: Attachment) -> None:
        """Download (and upload) one attachment; never raises."""
        url = attachment.source_url
        if not url:
            self._increment('skipped')
            self.logger.debug(f"Attachment {attachment.id} has no URL, skipping")
            return

        local_path = None
        try:
            filename = self.sanitize_filename(
                attachment.filename or extract_filename(url) or f"file-{attachment.id}"
            )
            local_path = self.download_dir / filename

            if self.skip_existing and local_path.exists():
                if self.blob_store is not None:
                    new_url = self.blob_store.public_url(self.blob_path(filename, attachment))
                else:
                    new_url = f"{self.public_path_prefix}/{filename}"
                self._record_mapping(attachment, new_url)
                self._increment('skipped')
                self.logger.debug(f"Skipped (exists): {filename}")
                return

            data = self._download(url)
            try:
                local_path.write_bytes(data)
            except OSError as e:
                raise AttachmentError(url, f"Could not write {local_path}: {e}") from e

            new_url = f"{self.public_path_prefix}/{filename}"
            uploaded = False
            if self.blob_store is not None:
                try:
                    new_url = self._upload(filename, data, attachment)
                except Exception:
                    # A stale local copy would make the next run skip the upload
                    local_path.unlink(missing_ok=True)
                    raise
                uploaded = True

            self._record_mapping(attachment, new_url)
            with self._lock:
                self.stats['downloaded'] += 1
                if uploaded:
                    self.stats['uploaded'] += 1
            self.logger.debug(f"Migrated: {filename} -> {new_url}")

        except Exception as e:
            with self._lock:
                self.stats['failed'] += 1
                self.stats['errors'].append({'url': url, 'error': str(e)})
            self.logger.warning(f"Failed: {attachment.filename or url} - {e}")

    def _download(self, url: str) -> bytes:
        """
        Fetch a URL, following at most ``max_redirects`` redirects.

        Raises:
            AttachmentError: On transport errors, non-2xx responses or too many redirects
        """
        current = url
        for _ in range(self.max_redirects + 1):
            try:
                response = self.session.get(current, timeout=self.timeout, allow_redirects=False)
            except requests.RequestException as e:
                raise AttachmentError(url, f"Request failed: {e}") from e

            location = response.headers.get('Location') or response.headers.get('location')
            if 300 <= response.status_code < 400 and location:
                current = urljoin(current, location)
                continue

            if not 200 <= response.status_code < 300:
                raise AttachmentError(url, f"HTTP {response.status_code}")

            return response.content

        raise AttachmentError(url, f"Too many redirects (more than {self.max_redirects})")

    def _upload(self, filename: str, data: bytes, attachment: Attachment) -> str:
        """Upload to the blob store and make the object public."""
        ref = self.blob_store.upload(
            self.blob_path(filename, attachment),
            data,
            content_type=attachment.mime_type or 'application/octet-stream',
            metadata={
                'originalUrl': attachment.source_url,
                'alt': attachment.alt_text or '',
                'caption': attachment.caption or ''
            }
        )
        return self.blob_store.make_public(ref)

    @staticmethod
    def blob_path(filename: str, attachment: Attachment) -> str:
        """Year/month partitioned storage path, based on the attachment's creation date."""
        created = attachment.created_at or datetime.now(timezone.utc)
        return f"media/{created.year:04d}/{created.month:02d}/{filename}"

    @staticmethod
    def sanitize_filename(filename: str) -> str:
        """Replace characters outside ``[a-zA-Z0-9.-]`` with hyphens, collapse, lower-case."""
        sanitized = re.sub(r'[^a-zA-Z0-9.-]', '-', filename)
        sanitized = re.sub(r'-+', '-', sanitized)
        return sanitized.lower()

    def _record_mapping(self, attachment: Attachment, new_url: str) -> None:
        # Keys are unique per attachment, so concurrent workers never collide
        self.url_map[attachment.source_url] = new_url
        if attachment.id:
            self.url_map[str(attachment.id)] = new_url

    def _increment(self, key: str) -> None:
        with self._lock:
            self.stats[key] += 1

    def get_new_url(self, id_or_url: Any) -> Optional[str]:
        """Look up the new URL for an attachment id or original URL (None on miss)."""
        if id_or_url is None or id_or_url == '':
            return None
        return self.url_map.get(str(id_or_url))

    def update_content_urls(self, content: str) -> str:
        """
        Replace migrated media URLs inside HTML.

        Only absolute (``http``) keys are used; numeric ids are ignored. The
        base-rewritten form of each key is matched too, since the cleaner may
        already have moved it to the new site base. Longer keys go first so a
        URL is never partially replaced by a shorter one.
        """
        if not content or not self.url_map:
            return content

        replacements: Dict[str, str] = {}
        for old_url, new_url in self.url_map.items():
            if not old_url.startswith('http'):
                continue
            replacements.setdefault(old_url, new_url)
            rewritten = self.url_rewriter.rewrite(old_url)
            if rewritten and rewritten != old_url:
                replacements.setdefault(rewritten, new_url)

        updated = content
        for old_url in sorted(replacements, key=len, reverse=True):
            if old_url != replacements[old_url]:
                updated = updated.replace(old_url, replacements[old_url])
        return updated

    def export_url_map(self, output_path: Union[str, Path]) -> Path:
        """Write the URL map as JSON."""
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.url_map, indent=2, ensure_ascii=False), encoding='utf-8')
        self.logger.info(f"URL mapping exported to: {path}")
        return path

    def import_url_map(self, input_path: Union[str, Path]) -> int:
        """
        Load a previously exported URL map; a missing or invalid file is only a warning.

        Returns:
            Number of entries imported
        """
        try:
            data = json.loads(Path(input_path).read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            self.logger.warning(f"Could not import URL map: {e}")
            return 0

        if not isinstance(data, dict):
            self.logger.warning(f"Could not import URL map: {input_path} does not hold an object")
            return 0

        imported = 0
        for key, value in data.items():
            if isinstance(value, str):
                self.url_map[str(key)] = value
                imported += 1
        self.logger.info(f"URL mapping imported: {imported} entries")
        return imported

    def get_stats(self) -> Dict[str, Any]:
        """Get a copy of the migration statistics."""
        with self._lock:
            stats = dict(self.stats)
            stats['errors'] = list(self.stats['errors'])
        return stats

    def _log_summary(self) -> None:
        self.logger.info("Media migration complete:")
        self.logger.info(f"  Downloaded: {self.stats['downloaded']}")
        self.logger.info(f"  Uploaded: {self.stats['uploaded']}")
        self.logger.info(f"  Skipped: {self.stats['skipped']}")
        self.logger.info(f"  Failed: {self.stats['failed']}")


__all__ = ['MediaMigrator']
