"""
Migration orchestrator for coordinating the complete migration pipeline.

This module sequences every phase of one run:
Parse → Media → Clean/Transform → Report/Preview → Commit. Dry-run handling,
batching and report output all live here.
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from tqdm import tqdm

from converters import ContentCleaner
from exceptions import CredentialError, WriteBatchError
from exporters import MediaMigrator, PreviewWriter
from importers import BatchWriter, MAX_BATCH_SIZE, ServiceContext
from importers.credentials import ServiceContextLoader
from logger import ProgressTracker, log_section
from models import (
    MediaDocument, MediaMigrationResult, MenuSection, MigrationOptions,
    PageDocument, ParsedExport
)
from orchestrator.migration_report import MigrationReport, REPORT_FILENAME
from orchestrator.page_transformer import PageTransformer
from parsers import WxrParser

URL_MAP_FILENAME = 'url-map.json'

DEFAULT_COLLECTIONS = {
    'pages': 'pages',
    'menu_sections': 'menuSections',
    'media': 'media'
}

TOTAL_STAGES = 5


class MigrationOrchestrator:
    """Central coordinator sequencing all migration phases."""

    def __init__(
        self,
        config: Dict[str, Any],
        context_loader: Optional[ServiceContextLoader] = None,
        logger: Optional[logging.Logger] = None,
        session=None
    ):
        """
        Initialize migration orchestrator.

        Args:
            config: Configuration dictionary
            context_loader: Builds the store context for real runs (defaults to ServiceContextLoader)
            logger: Optional logger instance
            session: Optional HTTP session handed to the media migrator
        """
        self.config = config
        self.logger = logger or logging.getLogger('wp_cms_migrator.orchestrator.migration_orchestrator')
        self.context_loader = context_loader or ServiceContextLoader(config, logger=self.logger)
        self.session = session

        target_config = config.get('target', {}) or {}
        self.collections = dict(DEFAULT_COLLECTIONS)
        self.collections.update(target_config.get('collections') or {})

        migration_config = config.get('migration', {}) or {}
        self.batch_size = int(migration_config.get('batch_size', MAX_BATCH_SIZE))
        self.show_progress = (config.get('logging', {}) or {}).get('progress_bars', True)

        self.report_generator = MigrationReport(logger=self.logger)

    def run(self, input_file: str, options: Optional[MigrationOptions] = None) -> Dict[str, Any]:
        """
        Run the migration.

        Args:
            input_file: Path to the WXR export
            options: Run-time switches

        Returns:
            Migration report dictionary

        Raises:
            FileNotFoundError: If the input file does not exist
            FormatError: If the export is malformed
            WriteBatchError: If a store batch fails to commit
        """
        options = options or MigrationOptions()
        input_path = Path(input_file)
        if not input_path.is_file():
            raise FileNotFoundError(f"Input file not found: {input_file}")

        output_dir = Path(options.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        log_section("WordPress to CMS Migration")
        self.logger.info(f"Input: {input_file}")
        self.logger.info(f"Output: {output_dir}")
        self.logger.info(f"Mode: {'DRY RUN' if options.dry_run else 'LIVE'}")

        self._stage(1, "Parsing WordPress export...")
        parsed = WxrParser(logger=self.logger).parse(str(input_path))

        dry_run = options.dry_run
        context: Optional[ServiceContext] = None
        if not dry_run:
            context = self._load_context()
            dry_run = context is None

        cleaner = ContentCleaner(self.config, logger=self.logger)
        media_migrator = self._create_media_migrator(options, output_dir, context, dry_run)

        page_media = media_migrator
        if dry_run and options.media_requested:
            # Nothing is published by a dry run, so pages only see mappings known before it
            page_media = copy.copy(media_migrator)
            page_media.url_map = dict(media_migrator.url_map)

        media_stats = self._migrate_media(parsed, options, media_migrator, output_dir, dry_run)

        self._stage(3, "Cleaning content...")
        documents, sections = self._transform(parsed, cleaner, page_media)
        self.logger.info(f"Prepared {len(documents)} pages in {len(sections)} menu sections")

        self._stage(4, "Generating migration report...")
        report = self.report_generator.generate_report(
            source=str(input_file),
            parsed=parsed,
            documents=documents,
            sections=sections,
            media_stats=media_stats,
            dry_run=dry_run,
            cleaner_stats=cleaner.stats
        )
        report_path = output_dir / REPORT_FILENAME
        self.report_generator.export_json_report(report, report_path)
        PreviewWriter(output_dir, logger=self.logger).write(documents)

        if dry_run:
            self._stage(5, "DRY RUN - Skipping store writes")
        else:
            self._stage(5, "Writing to document store...")
            self._commit(context, parsed, documents, sections, media_migrator, options, report, report_path)

        self.logger.info("")
        for line in self.report_generator.format_console_report(report).split("\n"):
            self.logger.info(line)

        return report

    def _stage(self, number: int, message: str) -> None:
        self.logger.info("")
        self.logger.info(f"[{number}/{TOTAL_STAGES}] {message}")

    def _load_context(self) -> Optional[ServiceContext]:
        """Connect to the stores; missing credentials degrade the run to a dry run."""
        try:
            return self.context_loader.load()
        except CredentialError as e:
            self.logger.warning(f"{e}")
            self.logger.warning("Continuing as a DRY RUN - no data will be written")
            return None

    def _create_media_migrator(
        self,
        options: MigrationOptions,
        output_dir: Path,
        context: Optional[ServiceContext],
        dry_run: bool
    ) -> MediaMigrator:
        media_config = self.config.get('media', {}) or {}
        download_dir = media_config.get('download_dir') or output_dir / 'media'

        blob_store = None
        if options.upload_media and not dry_run and context is not None:
            blob_store = context.blob_store

        media_migrator = MediaMigrator(
            self.config,
            blob_store=blob_store,
            session=self.session,
            download_dir=download_dir,
            logger=self.logger
        )

        url_map_path = options.url_map_path or media_config.get('url_map_path')
        if url_map_path:
            media_migrator.import_url_map(url_map_path)
        return media_migrator

    def _migrate_media(
        self,
        parsed: ParsedExport,
        options: MigrationOptions,
        media_migrator: MediaMigrator,
        output_dir: Path,
        dry_run: bool
    ) -> Optional[Dict[str, Any]]:
        if not options.media_requested:
            self._stage(2, "Skipping media migration (use --download-media or --upload-media)")
            return None

        if dry_run:
            self._stage(2, "DRY RUN - Downloading media (uploads skipped)...")
        else:
            self._stage(2, "Migrating media...")
        result: MediaMigrationResult = media_migrator.migrate(parsed.attachments)
        media_migrator.export_url_map(output_dir / URL_MAP_FILENAME)
        return result.stats

    def _transform(
        self,
        parsed: ParsedExport,
        cleaner: ContentCleaner,
        media_migrator: MediaMigrator
    ) -> Tuple[List[PageDocument], List[MenuSection]]:
        transformer = PageTransformer(cleaner, media_migrator=media_migrator, logger=self.logger)

        documents: List[PageDocument] = []
        records = list(parsed.pages) + list(parsed.posts)

        with ProgressTracker(total_items=len(records), item_type='pages') as tracker:
            for record in tqdm(records, desc="Cleaning", unit="page", disable=not self.show_progress):
                document = transformer.transform(record)
                documents.append(document)
                self.logger.debug(f"Processed: {document.title} ({document.page_type.value})")

                lost_content = bool(record.raw_content.strip()) and not document.content
                if lost_content:
                    self.logger.warning(f"Cleaning left '{record.title}' without content")
                tracker.increment(success=not lost_content)

        return transformer.assign_menus(documents, parsed.menus)

    def _commit(
        self,
        context: ServiceContext,
        parsed: ParsedExport,
        documents: List[PageDocument],
        sections: List[MenuSection],
        media_migrator: MediaMigrator,
        options: MigrationOptions,
        report: Dict[str, Any],
        report_path: Path
    ) -> None:
        """
        Write sections, pages and media records, then record the outcome in the report.

        Batches are atomic one by one; a failure leaves earlier batches in place.
        """
        writer = BatchWriter(context.document_store, batch_size=self.batch_size, logger=self.logger)

        try:
            writer.write(
                self.collections['menu_sections'],
                [section.to_dict() for section in sections],
                id_getter=lambda data: data['id']
            )
            self.logger.info(f"Created {len(sections)} menu sections")

            writer.write(self.collections['pages'], [document.to_dict() for document in documents])
            self.logger.info(f"Created {len(documents)} pages")

            if options.upload_media:
                media_documents = self._media_documents(parsed, media_migrator)
                writer.write(self.collections['media'], [document.to_dict() for document in media_documents])
                self.logger.info(f"Created {len(media_documents)} media records")

        except WriteBatchError as e:
            report['commit'] = self.report_generator.build_commit_section(writer.results, False, str(e))
            self.report_generator.export_json_report(report, report_path)
            raise

        report['commit'] = self.report_generator.build_commit_section(writer.results, True)
        self.report_generator.export_json_report(report, report_path)

    @staticmethod
    def _media_documents(parsed: ParsedExport, media_migrator: MediaMigrator) -> List[MediaDocument]:
        media_documents = []
        for attachment in parsed.attachments:
            new_url = media_migrator.get_new_url(attachment.source_url)
            if not new_url:
                continue
            media_documents.append(MediaDocument(
                filename=attachment.filename,
                url=new_url,
                original_url=attachment.source_url,
                mime_type=attachment.mime_type,
                alt=attachment.alt_text or '',
                caption=attachment.caption or '',
                created_at=attachment.created_at
            ))
        return media_documents


__all__ = ['MigrationOrchestrator', 'URL_MAP_FILENAME']
