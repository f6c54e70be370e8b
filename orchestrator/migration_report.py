"""
Migration report generator.

Builds the machine-readable ``migration-report.json`` document and a console
summary from the results of one orchestrator run.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from models import MenuSection, PageDocument, ParsedExport

REPORT_FILENAME = 'migration-report.json'


class MigrationReport:
    """Generates the migration report for one run."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize migration report generator.

        Args:
            logger: Optional logger instance
        """
        self.logger = logger or logging.getLogger('wp_cms_migrator.orchestrator.migration_report')

    def generate_report(
        self,
        source: str,
        parsed: ParsedExport,
        documents: List[PageDocument],
        sections: List[MenuSection],
        media_stats: Optional[Dict[str, Any]],
        dry_run: bool,
        cleaner_stats: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Generate the migration report.

        Args:
            source: Input file path as given
            parsed: Parser output
            documents: Page documents (pages and posts)
            sections: Menu sections
            media_stats: Media migrator stats, None when media was not requested
            dry_run: Whether store writes were skipped
            cleaner_stats: Optional content cleaner counters

        Returns:
            Migration report dictionary
        """
        report = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'source': source,
            'dryRun': dry_run,
            'stats': {
                'pages': len(documents),
                'posts': len(parsed.posts),
                'attachments': len(parsed.attachments),
                'menuSections': len(sections)
            },
            'pages': [document.to_summary() for document in documents],
            'menuSections': [section.to_dict() for section in sections],
            'mediaStats': media_stats
        }
        if cleaner_stats is not None:
            report['cleaner'] = {
                'widgetsConverted': cleaner_stats.get('widgets_converted', 0),
                'widgetsUnrecognized': cleaner_stats.get('widgets_unrecognized', 0),
                'unrecognizedTypes': dict(cleaner_stats.get('unrecognized_types', {}))
            }

        self.logger.debug(
            f"Report generated: {report['stats']['pages']} pages, "
            f"{report['stats']['menuSections']} menu sections"
        )
        return report

    @staticmethod
    def build_commit_section(results: Dict[str, Dict[str, int]], completed: bool,
                             error: Optional[str] = None) -> Dict[str, Any]:
        """Summarize attempted vs committed writes per collection."""
        section: Dict[str, Any] = {
            'completed': completed,
            'collections': {name: dict(counts) for name, counts in results.items()}
        }
        if error:
            section['error'] = error
        return section

    def export_json_report(self, report: Dict[str, Any], filepath: Union[str, Path]) -> Path:
        """
        Export report to JSON file.

        Args:
            report: Migration report dictionary
            filepath: Output file path
        """
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2, ensure_ascii=False, default=str)

        self.logger.info(f"Report saved: {path}")
        return path

    def format_console_report(self, report: Dict[str, Any]) -> str:
        """
        Format report for console display.

        Args:
            report: Migration report dictionary

        Returns:
            Formatted console string
        """
        sections = []

        sections.append("=" * 60)
        sections.append("MIGRATION COMPLETE" if not report.get('dryRun') else "DRY RUN COMPLETE")
        sections.append("=" * 60)
        sections.append("")

        stats = report.get('stats', {})
        sections.append("Summary:")
        sections.append(f"  Pages migrated: {stats.get('pages', 0)}")
        sections.append(f"  Posts (news):   {stats.get('posts', 0)}")
        sections.append(f"  Menu sections:  {stats.get('menuSections', 0)}")
        sections.append(f"  Attachments:    {stats.get('attachments', 0)}")

        media = report.get('mediaStats')
        if media:
            sections.append("")
            sections.append("Media:")
            sections.append(f"  Downloaded: {media.get('downloaded', 0)}")
            sections.append(f"  Uploaded:   {media.get('uploaded', 0)}")
            sections.append(f"  Skipped:    {media.get('skipped', 0)}")
            sections.append(f"  Failed:     {media.get('failed', 0)}")

        cleaner = report.get('cleaner')
        if cleaner and cleaner.get('widgetsUnrecognized'):
            sections.append("")
            sections.append("Unrecognized widgets (left as-is):")
            for widget_type, count in sorted(cleaner.get('unrecognizedTypes', {}).items()):
                sections.append(f"  {widget_type}: {count}")

        commit = report.get('commit')
        if commit:
            sections.append("")
            sections.append("Store writes:")
            for name, counts in commit.get('collections', {}).items():
                sections.append(f"  {name}: {counts.get('committed', 0)}/{counts.get('attempted', 0)} committed")
            if commit.get('error'):
                sections.append(f"  ERROR: {commit['error']}")

        if report.get('dryRun'):
            sections.append("")
            sections.append("Review the migration report and cleaned content,")
            sections.append("then run without --dry-run to write to the store.")

        sections.append("")
        sections.append("=" * 60)

        return "\n".join(sections)


__all__ = ['MigrationReport', 'REPORT_FILENAME']
