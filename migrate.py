#!/usr/bin/env python3
"""
WordPress to CMS Migration Tool - Main CLI Entry Point

Parses a WordPress export (WXR), cleans page content, optionally migrates
media and writes pages and menu sections to the document store.
"""

import argparse
import logging
import sys
from typing import List, Optional

from config_loader import ConfigLoader, get_nested
from exceptions import FormatError, WriteBatchError
from logger import log_config, setup_logging
from models import MigrationOptions
from orchestrator import MigrationOrchestrator

__version__ = "1.0.0"

DEFAULT_CONFIG_PATH = 'config.yaml'


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog='migrate',
        description="Migrate a WordPress export into the CMS document store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Preview the migration without writing anything
  migrate wordpress-export.xml --dry-run

  # Full migration with media upload
  migrate wordpress-export.xml --upload-media

  # Download media locally only
  migrate wordpress-export.xml --download-media --output ./out

  # Reuse the URL map of an earlier run
  migrate wordpress-export.xml --url-map ./out/url-map.json
        """
    )

    parser.add_argument(
        'input_file',
        nargs='?',
        help='Path to the WordPress XML export'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Preview migration without writing to the document store'
    )

    parser.add_argument(
        '--download-media',
        action='store_true',
        help='Download media files locally'
    )

    parser.add_argument(
        '--upload-media',
        action='store_true',
        help='Upload media to blob storage (implies download)'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Show detailed output'
    )

    parser.add_argument(
        '-o', '--output',
        type=str,
        help='Output directory (default: ./migration/output)'
    )

    parser.add_argument(
        '--config',
        type=str,
        default=DEFAULT_CONFIG_PATH,
        help=f'Path to configuration YAML file (default: {DEFAULT_CONFIG_PATH})'
    )

    parser.add_argument(
        '--url-map',
        type=str,
        help='Import an existing media URL map before migrating'
    )

    return parser


def load_configuration(args: argparse.Namespace) -> dict:
    """
    Load, merge and validate configuration.

    A missing default config file falls back to built-in defaults; an
    explicitly named file that is missing is an error.
    """
    try:
        config = ConfigLoader.load(args.config)
    except FileNotFoundError:
        if args.config != DEFAULT_CONFIG_PATH:
            raise
        config = ConfigLoader.defaults()

    config = ConfigLoader.merge_with_args(config, args)
    ConfigLoader.validate(config)
    return config


def build_options(config: dict, args: argparse.Namespace) -> MigrationOptions:
    """Translate merged configuration into orchestrator options."""
    return MigrationOptions(
        dry_run=bool(get_nested(config, 'migration.dry_run', False)),
        download_media=bool(get_nested(config, 'migration.download_media', False)),
        upload_media=bool(get_nested(config, 'migration.upload_media', False)),
        verbose=args.verbose,
        output_dir=get_nested(config, 'migration.output_directory', './migration/output'),
        url_map_path=get_nested(config, 'media.url_map_path')
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.input_file:
        parser.print_usage(sys.stderr)
        print("ERROR: Input file required", file=sys.stderr)
        return 1

    try:
        config = load_configuration(args)

        logger = setup_logging(
            verbosity=args.verbose,
            log_file=get_nested(config, 'logging.file'),
            level=get_nested(config, 'logging.level')
        )
        log_config(config)

        orchestrator = MigrationOrchestrator(config, logger=logger)
        orchestrator.run(args.input_file, build_options(config, args))
        return 0

    except FileNotFoundError as e:
        print(f"ERROR: File not found: {e}", file=sys.stderr)
        return 1
    except FormatError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except WriteBatchError as e:
        print(f"ERROR: Store write failed: {e}", file=sys.stderr)
        print("Earlier batches were committed; see the report's commit section.", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nMigration interrupted by user", file=sys.stderr)
        return 130
    except Exception as e:
        logging.getLogger('wp_cms_migrator').debug("Unexpected error", exc_info=True)
        print(f"ERROR: Migration failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
