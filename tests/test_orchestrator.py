#!/usr/bin/env python3
"""End-to-end tests for the migration orchestrator using in-memory stores."""

import json
import tempfile
import unittest
from pathlib import Path

from config_loader import ConfigLoader
from exceptions import FormatError, WriteBatchError
from importers import ServiceContext
from models import MigrationOptions
from orchestrator import MigrationOrchestrator

from fakes import FakeBlobStore, FakeContextLoader, FakeDocumentStore, FakeResponse, FakeSession

FIXTURE = Path(__file__).parent / 'fixtures' / 'sample-export.xml'
UPLOADS = 'https://www.riverside-school.test/wp-content/uploads/2024/01'

SINGLE_PAGE_EXPORT = '''<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"
    xmlns:content="http://purl.org/rss/1.0/modules/content/"
    xmlns:wp="http://wordpress.org/export/1.2/">
<channel>
<title>One Page</title>
<item>
<title>Welcome</title>
<content:encoded><![CDATA[<p>Hello there</p>]]></content:encoded>
<wp:post_id>1</wp:post_id>
<wp:post_name>welcome</wp:post_name>
<wp:status>publish</wp:status>
<wp:post_type>page</wp:post_type>
</item>
<item>
<title>logo</title>
<wp:post_id>2</wp:post_id>
<wp:post_type>attachment</wp:post_type>
<wp:attachment_url>https://one.test/logo.png</wp:attachment_url>
</item>
</channel>
</rss>
'''


class OrchestratorTestCase(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.output_dir = self.root / 'output'

        self.config = ConfigLoader.defaults()
        self.config['source']['base_url'] = 'https://www.riverside-school.test'
        self.config['target']['base_url'] = 'https://new.riverside.test'
        self.config['media']['download_dir'] = str(self.root / 'downloads')
        self.config['logging']['progress_bars'] = False

        self.document_store = FakeDocumentStore()
        self.blob_store = FakeBlobStore()
        self.loader = FakeContextLoader(ServiceContext(self.document_store, self.blob_store))
        self.session = FakeSession({
            f"{UPLOADS}/campus.jpg": FakeResponse(200, b'jpeg-bytes'),
            f"{UPLOADS}/Enrolment Form.pdf": FakeResponse(200, b'%PDF'),
        })

    def tearDown(self):
        self.temp_dir.cleanup()

    def make_orchestrator(self, loader=None):
        return MigrationOrchestrator(self.config, context_loader=loader or self.loader, session=self.session)

    def options(self, **kwargs):
        return MigrationOptions(output_dir=str(self.output_dir), **kwargs)

    def read_report(self):
        return json.loads((self.output_dir / 'migration-report.json').read_text(encoding='utf-8'))

    def read_previews(self, output_dir=None):
        preview_dir = (output_dir or self.output_dir) / 'cleaned-content'
        return {path.name: path.read_text(encoding='utf-8') for path in sorted(preview_dir.iterdir())}


class TestDryRun(OrchestratorTestCase):

    def test_single_page_dry_run_touches_nothing(self):
        export = self.root / 'one-page.xml'
        export.write_text(SINGLE_PAGE_EXPORT, encoding='utf-8')

        report = self.make_orchestrator().run(str(export), self.options(dry_run=True))

        self.assertEqual(self.loader.calls, 0)
        self.assertEqual(self.session.requests, [])
        self.assertEqual(self.document_store.batches_created, 0)
        self.assertTrue(report['dryRun'])
        self.assertEqual(self.read_report()['stats']['pages'], 1)
        self.assertEqual(self.read_previews(), {'welcome.html': '<p>Hello there</p>'})

    def test_dry_run_report(self):
        self.make_orchestrator().run(str(FIXTURE), self.options(dry_run=True))

        report = self.read_report()
        self.assertEqual(report['stats'], {'pages': 3, 'posts': 1, 'attachments': 2, 'menuSections': 1})
        self.assertEqual(report['source'], str(FIXTURE))
        self.assertIsNone(report['mediaStats'])
        self.assertNotIn('commit', report)
        self.assertEqual(report['menuSections'][0]['id'], 'main-navigation')
        self.assertEqual(report['cleaner']['unrecognizedTypes'], {'countdown.default': 1})
        self.assertIn({'title': 'Athletics Day Results', 'slug': 'athletics-day', 'status': 'archived'},
                      report['pages'])

    def test_previews(self):
        self.make_orchestrator().run(str(FIXTURE), self.options(dry_run=True))

        previews = self.read_previews()
        self.assertEqual(sorted(previews), ['about-us.html', 'athletics-day.html', 'home.html'])
        self.assertIn('<h1>Welcome to Riverside</h1>', previews['home.html'])
        self.assertIn('Open day in 3 days', previews['home.html'])
        self.assertNotIn('elementor', previews['home.html'])
        self.assertNotIn('<script', previews['home.html'])
        self.assertIn('href="https://new.riverside.test/history/"', previews['about-us.html'])

    def test_dry_run_downloads_media_without_changing_pages(self):
        plain_dir = self.root / 'plain'
        media_dir = self.root / 'with-media'

        plain = self.make_orchestrator().run(
            str(FIXTURE), MigrationOptions(dry_run=True, output_dir=str(plain_dir))
        )
        with_media = self.make_orchestrator().run(
            str(FIXTURE), MigrationOptions(dry_run=True, download_media=True, output_dir=str(media_dir))
        )

        self.assertEqual(self.read_previews(plain_dir), self.read_previews(media_dir))
        self.assertEqual(plain['pages'], with_media['pages'])
        self.assertEqual(plain['menuSections'], with_media['menuSections'])

        self.assertEqual(with_media['mediaStats']['total'], 2)
        self.assertEqual(with_media['mediaStats']['downloaded'], 2)
        self.assertEqual(with_media['mediaStats']['uploaded'], 0)
        self.assertEqual(len(self.session.requests), 2)
        self.assertTrue((self.root / 'downloads' / 'campus.jpg').exists())
        url_map = json.loads((media_dir / 'url-map.json').read_text(encoding='utf-8'))
        self.assertEqual(url_map['101'], '/images/campus.jpg')
        self.assertEqual(self.loader.calls, 0)
        self.assertEqual(self.blob_store.uploads, {})

    def test_missing_credentials_still_download_media(self):
        loader = FakeContextLoader(error='No service account credentials found')

        report = self.make_orchestrator(loader).run(
            str(FIXTURE), self.options(download_media=True, upload_media=True)
        )

        self.assertTrue(report['dryRun'])
        self.assertEqual(report['mediaStats']['downloaded'], 2)
        self.assertEqual(report['mediaStats']['uploaded'], 0)
        self.assertTrue((self.root / 'downloads' / 'enrolment-form.pdf').exists())
        self.assertTrue((self.output_dir / 'url-map.json').exists())
        self.assertEqual(self.blob_store.uploads, {})
        self.assertEqual(self.document_store.batches_created, 0)

    def test_missing_credentials_degrade_to_dry_run(self):
        loader = FakeContextLoader(error='No service account credentials found')

        report = self.make_orchestrator(loader).run(str(FIXTURE), self.options())

        self.assertEqual(loader.calls, 1)
        self.assertTrue(report['dryRun'])
        self.assertNotIn('commit', report)
        self.assertTrue((self.output_dir / 'migration-report.json').exists())


class TestLiveRun(OrchestratorTestCase):

    def test_writes_sections_and_pages(self):
        report = self.make_orchestrator().run(str(FIXTURE), self.options())

        self.assertEqual(self.loader.calls, 1)
        self.assertFalse(report['dryRun'])

        sections = self.document_store.collections['menuSections']
        self.assertEqual(list(sections), ['main-navigation'])
        self.assertEqual(sections['main-navigation']['title'], 'Main Navigation')

        pages = {doc['slug']: doc for doc in self.document_store.collections['pages'].values()}
        self.assertEqual(sorted(pages), ['about-us', 'athletics-day', 'home'])
        self.assertEqual(pages['home']['menuSection'], 'main-navigation')
        self.assertEqual(pages['home']['menuOrder'], 1)
        self.assertEqual(pages['about-us']['menuSection'], 'main-navigation')
        self.assertEqual(pages['about-us']['menuOrder'], 2)
        self.assertEqual(pages['about-us']['metaTitle'], 'About Riverside School')
        self.assertEqual(pages['about-us']['metaDescription'], 'Our story since 1964.')
        self.assertEqual(pages['home']['metaTitle'], 'Home')
        self.assertEqual(pages['home']['metaDescription'], 'Welcome to Riverside School.')
        self.assertEqual(pages['athletics-day']['pageType'], 'news')
        self.assertEqual(pages['athletics-day']['menuSection'], 'news')
        self.assertNotIn('media', self.document_store.collections)

        self.assertEqual(self.read_report()['commit'], {
            'completed': True,
            'collections': {
                'menuSections': {'attempted': 1, 'committed': 1, 'batches': 1},
                'pages': {'attempted': 3, 'committed': 3, 'batches': 1}
            }
        })

    def test_collection_names_come_from_config(self):
        self.config['target']['collections'] = {'pages': 'cmsPages'}

        self.make_orchestrator().run(str(FIXTURE), self.options())

        self.assertEqual(len(self.document_store.collections['cmsPages']), 3)
        self.assertIn('menuSections', self.document_store.collections)

    def test_upload_media(self):
        report = self.make_orchestrator().run(str(FIXTURE), self.options(upload_media=True))

        self.assertEqual(sorted(self.blob_store.uploads),
                         ['media/2024/01/campus.jpg', 'media/2024/01/enrolment-form.pdf'])
        self.assertEqual(report['mediaStats']['uploaded'], 2)
        self.assertEqual(report['mediaStats']['failed'], 0)

        campus_url = f"{FakeBlobStore.BASE_URL}/media/2024/01/campus.jpg"
        pages = {doc['slug']: doc for doc in self.document_store.collections['pages'].values()}
        self.assertEqual(pages['home']['headerImage'], campus_url)
        self.assertIn(f'src="{campus_url}"', pages['home']['content'])

        media = list(self.document_store.collections['media'].values())
        self.assertEqual(len(media), 2)
        campus = next(doc for doc in media if doc['filename'] == 'campus.jpg')
        self.assertEqual(campus['url'], campus_url)
        self.assertEqual(campus['type'], 'image')
        self.assertEqual(campus['alt'], 'Aerial view of the campus')

        url_map = json.loads((self.output_dir / 'url-map.json').read_text(encoding='utf-8'))
        self.assertEqual(url_map['101'], campus_url)

    def test_download_only_keeps_local_paths(self):
        report = self.make_orchestrator().run(str(FIXTURE), self.options(download_media=True))

        self.assertEqual(self.blob_store.uploads, {})
        self.assertEqual(report['mediaStats']['downloaded'], 2)
        self.assertTrue((self.root / 'downloads' / 'campus.jpg').exists())
        pages = {doc['slug']: doc for doc in self.document_store.collections['pages'].values()}
        self.assertEqual(pages['home']['headerImage'], '/images/campus.jpg')
        self.assertNotIn('media', self.document_store.collections)

    def test_imported_url_map_applies(self):
        url_map_path = self.root / 'previous-map.json'
        url_map_path.write_text(json.dumps({'101': '/images/from-earlier-run.jpg'}), encoding='utf-8')

        self.make_orchestrator().run(str(FIXTURE), self.options(url_map_path=str(url_map_path)))

        pages = {doc['slug']: doc for doc in self.document_store.collections['pages'].values()}
        self.assertEqual(pages['home']['headerImage'], '/images/from-earlier-run.jpg')
        self.assertIsNone(pages['about-us']['headerImage'])
        self.assertEqual(self.session.requests, [])

    def test_failed_batch_is_reported_and_raised(self):
        self.document_store.fail_on_commit = {1}

        with self.assertRaises(WriteBatchError) as context:
            self.make_orchestrator().run(str(FIXTURE), self.options())

        self.assertEqual(context.exception.collection, 'pages')
        commit = self.read_report()['commit']
        self.assertFalse(commit['completed'])
        self.assertEqual(commit['collections']['menuSections']['committed'], 1)
        self.assertEqual(commit['collections']['pages'], {'attempted': 3, 'committed': 0, 'batches': 0})
        self.assertIn('error', commit)
        self.assertEqual(len(self.document_store.collections['menuSections']), 1)
        self.assertNotIn('pages', self.document_store.collections)


class TestInputErrors(OrchestratorTestCase):

    def test_missing_input_file(self):
        with self.assertRaises(FileNotFoundError):
            self.make_orchestrator().run(str(self.root / 'missing.xml'), self.options(dry_run=True))

    def test_malformed_export(self):
        export = self.root / 'broken.xml'
        export.write_text('<rss><channel><item>', encoding='utf-8')

        with self.assertRaises(FormatError):
            self.make_orchestrator().run(str(export), self.options(dry_run=True))


if __name__ == '__main__':
    unittest.main()
