"""Tests for the WXR export parser."""

import tempfile
import unittest
from datetime import timezone
from pathlib import Path

from exceptions import FormatError
from models import MenuObjectType, PageStatus, PageType, Post
from parsers import WxrParser, map_status
from parsers.wxr_parser import guess_mime_type

FIXTURE = Path(__file__).parent / 'fixtures' / 'sample-export.xml'

WXR_HEADER = '''<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"
    xmlns:excerpt="http://wordpress.org/export/1.2/excerpt/"
    xmlns:content="http://purl.org/rss/1.0/modules/content/"
    xmlns:dc="http://purl.org/dc/elements/1.1/"
    xmlns:wp="http://wordpress.org/export/1.2/">
<channel>
<title>Test Site</title>
<link>https://site.test</link>
'''

WXR_FOOTER = '</channel></rss>'


class TestStatusMapping:
    """Status strings map onto the target status set."""

    def test_known_statuses(self):
        assert map_status('publish') == PageStatus.PUBLISHED
        assert map_status('draft') == PageStatus.DRAFT
        assert map_status('pending') == PageStatus.DRAFT
        assert map_status('private') == PageStatus.DRAFT
        assert map_status('future') == PageStatus.DRAFT
        assert map_status('trash') == PageStatus.ARCHIVED

    def test_unrecognized_status_defaults_to_draft(self):
        assert map_status('auto-draft') == PageStatus.DRAFT
        assert map_status('') == PageStatus.DRAFT
        assert map_status(None) == PageStatus.DRAFT

    def test_mime_guessing(self):
        assert guess_mime_type('2024/01/campus.jpg') == 'image/jpeg'
        assert guess_mime_type('https://x.test/a.pdf?ver=2') == 'application/pdf'
        assert guess_mime_type('no-extension') == 'application/octet-stream'


class TestSampleExport(unittest.TestCase):
    """Parse the bundled sample export."""

    @classmethod
    def setUpClass(cls):
        cls.parser = WxrParser()
        cls.result = cls.parser.parse(str(FIXTURE))

    def test_site_info(self):
        site = self.result.site_info
        self.assertEqual(site.title, 'Riverside School')
        self.assertEqual(site.language, 'en-NZ')
        self.assertEqual(site.base_site_url, 'https://www.riverside-school.test')

    def test_record_counts(self):
        stats = self.result.get_statistics()
        self.assertEqual(stats['pages'], 2)
        self.assertEqual(stats['posts'], 1)
        self.assertEqual(stats['attachments'], 2)
        self.assertEqual(stats['menu_items'], 3)
        self.assertEqual(stats['categories'], 1)
        self.assertEqual(stats['tags'], 1)
        self.assertEqual(stats['terms'], 1)

    def test_revisions_are_skipped(self):
        self.assertEqual(self.parser.skipped_types.get('revision'), 1)

    def test_builder_page(self):
        home = self.result.pages[0]
        self.assertEqual(home.id, '12')
        self.assertEqual(home.slug, 'home')
        self.assertEqual(home.status, PageStatus.PUBLISHED)
        self.assertEqual(home.menu_order, 1)
        self.assertIsNone(home.parent_id)
        self.assertEqual(home.author, 'admin')
        self.assertTrue(home.is_builder_authored)
        self.assertTrue(home.builder_payload.startswith('[{"id":"a1"'))
        self.assertEqual(home.featured_image_id, '101')
        self.assertIn('data-widget_type="heading.default"', home.raw_content)
        self.assertEqual(home.page_type, PageType.STANDARD)

    def test_json_meta_is_decoded(self):
        home = self.result.pages[0]
        data = home.get_meta('_elementor_data')
        self.assertIsInstance(data, list)
        self.assertEqual(data[0]['widgetType'], 'heading')
        self.assertTrue(home.metadata['_elementor_data'].decoded)

    def test_dates_prefer_pub_date(self):
        home = self.result.pages[0]
        self.assertEqual(home.created_at.year, 2024)
        self.assertEqual(home.created_at.day, 2)
        self.assertEqual(home.created_at.hour, 10)
        self.assertIsNotNone(home.created_at.tzinfo)
        self.assertEqual(home.modified_at.day, 10)
        self.assertEqual(home.modified_at.tzinfo, timezone.utc)

    def test_draft_page(self):
        about = self.result.pages[1]
        self.assertEqual(about.slug, 'about-us')
        self.assertEqual(about.status, PageStatus.DRAFT)
        self.assertFalse(about.is_builder_authored)
        self.assertIsNone(about.featured_image_id)

    def test_post_taxonomy_and_status(self):
        post = self.result.posts[0]
        self.assertIsInstance(post, Post)
        self.assertEqual(post.status, PageStatus.ARCHIVED)
        self.assertEqual(post.page_type, PageType.NEWS)
        self.assertEqual([c.slug for c in post.categories], ['school-news'])
        self.assertEqual([t.name for t in post.tags], ['Sports'])

    def test_attachment_fields(self):
        campus = self.result.attachments[0]
        self.assertEqual(campus.id, '101')
        self.assertEqual(campus.filename, 'campus.jpg')
        self.assertEqual(campus.mime_type, 'image/jpeg')
        self.assertEqual(campus.alt_text, 'Aerial view of the campus')
        self.assertEqual(campus.caption, 'Main campus')
        self.assertEqual(campus.dimensions, {'width': 1920, 'height': 1080})
        self.assertEqual(campus.parent_id, '12')

    def test_attachment_mime_from_url(self):
        form = self.result.attachments[1]
        self.assertEqual(form.mime_type, 'application/pdf')
        self.assertIsNone(form.dimensions)
        self.assertIsNone(form.parent_id)

    def test_menu_items(self):
        items = {item.id: item for item in self.result.menu_items}
        about = items['201']
        self.assertEqual(about.object_type, MenuObjectType.PAGE)
        self.assertEqual(about.object_id, '14')
        self.assertEqual(about.url, '/about-us/')
        self.assertEqual(about.order, 2)
        self.assertEqual(about.menu_name, 'Main Navigation')
        # Serialized arrays are not decoded
        self.assertEqual(about.css_classes, [])

        contact = items['202']
        self.assertEqual(contact.parent_id, '201')
        self.assertEqual(contact.object_type, MenuObjectType.CUSTOM)
        self.assertEqual(contact.target_window, '_blank')

    def test_menu_tree(self):
        self.assertEqual(list(self.result.menus), ['Main Navigation'])
        menu = self.result.menus['Main Navigation']
        self.assertEqual([item.title for item in menu.items], ['Home', 'About'])
        self.assertEqual([child.title for child in menu.items[1].children], ['Contact'])

    def test_terms(self):
        self.assertEqual(self.result.categories[0].name, 'School News')
        self.assertEqual(self.result.tags[0].slug, 'sports')
        self.assertEqual(self.result.terms[0].taxonomy, 'nav_menu')


class TestEdgeCases(unittest.TestCase):
    """Malformed documents and cardinality quirks."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.parser = WxrParser()

    def tearDown(self):
        self.temp_dir.cleanup()

    def _write(self, content: str) -> str:
        path = Path(self.temp_dir.name) / 'export.xml'
        path.write_text(content, encoding='utf-8')
        return str(path)

    def test_inline_markup_content(self):
        """Unescaped markup inside content:encoded is kept as HTML."""
        path = self._write(
            WXR_HEADER
            + '<item><title>Hello</title><wp:post_type>page</wp:post_type><wp:post_id>1</wp:post_id>'
            + '<content:encoded><div class="elementor-widget" data-widget_type="heading.default">'
            + '<h2 class="elementor-heading-title">Hello</h2></div></content:encoded></item>'
            + WXR_FOOTER
        )
        result = self.parser.parse(path)

        self.assertEqual(len(result.pages), 1)
        raw = result.pages[0].raw_content
        self.assertIn('<h2 class="elementor-heading-title">Hello</h2>', raw)
        self.assertIn('data-widget_type="heading.default"', raw)
        self.assertNotIn('xmlns', raw)

    def test_single_item_and_single_postmeta(self):
        path = self._write(
            WXR_HEADER
            + '<item><title>Only</title><wp:post_type>post</wp:post_type><wp:post_id>5</wp:post_id>'
            + '<category domain="category" nicename="news">News</category>'
            + '<wp:postmeta><wp:meta_key>subtitle</wp:meta_key>'
            + '<wp:meta_value><![CDATA[s:5:"Hello";]]></wp:meta_value></wp:postmeta>'
            + '</item>'
            + WXR_FOOTER
        )
        result = self.parser.parse(path)

        self.assertEqual(len(result.posts), 1)
        post = result.posts[0]
        self.assertEqual(len(post.categories), 1)
        self.assertEqual(post.get_meta('subtitle'), 'Hello')
        self.assertEqual(post.slug, 'only')

    def test_slug_fallbacks(self):
        path = self._write(
            WXR_HEADER
            + '<item><title></title><wp:post_type>page</wp:post_type><wp:post_id>9</wp:post_id></item>'
            + '<item><title>Our Staff &amp; Board!</title><wp:post_type>page</wp:post_type>'
            + '<wp:post_id>10</wp:post_id></item>'
            + WXR_FOOTER
        )
        result = self.parser.parse(path)

        self.assertEqual(result.pages[0].slug, 'page-9')
        self.assertEqual(result.pages[1].slug, 'our-staff-board')

    def test_empty_channel(self):
        result = self.parser.parse(self._write(WXR_HEADER + WXR_FOOTER))
        self.assertEqual(result.pages, [])
        self.assertEqual(result.menus, {})

    def test_missing_channel_raises(self):
        path = self._write('<?xml version="1.0"?><rss version="2.0"></rss>')
        with self.assertRaises(FormatError):
            self.parser.parse(path)

    def test_wrong_root_raises(self):
        path = self._write('<?xml version="1.0"?><feed><channel></channel></feed>')
        with self.assertRaises(FormatError):
            self.parser.parse(path)

    def test_malformed_xml_raises(self):
        path = self._write('<rss><channel><item></channel>')
        with self.assertRaises(FormatError):
            self.parser.parse(path)


if __name__ == '__main__':
    unittest.main()
