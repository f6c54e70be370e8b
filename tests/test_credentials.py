"""Tests for credential resolution and the Firestore/Cloud Storage adapters."""

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from exceptions import CredentialError
from importers.credentials import CREDENTIALS_ENV_VAR, ServiceContextLoader
from importers.firestore_store import CloudStorageBlobStore, FirestoreDocumentStore


class TestServiceContextLoader(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.credentials = self.root / 'sa.json'
        self.credentials.write_text(json.dumps({'project_id': 'riverside-cms'}), encoding='utf-8')

    def tearDown(self):
        self.temp_dir.cleanup()

    def loader(self, credentials_path=None):
        return ServiceContextLoader({'target': {'credentials_path': credentials_path}})

    def test_configured_path_wins(self):
        with mock.patch.dict(os.environ, {CREDENTIALS_ENV_VAR: str(self.root / 'other.json')}):
            self.assertEqual(self.loader(str(self.credentials)).resolve_credentials_path(), self.credentials)

    def test_environment_variable(self):
        with mock.patch.dict(os.environ, {CREDENTIALS_ENV_VAR: str(self.credentials)}):
            self.assertEqual(self.loader().resolve_credentials_path(), self.credentials)

    def test_no_credentials(self):
        with mock.patch.dict(os.environ, {CREDENTIALS_ENV_VAR: str(self.root / 'missing.json')}), \
                mock.patch('importers.credentials.DEFAULT_CREDENTIALS_FILE', str(self.root / 'none.json')):
            with self.assertRaises(CredentialError):
                self.loader().resolve_credentials_path()

    def test_load_fails_without_credentials(self):
        with mock.patch.object(ServiceContextLoader, 'resolve_credentials_path',
                               side_effect=CredentialError('none')):
            with self.assertRaises(CredentialError):
                self.loader().load()

    def test_read_service_account(self):
        data = self.loader().read_service_account(self.credentials)
        self.assertEqual(data['project_id'], 'riverside-cms')

    def test_invalid_service_account(self):
        broken = self.root / 'broken.json'
        broken.write_text('{"type": "service_account"}', encoding='utf-8')
        with self.assertRaises(CredentialError):
            self.loader().read_service_account(broken)

        broken.write_text('not json', encoding='utf-8')
        with self.assertRaises(CredentialError):
            self.loader().read_service_account(broken)


class TestFirestoreAdapters(unittest.TestCase):

    def test_batch_uses_document_ids_and_timeout(self):
        client = mock.MagicMock()
        store = FirestoreDocumentStore(client, timeout=12)

        batch = store.batch()
        batch.set('menuSections', 'main', {'title': 'Main'})
        batch.set('pages', None, {'title': 'Home'})
        batch.commit()

        client.collection.return_value.document.assert_any_call('main')
        client.collection.return_value.document.assert_any_call()
        self.assertEqual(client.batch.return_value.set.call_count, 2)
        client.batch.return_value.commit.assert_called_once_with(timeout=12)

    def test_get_missing_document(self):
        client = mock.MagicMock()
        client.collection.return_value.document.return_value.get.return_value.exists = False

        self.assertIsNone(FirestoreDocumentStore(client).get('pages', 'x'))

    def test_query_and_order_by(self):
        client = mock.MagicMock()
        snapshot = mock.MagicMock()
        snapshot.to_dict.return_value = {'slug': 'home'}
        collection = client.collection.return_value
        collection.where.return_value.stream.return_value = [snapshot]
        collection.order_by.return_value.stream.return_value = [snapshot, snapshot]
        store = FirestoreDocumentStore(client, timeout=5)

        self.assertEqual(store.query('pages', 'slug', 'home'), [{'slug': 'home'}])
        self.assertEqual(len(store.order_by('pages', 'menuOrder')), 2)
        collection.where.return_value.stream.assert_called_once_with(timeout=5)

    def test_blob_upload(self):
        bucket = mock.MagicMock()
        blob = bucket.blob.return_value
        blob.public_url = 'https://storage.googleapis.com/bucket/media/2024/01/a.jpg'
        store = CloudStorageBlobStore(bucket, timeout=7)

        ref = store.upload('media/2024/01/a.jpg', b'data', 'image/jpeg', metadata={'alt': 'A'})
        url = store.make_public(ref)

        bucket.blob.assert_called_with('media/2024/01/a.jpg')
        self.assertEqual(blob.metadata, {'alt': 'A'})
        blob.upload_from_string.assert_called_once_with(b'data', content_type='image/jpeg', timeout=7)
        blob.make_public.assert_called_once_with(timeout=7)
        self.assertEqual(url, blob.public_url)


if __name__ == '__main__':
    unittest.main()
