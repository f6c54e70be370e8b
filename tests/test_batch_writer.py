"""Tests for batched document store writes."""

import pytest

from exceptions import WriteBatchError
from importers import MAX_BATCH_SIZE, BatchWriter

from fakes import FakeDocumentStore


def docs(count):
    return [{'id': f"doc-{n}", 'n': n} for n in range(count)]


class TestBatchWriter:

    def test_batch_size_bounds(self):
        store = FakeDocumentStore()
        with pytest.raises(ValueError):
            BatchWriter(store, batch_size=0)
        with pytest.raises(ValueError):
            BatchWriter(store, batch_size=MAX_BATCH_SIZE + 1)
        assert BatchWriter(store, batch_size=MAX_BATCH_SIZE).batch_size == 500

    def test_documents_are_chunked(self):
        store = FakeDocumentStore()
        writer = BatchWriter(store, batch_size=2)

        committed = writer.write('pages', docs(5))

        assert committed == 5
        assert store.batches_created == 3
        assert store.commits == 3
        assert len(store.collections['pages']) == 5
        assert writer.results['pages'] == {'attempted': 5, 'committed': 5, 'batches': 3}

    def test_explicit_ids(self):
        store = FakeDocumentStore()
        BatchWriter(store).write('menuSections', docs(2), id_getter=lambda data: data['id'])

        assert sorted(store.collections['menuSections']) == ['doc-0', 'doc-1']
        assert store.get('menuSections', 'doc-1')['n'] == 1

    def test_generated_ids(self):
        store = FakeDocumentStore()
        BatchWriter(store).write('pages', docs(2))

        assert sorted(store.collections['pages']) == ['auto-1', 'auto-2']

    def test_empty_input_creates_no_batches(self):
        store = FakeDocumentStore()
        writer = BatchWriter(store)

        assert writer.write('pages', []) == 0
        assert store.batches_created == 0
        assert writer.results['pages'] == {'attempted': 0, 'committed': 0, 'batches': 0}

    def test_failed_batch_reports_partial_progress(self):
        store = FakeDocumentStore(fail_on_commit=[1])
        writer = BatchWriter(store, batch_size=2)

        with pytest.raises(WriteBatchError) as excinfo:
            writer.write('pages', docs(5))

        error = excinfo.value
        assert error.collection == 'pages'
        assert error.batch_index == 1
        assert error.attempted == 4
        assert error.committed == 2
        assert isinstance(error.cause, RuntimeError)
        # Earlier batch stays committed, later batches never run
        assert len(store.collections['pages']) == 2
        assert store.batches_created == 2
        assert writer.results['pages'] == {'attempted': 4, 'committed': 2, 'batches': 1}

    def test_results_accumulate_per_collection(self):
        store = FakeDocumentStore()
        writer = BatchWriter(store, batch_size=10)
        writer.write('pages', docs(3))
        writer.write('media', docs(1))
        writer.write('pages', docs(2))

        assert writer.results['pages']['committed'] == 5
        assert writer.results['media']['committed'] == 1
