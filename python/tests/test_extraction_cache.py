"""Tests for the extraction cache.

Tests cover:
- Cache hit returns stored text without touching storage
- Cache miss downloads, extracts, truncates and persists
- Repeated calls are idempotent and download once
- Degraded flag survives the round trip through the file record
- Storage failures propagate
- extract_and_cache always re-extracts
"""

import pytest

from parley.db.models import FileUpload
from parley.services.extraction_cache import (
    EXTRACTION_CACHE_MAX_CHARS,
    extract_and_cache,
    get_or_extract,
)
from parley.storage.client import StorageError
from tests.factories import create_test_file, create_test_project


@pytest.fixture
def project(db_session):
    return create_test_project(db_session)


class TestGetOrExtract:
    def test_populated_cache_skips_storage(self, db_session, storage, project):
        file = create_test_file(db_session, project, extracted_text="cached body")

        result = get_or_extract(db_session, storage, file)

        assert result.text == "cached body"
        assert result.from_cache is True
        assert storage.download_count == 0

    def test_miss_extracts_and_persists(self, db_session, storage, project):
        file = create_test_file(db_session, project, filename="q3.txt")
        storage.put_object(file.file_path, b"Q3 revenue: $5M")

        result = get_or_extract(db_session, storage, file)

        assert result.text == "Q3 revenue: $5M"
        assert result.from_cache is False
        db_session.expire_all()
        stored = db_session.get(FileUpload, file.id)
        assert stored.extracted_text == "Q3 revenue: $5M"
        assert stored.extraction_degraded is False

    def test_text_truncated_before_storage(self, db_session, storage, project):
        file = create_test_file(db_session, project, filename="big.txt")
        storage.put_object(file.file_path, b"x" * 20_000)

        result = get_or_extract(db_session, storage, file)

        assert len(result.text) == EXTRACTION_CACHE_MAX_CHARS == 8000
        db_session.expire_all()
        assert len(db_session.get(FileUpload, file.id).extracted_text) == 8000

    def test_custom_cap(self, db_session, storage, project):
        file = create_test_file(db_session, project, filename="big.txt")
        storage.put_object(file.file_path, b"abcdef")

        result = get_or_extract(db_session, storage, file, max_chars=3)

        assert result.text == "abc"

    def test_second_call_downloads_nothing(self, db_session, storage, project):
        file = create_test_file(db_session, project, filename="notes.md", file_type="")
        storage.put_object(file.file_path, b"# Notes")

        first = get_or_extract(db_session, storage, file)
        second = get_or_extract(db_session, storage, file)

        assert first.text == second.text == "# Notes"
        assert storage.download_count == 1
        assert second.from_cache is True

    def test_empty_file_is_cached(self, db_session, storage, project):
        file = create_test_file(db_session, project, filename="empty.txt")
        storage.put_object(file.file_path, b"")

        first = get_or_extract(db_session, storage, file)
        second = get_or_extract(db_session, storage, file)

        assert first.text == second.text == ""
        assert second.from_cache is True
        assert storage.download_count == 1
        db_session.expire_all()
        assert db_session.get(FileUpload, file.id).extracted_text == ""

    def test_degraded_flag_survives_cache(self, db_session, storage, project):
        file = create_test_file(
            db_session, project, filename="model.bin", file_type="application/x-binary"
        )
        storage.put_object(file.file_path, b"\x00\x01\x02")

        first = get_or_extract(db_session, storage, file)
        second = get_or_extract(db_session, storage, file)

        assert first.degraded is True
        assert second.degraded is True
        assert second.from_cache is True

    def test_missing_object_raises(self, db_session, storage, project):
        file = create_test_file(db_session, project)

        with pytest.raises(StorageError) as exc_info:
            get_or_extract(db_session, storage, file)

        assert exc_info.value.code == "E_STORAGE_MISSING"
        db_session.expire_all()
        assert db_session.get(FileUpload, file.id).extracted_text is None


class TestExtractAndCache:
    def test_overwrites_existing_cache(self, db_session, storage, project):
        file = create_test_file(db_session, project, extracted_text="stale")
        storage.put_object(file.file_path, b"fresh")

        result, cached = extract_and_cache(db_session, storage, file)

        assert result.text == "fresh"
        assert cached.text == "fresh"
        assert storage.download_count == 1

    def test_overrides_path_and_type(self, db_session, storage, project):
        file = create_test_file(db_session, project, filename="upload", file_type=None)
        storage.put_object("elsewhere/data.json", b'{"a": 1}')

        result, cached = extract_and_cache(
            db_session,
            storage,
            file,
            path="elsewhere/data.json",
            filename="data.json",
            media_type="application/json",
        )

        assert result.text == '{"a": 1}'
        assert cached.degraded is False

    def test_returns_untruncated_result(self, db_session, storage, project):
        file = create_test_file(db_session, project, filename="big.txt")
        storage.put_object(file.file_path, b"y" * 9000)

        result, cached = extract_and_cache(db_session, storage, file)

        assert len(result.text) == 9000
        assert len(cached.text) == 8000
