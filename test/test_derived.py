"""
Tests for derived values, date helpers and pagination utilities
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from docarchive.models.document import Document
from docarchive.utils.dates import as_naive_utc, start_of_month, utcnow
from docarchive.utils.derived import format_file_size, full_name, is_locked
from docarchive.utils.pagination import PageParams, apply_sort, like_pattern, pagination_meta

SORT_COLUMNS = {"createdAt": Document.created_at, "title": Document.title}


class TestDerivedValues:
    def test_full_name(self):
        assert full_name("Olivia", "Owner") == "Olivia Owner"
        assert full_name("Olivia", None) == "Olivia"
        assert full_name(None, None) == ""

    def test_is_locked(self):
        now = utcnow()
        assert is_locked(None) is False
        assert is_locked(now + timedelta(minutes=5), now=now) is True
        assert is_locked(now - timedelta(minutes=5), now=now) is False

    @pytest.mark.parametrize(
        "size,expected",
        [
            (None, "0 Bytes"),
            (0, "0 Bytes"),
            (512, "512 Bytes"),
            (1536, "1.5 KB"),
            (10 * 1024 * 1024, "10 MB"),
            (1024**3 * 3, "3 GB"),
        ],
    )
    def test_format_file_size(self, size, expected):
        assert format_file_size(size) == expected


class TestDates:
    def test_utcnow_is_naive(self):
        assert utcnow().tzinfo is None

    def test_start_of_month(self):
        assert start_of_month(datetime(2024, 5, 17, 13, 45)) == datetime(2024, 5, 1)

    def test_as_naive_utc(self):
        aware = datetime(2024, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        assert as_naive_utc(aware) == datetime(2024, 1, 1, 10, 0)
        assert as_naive_utc(datetime(2024, 1, 1)) == datetime(2024, 1, 1)
        assert as_naive_utc(None) is None


class TestPagination:
    def test_offset(self):
        assert PageParams(page=3, limit=10).offset == 20

    def test_meta(self):
        assert pagination_meta(45, PageParams(page=2, limit=20), 20) == {
            "results": 20,
            "total": 45,
            "page": 2,
            "pages": 3,
        }

    def test_meta_empty(self):
        assert pagination_meta(0, PageParams(), 0)["pages"] == 0

    def test_apply_sort_descending(self):
        stmt = apply_sort(select(Document), "-title", SORT_COLUMNS)
        assert "ORDER BY documents.title DESC" in str(stmt)

    def test_apply_sort_multiple_fields(self):
        stmt = apply_sort(select(Document), "title,-createdAt", SORT_COLUMNS)
        assert "ORDER BY documents.title ASC, documents.created_at DESC" in str(stmt)

    def test_apply_sort_unknown_field_uses_default(self):
        stmt = apply_sort(select(Document), "-password", SORT_COLUMNS)
        assert "ORDER BY documents.created_at DESC" in str(stmt)

    def test_like_pattern_escapes_wildcards(self):
        assert like_pattern("100%_Done") == "%100\\%\\_done%"
