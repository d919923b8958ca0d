from __future__ import annotations

import math

import pytest


class TestParseNumber:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("42", 42.0),
            (" -3.5 ", -3.5),
            ("1e3", 1000.0),
            ("42 views", 42.0),
            (".5", 0.5),
            (7, 7.0),
        ],
    )
    def test_numeric(self, raw, expected):
        from tabchat.query.columns import parse_number

        assert parse_number(raw) == expected

    @pytest.mark.parametrize("raw", ["", "abc", None, "N/A", float("nan"), True])
    def test_not_numeric(self, raw):
        from tabchat.query.columns import parse_number

        assert parse_number(raw) is None

    def test_infinity(self):
        from tabchat.query.columns import parse_number

        assert parse_number("Infinity") == math.inf
        assert parse_number("-Infinity") == -math.inf


class TestCellText:
    def test_integer_float_renders_without_decimal(self):
        from tabchat.query.columns import cell_text

        assert cell_text(3.0) == "3"
        assert cell_text(0.25) == "0.25"
        assert cell_text(None) == ""


class TestResolveColumn:
    HEADERS = ["Favorite Count", "View Count", "created_at"]

    def test_exact_match(self):
        from tabchat.query.columns import resolve_column

        assert resolve_column(self.HEADERS, "View Count") == "View Count"

    def test_normalized_match(self):
        from tabchat.query.columns import resolve_column

        assert resolve_column(self.HEADERS, "favorite_count") == "Favorite Count"
        assert resolve_column(self.HEADERS, "FAVORITE-COUNT") == "Favorite Count"
        assert resolve_column(self.HEADERS, "Created At") == "created_at"

    @pytest.mark.parametrize("candidate", ["View_Count", "View Count", "view_count", "VIEWCOUNT"])
    def test_variants_resolve_to_header(self, candidate):
        from tabchat.query.columns import resolve_column

        assert resolve_column(["id", "View_Count"], candidate) == "View_Count"

    def test_unmatched_returned_unchanged(self):
        from tabchat.query.columns import resolve_column

        assert resolve_column(self.HEADERS, "retweets") == "retweets"

    def test_empty_inputs(self):
        from tabchat.query.columns import resolve_column

        assert resolve_column([], "x") == "x"
        assert resolve_column(self.HEADERS, None) is None


class TestDetection:
    def test_favorite_and_view(self):
        from tabchat.query.columns import detect_favorite_column, detect_view_column

        headers = ["Text", "Favorite Count", "View Count"]
        assert detect_favorite_column(headers) == "Favorite Count"
        assert detect_view_column(headers) == "View Count"

    def test_like_count_counts_as_favorites(self):
        from tabchat.query.columns import detect_favorite_column

        assert detect_favorite_column(["title", "like_count", "view_count"]) == "like_count"

    def test_exact_text_header_preferred(self):
        from tabchat.query.columns import detect_text_column

        assert detect_text_column(["tweet_body", "text"]) == "text"
        assert detect_text_column(["Content", "id"]) == "Content"

    def test_date_prefers_published_at(self):
        from tabchat.query.columns import detect_date_column

        assert detect_date_column(["release_date", "published_at"]) == "published_at"
        assert detect_date_column(["id", "Created At"]) == "Created At"

    def test_nothing_detected(self):
        from tabchat.query.columns import detect_favorite_column, detect_date_column

        assert detect_favorite_column(["a", "b"]) is None
        assert detect_date_column(["a", "b"]) is None
