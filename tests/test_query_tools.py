from __future__ import annotations

import pytest


def _ds(text: str):
    from tabchat.query.loaders import parse_csv_text

    return parse_csv_text(text)


VIDEOS = [
    {"title": "Asbestos explained", "view_count": 300, "video_url": "https://v/1", "thumbnail": "t1", "published_at": "2024-02-01"},
    {"title": "Intro", "view_count": 1000, "video_url": "https://v/2", "thumbnail": "t2", "published_at": "2024-01-01"},
    {"title": "Outro", "view_count": 50, "video_url": "https://v/3", "thumbnail": "t3", "published_at": "2024-03-01"},
]


class TestColumnStats:
    def test_basic_stats(self):
        from tabchat.query.tools import compute_column_stats

        result = compute_column_stats(_ds("x\n1\n2\n3\n4\n"), "x")
        assert result.kind == "column_stats"
        assert result.count == 4
        assert result.mean == 2.5
        assert result.median == 2.5
        assert result.std == pytest.approx(1.118, abs=1e-4)
        assert result.min == 1
        assert result.max == 4

    def test_non_numeric_cells_dropped(self):
        from tabchat.query.tools import compute_column_stats

        result = compute_column_stats(_ds("x\n1\nabc\n\n3\n"), "x")
        assert result.count == 2
        assert result.mean == 2

    def test_infinite_values_left_out(self):
        from tabchat.query.tools import compute_column_stats

        result = compute_column_stats(_ds("x\n1\nInfinity\n3\n-Infinity\n"), "x")
        assert result.count == 2
        assert result.mean == 2
        assert result.std == 1
        assert (result.min, result.max) == (1, 3)

    def test_only_infinite_values_is_error(self):
        from tabchat.query.tools import compute_column_stats

        result = compute_column_stats(_ds("x\nInfinity\n"), "x")
        assert result.kind == "error"

    def test_fuzzy_column_name(self, tweets_dataset):
        from tabchat.query.tools import compute_column_stats

        result = compute_column_stats(tweets_dataset, "favorite_count")
        assert result.column == "Favorite Count"
        assert result.max == 20

    def test_missing_column_is_error_result(self, tweets_dataset):
        from tabchat.query.tools import compute_column_stats

        result = compute_column_stats(tweets_dataset, "retweets")
        assert result.kind == "error"
        assert 'No numeric values found in column "retweets"' in result.error
        assert "Favorite Count" in result.error

    def test_json_variant_message(self, tweets_dataset):
        from tabchat.query.tools import compute_column_stats

        result = compute_column_stats(tweets_dataset, "retweets", json_source=True)
        assert result.error.startswith('No numeric values in "retweets"')


class TestValueCounts:
    def test_counts_sorted_descending(self, tweets_dataset):
        from tabchat.query.tools import get_value_counts

        result = get_value_counts(tweets_dataset, "language")
        assert result.column == "Language"
        assert result.total_rows == 3
        assert list(result.value_counts.items()) == [("en", 2), ("de", 1)]

    def test_blank_values_excluded_and_top_n(self):
        from tabchat.query.tools import get_value_counts

        result = get_value_counts(_ds("c\na\nb\n\"\"\nb\nc\nc\nc\n"), "c", top_n=2)
        assert result.value_counts == {"c": 3, "b": 2}
        assert result.total_rows == 7

    def test_ties_keep_first_seen_order(self):
        from tabchat.query.tools import get_value_counts

        result = get_value_counts(_ds("c\nz\na\nm\na\nz\nm\n"), "c")
        assert list(result.value_counts) == ["z", "a", "m"]


class TestTopRows:
    def test_descending_default(self, tweets_dataset):
        from tabchat.query.tools import get_top_rows

        result = get_top_rows(tweets_dataset, "Favorite Count", n=3)
        assert [r["Favorite Count"] for r in result.rows] == ["20", "10", "5"]
        assert [r["rank"] for r in result.rows] == [1, 2, 3]
        assert result.rows[0]["text"] == "third one"
        assert result.direction.startswith("descending")

    def test_ascending(self, tweets_dataset):
        from tabchat.query.tools import get_top_rows

        result = get_top_rows(tweets_dataset, "View Count", n=1, ascending=True)
        assert result.count == 1
        assert result.rows[0]["View Count"] == "50"

    def test_non_numeric_rows_last(self):
        from tabchat.query.tools import get_top_rows

        result = get_top_rows(_ds("text,likes\na,n/a\nb,5\nc,9\n"), "likes", n=10)
        assert [r["text"] for r in result.rows] == ["c", "b", "a"]

    def test_text_preview_truncated(self):
        from tabchat.query.tools import get_top_rows

        long_text = "x" * 400
        result = get_top_rows(_ds(f"text,likes\n{long_text},1\n"), "likes", text_chars=150)
        assert len(result.rows[0]["text"]) == 150

    def test_unknown_column_is_error(self, tweets_dataset):
        from tabchat.query.tools import get_top_rows

        result = get_top_rows(tweets_dataset, "nope")
        assert result.kind == "error"


class TestMetricVsTime:
    def test_sorted_by_date(self, tweets_dataset):
        from tabchat.query.tools import plot_metric_vs_time

        chart = plot_metric_vs_time(tweets_dataset, "Favorite Count")
        assert chart.chart_type == "metricVsTime"
        assert [p.date for p in chart.data] == ["2024-01-01", "2024-01-02", "2024-01-03"]
        assert [p.value for p in chart.data] == [5, 20, 10]

    def test_rows_without_date_or_value_dropped(self):
        from tabchat.query.tools import plot_metric_vs_time

        ds = _ds("title,views,published_at\na,1,2024-01-02\nb,2,\nc,x,2024-01-03\nd,4,2024-01-01\n")
        chart = plot_metric_vs_time(ds, "views")
        assert [p.name for p in chart.data] == ["d", "a"]

    def test_json_records(self):
        from tabchat.query.loaders import dataset_from_records
        from tabchat.query.tools import plot_metric_vs_time

        chart = plot_metric_vs_time(dataset_from_records(VIDEOS), "view_count")
        assert [p.name for p in chart.data] == ["Intro", "Asbestos explained", "Outro"]

    def test_no_valid_data(self, tweets_dataset):
        from tabchat.query.tools import plot_metric_vs_time

        result = plot_metric_vs_time(tweets_dataset, "Text")
        assert result.kind == "error"
        assert "No valid data" in result.error


class TestEngagement:
    def test_adds_ratio_column(self, tweets_dataset):
        from tabchat.query.tools import enrich_with_engagement

        enriched = enrich_with_engagement(tweets_dataset)
        assert enriched.headers[-1] == "engagement"
        assert [r["engagement"] for r in enriched.rows] == [0.1, 0.1, 0.05]
        assert "engagement" not in tweets_dataset.headers

    def test_idempotent(self, tweets_dataset):
        from tabchat.query.tools import enrich_with_engagement

        once = enrich_with_engagement(tweets_dataset)
        assert enrich_with_engagement(once) is once

    def test_zero_views_gives_none(self):
        from tabchat.query.tools import enrich_with_engagement

        enriched = enrich_with_engagement(_ds("likes,views\n3,0\n3,abc\n"))
        assert [r["engagement"] for r in enriched.rows] == [None, None]

    def test_noop_without_view_column(self):
        from tabchat.query.tools import enrich_with_engagement

        ds = _ds("likes,text\n3,a\n")
        assert enrich_with_engagement(ds) is ds

    def test_top_rows_by_engagement(self, tweets_dataset):
        from tabchat.query.tools import enrich_with_engagement, get_top_rows

        result = get_top_rows(enrich_with_engagement(tweets_dataset), "engagement", n=1, ascending=True)
        assert result.rows[0]["engagement"] == 0.05


class TestSummary:
    def test_summary_text(self, tweets_dataset):
        from tabchat.query.tools import summarize_dataset

        text = summarize_dataset(tweets_dataset)
        assert text.startswith("**Dataset: 3 rows x 5 columns**")
        assert '"Favorite Count": mean=11.67, min=5, max=20, n=3' in text
        assert '"Language": 2 unique values; top: en (2), de (1)' in text

    @pytest.mark.parametrize(
        "cells, role",
        [
            (["1", "2", "3", "4", "n/a"], "numeric"),
            (["1", "2", "3", "x", "y"], "categorical"),
        ],
    )
    def test_numeric_threshold(self, cells, role):
        from tabchat.query.tools import profile_columns

        (profile,) = profile_columns(_ds("v\n" + "\n".join(cells) + "\n"))
        assert profile.role == role

    def test_infinite_cells_do_not_break_summary(self):
        from tabchat.query.tools import summarize_dataset

        text = summarize_dataset(_ds("x\n1\nInfinity\n-Infinity\n"))
        assert '"x": mean=1, min=1, max=1, n=3' in text

        text = summarize_dataset(_ds("x\nInfinity\n"))
        assert '"x": mean=null, min=null, max=null, n=1' in text

    def test_categorical_ties_keep_first_seen_order(self):
        from tabchat.query.tools import profile_columns

        (profile,) = profile_columns(_ds("c\nb\na\na\nb\n"))
        assert profile.top_values == [("b", 2), ("a", 2)]

    def test_empty_dataset(self):
        from tabchat.query.loaders import Dataset
        from tabchat.query.tools import describe_dataset, summarize_dataset

        assert summarize_dataset(Dataset()) == ""
        assert describe_dataset(Dataset()).kind == "error"

    def test_describe(self, tweets_dataset):
        from tabchat.query.tools import describe_dataset

        result = describe_dataset(tweets_dataset)
        assert result.rows == 3
        assert result.columns == 5


class TestSlimCsv:
    def test_projects_key_columns(self):
        from tabchat.query.tools import build_slim_csv

        ds = _ds("id,Text,View Count,Language\n1,hi,10,en\n")
        assert build_slim_csv(ds) == "Text,View Count,Language\nhi,10,en"

    def test_no_key_columns(self):
        from tabchat.query.tools import build_slim_csv

        assert build_slim_csv(_ds("a,b\n1,2\n")) == ""


class TestPlayVideo:
    @pytest.mark.parametrize(
        "selector, title",
        [
            ("first", "Asbestos explained"),
            ("last", "Outro"),
            ("most viewed", "Intro"),
            ("least viewed", "Outro"),
            ("asbestos", "Asbestos explained"),
        ],
    )
    def test_selectors(self, selector, title):
        from tabchat.query.loaders import dataset_from_records
        from tabchat.query.tools import play_video

        card = play_video(dataset_from_records(VIDEOS), selector)
        assert card.kind == "video_card"
        assert card.title == title

    def test_card_fields(self):
        from tabchat.query.loaders import dataset_from_records
        from tabchat.query.tools import play_video

        card = play_video(dataset_from_records(VIDEOS), "intro")
        assert card.url == "https://v/2"
        assert card.thumbnail == "t2"

    def test_not_found(self):
        from tabchat.query.loaders import dataset_from_records
        from tabchat.query.tools import play_video

        result = play_video(dataset_from_records(VIDEOS), "cooking")
        assert result.kind == "error"
        assert "Video not found" in result.error
