from datetime import datetime, timedelta, timezone

import pytest

from blog_feed_aggregator.storage import DuplicateFeedError, DuplicatePostError, FrameStore, StorageError

from conftest import make_post, make_source

T0 = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def test_insert_and_find_source(store):
    store.insert_source(make_source("https://a.example/feed", title="A", is_official=True))

    found = store.find_source_by_url("https://a.example/feed")
    assert found.title == "A"
    assert found.is_official is True
    assert found.bookmark_count == 0
    assert found.created_at is not None
    assert store.find_source_by_url("https://missing.example/feed") is None


def test_duplicate_feed_url_is_rejected(store):
    store.insert_source(make_source("https://a.example/feed", id="1"))
    with pytest.raises(DuplicateFeedError):
        store.insert_source(make_source("https://a.example/feed", id="2"))


def test_duplicate_post_url_is_rejected(store):
    store.insert_post(make_post("https://a.example/p", T0, id="1"))
    with pytest.raises(DuplicatePostError):
        store.insert_post(make_post("https://a.example/p", T0, id="2"))
    assert store.existing_post_urls() == {"https://a.example/p"}


def test_list_sources_rotates_by_last_fetch(store):
    for name in ("a", "b", "c"):
        store.insert_source(make_source(f"https://{name}.example/feed", id=name))
    store.update_source_fetched_at("a", T0)
    store.update_source_fetched_at("b", T0 - timedelta(hours=1))

    assert [s.id for s in store.list_sources()] == ["c", "b", "a"]


def test_sources_missing_description(store):
    store.insert_source(make_source("https://a.example/feed", id="a"))
    store.insert_source(make_source("https://b.example/feed", id="b", description="About B"))
    assert [s.id for s in store.list_sources_missing_description()] == ["a"]

    store.update_source_description("a", "About A")
    assert store.list_sources_missing_description() == []


def test_updates_on_unknown_ids_raise(store):
    with pytest.raises(StorageError):
        store.update_source_description("nope", "x")
    with pytest.raises(StorageError):
        store.update_post_bookmark_count("nope", 1)


def test_post_updates(store):
    store.insert_post(make_post("https://a.example/p", T0, id="p1"))
    store.update_post_bookmark_count("p1", 9)
    store.update_post_thumbnail("p1", "https://a.example/p.png")

    post = store.find_post_by_url("https://a.example/p")
    assert post.hatena_bookmark_count == 9
    assert post.thumbnail_url == "https://a.example/p.png"


def test_reconciliation_selection(store):
    since = T0 - timedelta(days=7)
    store.insert_post(make_post("https://a.example/old-counted", T0 - timedelta(days=10), hatena_bookmark_count=5))
    store.insert_post(make_post("https://a.example/old-null", T0 - timedelta(days=30)))
    store.insert_post(make_post("https://a.example/edge", since, hatena_bookmark_count=1))
    store.insert_post(make_post("https://a.example/recent", T0 - timedelta(days=2), hatena_bookmark_count=3))

    selected = store.list_posts_for_reconciliation(since, cap=40)
    assert [p.url for p in selected] == [
        "https://a.example/recent",
        "https://a.example/edge",
        "https://a.example/old-null",
    ]
    assert len(store.list_posts_for_reconciliation(since, cap=2)) == 2


def test_feed_bookmarks_and_cascade_delete(store):
    store.insert_source(make_source("https://a.example/feed", id="a"))
    store.insert_post(make_post("https://a.example/p", T0, feed_id="a"))
    store.add_feed_bookmark("u1", "a")
    store.add_feed_bookmark("u1", "a")
    store.add_feed_bookmark("u2", "a")

    assert store.count_feed_bookmarks() == {"a": 2}

    store.delete_source("a")
    assert store.list_sources() == []
    assert store.list_posts() == []
    assert store.count_feed_bookmarks() == {}


def test_csv_round_trip(tmp_path):
    store = FrameStore.open(tmp_path)
    store.insert_source(make_source("https://a.example/feed", id="a", title="A, with comma", is_official=True))
    store.insert_post(
        make_post(
            "https://a.example/p",
            T0,
            id="p1",
            feed_id="a",
            title="Hello",
            summary="line one\nline two",
            tech_score=0.35,
            main_topic="backend",
        )
    )
    store.update_source_fetched_at("a", T0)

    reopened = FrameStore.open(tmp_path)
    source = reopened.find_source_by_url("https://a.example/feed")
    assert source.title == "A, with comma"
    assert source.is_official is True
    assert source.description is None
    assert source.last_fetched_at == T0

    (post,) = reopened.list_posts()
    assert post.published_at == T0
    assert post.summary == "line one\nline two"
    assert post.tech_score == pytest.approx(0.35)
    assert post.main_topic == "backend"
    assert post.sub_topic is None
    assert post.hatena_bookmark_count is None


def test_failed_write_raises_storage_error_and_keeps_old_state(tmp_path):
    store = FrameStore.open(tmp_path)
    store.insert_post(make_post("https://a.example/p", T0, id="p1"))
    (tmp_path / "posts.csv").unlink()
    (tmp_path / "posts.csv").mkdir()

    with pytest.raises(StorageError):
        store.insert_post(make_post("https://a.example/q", T0, id="p2"))
    with pytest.raises(StorageError):
        store.update_post_bookmark_count("p1", 7)

    (post,) = store.list_posts()
    assert post.url == "https://a.example/p"
    assert post.hatena_bookmark_count is None
