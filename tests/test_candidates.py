"""Tests for the candidate cascade."""

from mood_dj.core import CandidateSource, UpstreamUnavailable, normalize_tags

from conftest import make_track


def test_normalize_tags():
    assert normalize_tags(["Pop", "  Hip  Hop ", "r&b", "lo-fi", "pop", "!!!"]) == [
        "pop", "hip hop", "rb", "lo-fi",
    ]


def test_tag_search_hit_skips_later_stages(catalog):
    catalog.tag_tracks = [make_track("a"), make_track("b")]
    pool = CandidateSource(catalog).gather(["pop", "dance"], limit=20)

    assert pool.stage == "tag_search"
    assert [t.id for t in pool.tracks] == ["a", "b"]
    assert catalog.methods_called() == ["search_tracks"]


def test_tag_query_combines_all_tags(catalog):
    catalog.tag_tracks = [make_track("a")]
    CandidateSource(catalog).gather(["Pop", "edm"], limit=30)

    _, query, limit = catalog.calls[0]
    assert query == 'genre:"pop" OR genre:"edm"'
    assert limit == 30


def test_empty_tag_search_falls_back_to_artists(catalog):
    catalog.artists = [{"id": f"ar{i}", "name": f"Artist {i}"} for i in range(8)]
    catalog.top_tracks = {
        f"ar{i}": [make_track(f"ar{i}-t{j}") for j in range(10)] for i in range(8)
    }
    pool = CandidateSource(catalog).gather(["pop"], limit=20)

    assert pool.stage == "artist_search"
    assert len(pool.tracks) == 20
    assert catalog.methods_called().count("artist_top_tracks") == 2
    assert ("search_artists", "pop", 5) in catalog.calls


def test_artist_search_caps_fanout(catalog):
    catalog.artists = [{"id": f"ar{i}", "name": ""} for i in range(8)]
    catalog.top_tracks = {f"ar{i}": [make_track(f"ar{i}")] for i in range(8)}
    pool = CandidateSource(catalog, artist_fanout=5).gather(["pop"], limit=50)

    assert len(pool.tracks) == 5
    assert catalog.methods_called().count("artist_top_tracks") == 5


def test_failing_artist_is_skipped(catalog):
    catalog.artists = [{"id": "bad", "name": "Bad"}, {"id": "good", "name": "Good"}]
    catalog.top_tracks = {
        "bad": UpstreamUnavailable("boom", status_code=500),
        "good": [make_track("g1")],
    }
    pool = CandidateSource(catalog).gather(["rock"], limit=20)

    assert pool.stage == "artist_search"
    assert [t.id for t in pool.tracks] == ["g1"]


def test_failed_stage_advances_and_is_recorded(catalog):
    catalog.tag_tracks = UpstreamUnavailable("forbidden", status_code=403)
    catalog.artists = UpstreamUnavailable("rate limited", status_code=429)
    catalog.loose_tracks = [make_track("hit")]
    pool = CandidateSource(catalog).gather(["pop"], limit=20)

    assert pool.stage == "loose_search"
    assert [t.id for t in pool.tracks] == ["hit"]
    assert set(pool.failures) == {"tag_search", "artist_search"}


def test_all_stages_empty_is_not_an_error(catalog):
    pool = CandidateSource(catalog).gather(["pop"], limit=20)

    assert pool.empty
    assert pool.stage is None
    assert pool.failures == {}


def test_no_usable_tags_goes_straight_to_loose_search(catalog):
    catalog.loose_tracks = [make_track("x")]
    pool = CandidateSource(catalog).gather(["???"], limit=20)

    assert pool.stage == "loose_search"
    assert catalog.methods_called() == ["search_tracks"]
    assert catalog.calls[0][1] == "top hits"


def test_pool_is_truncated_to_limit(catalog):
    catalog.tag_tracks = [make_track(str(i)) for i in range(40)]
    pool = CandidateSource(catalog).gather(["pop"], limit=20)
    assert len(pool.tracks) == 20


def test_custom_strategies_run_in_order(catalog):
    order = []

    def first(tags, limit):
        order.append("first")
        return []

    def second(tags, limit):
        order.append("second")
        return [make_track("s")]

    def third(tags, limit):
        order.append("third")
        return [make_track("t")]

    source = CandidateSource(catalog, strategies=[("first", first), ("second", second), ("third", third)])
    pool = source.gather(["pop"])

    assert order == ["first", "second"]
    assert pool.stage == "second"
