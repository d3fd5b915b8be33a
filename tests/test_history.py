from map_search.core import history
from map_search.models import Candidate, RecentSearch, SourceKind


def make(cid, coords=(2.3, 48.8), secondary=None):
    return Candidate(
        id=cid,
        display_name=f"Place {cid}",
        secondary_text=secondary,
        source_kind=SourceKind.GEOCODE,
        category="address",
        dedup_key=f"place {cid}",
        coordinates=coords,
        feature_type="address",
    )


def test_to_recent_search_uses_full_address():
    record = history.to_recent_search(make("a", secondary="1 Main St, Springfield"))
    assert record == RecentSearch(
        id="a",
        place_name="1 Main St, Springfield",
        text="Place a",
        coordinates=(2.3, 48.8),
        place_type="address",
        category="address",
    )


def test_to_recent_search_skips_unlocated_candidates():
    assert history.to_recent_search(make("a", coords=None)) is None


def test_push_recent_dedupes_and_caps_at_five():
    records = []
    for cid in ["a", "b", "c", "d", "e", "f"]:
        records = history.push_recent(records, history.to_recent_search(make(cid)))
    assert [r.id for r in records] == ["f", "e", "d", "c", "b"]

    records = history.push_recent(records, history.to_recent_search(make("c")))
    assert [r.id for r in records] == ["c", "f", "e", "d", "b"]


def test_toggle_favorite():
    a = make("a")
    favorites = history.toggle_favorite([], a)
    assert favorites == [a]
    assert history.toggle_favorite(favorites, a) == []
