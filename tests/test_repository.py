import psycopg2
import pytest

from map_search.core import repository
from map_search.models import LngLat, SourceKind

CENTER = LngLat(lng=2.0, lat=48.0)


def poi(pid, name, lat=48.0, lng=2.0, **extra):
    row = {"id": pid, "name": name, "description": None, "address": None, "lat": lat, "lng": lng, "categories": [], "reviews": []}
    row.update(extra)
    return row


def test_short_term_short_circuits():
    def fail(term):
        raise AssertionError("repository should not be queried")

    assert repository.search_local_pois("a", CENTER, fetch=fail) == []
    assert repository.search_local_pois("  ", CENTER, fetch=fail) == []


@pytest.mark.parametrize(
    "row",
    [
        poi(1, "Joe's Cafe"),
        poi(2, "Place", description="Best CAFE in town"),
        poi(3, "Place", categories=["Food", "Cafe"]),
        poi(4, "Place", category_name="Cafes"),
        poi(5, "Place", reviews=[{"notes": "lovely cafe", "rating": 4, "rating_type": "out_of_5"}]),
        poi(6, "Place", reviews=[{"notes": None, "user_id": "cafe-lover-42", "rating": 4, "rating_type": "out_of_5"}]),
    ],
)
def test_poi_matches_every_searchable_field(row):
    assert repository.poi_matches(row, "cafe")


def test_poi_matches_rejects_unrelated():
    assert not repository.poi_matches(poi(1, "Bakery", description="bread"), "cafe")


def test_aggregate_rating_uses_majority_scale():
    reviews = [
        {"rating": 8, "rating_type": "out_of_10"},
        {"rating": 4, "rating_type": "out_of_5"},
        {"rating": 5, "rating_type": "out_of_5"},
        {"rating": 90, "rating_type": "percentage"},
    ]
    assert repository.aggregate_rating(reviews) == (4.5, 4, "out_of_5")


def test_aggregate_rating_tie_prefers_out_of_10():
    reviews = [{"rating": 8, "rating_type": "out_of_10"}, {"rating": 80, "rating_type": "percentage"}]
    assert repository.aggregate_rating(reviews) == (8.0, 2, "out_of_10")
    assert repository.aggregate_rating([]) == (None, None, None)


def test_search_local_pois_sorts_and_flags_locality():
    rows = [
        poi(3, "Joe's Cafe far", lat=48.7195),
        poi(1, "Joe's Cafe near", lat=48.0045),
        poi(2, "Joe's Cafe mid", lat=48.0180),
        poi(9, "Unrelated"),
    ]

    results = repository.search_local_pois("joe", CENTER, fetch=lambda term: rows)

    assert [c.id for c in results] == ["poi-1", "poi-2", "poi-3"]
    assert [c.locality_flag for c in results] == [True, True, False]
    assert all(c.source_kind == SourceKind.LOCAL_POI for c in results)
    for a, b in zip(results, results[1:]):
        if a.locality_flag and b.locality_flag:
            assert a.distance_meters <= b.distance_meters


def test_search_local_pois_caps_at_ten():
    rows = [poi(i, f"Cafe {i}", lat=48.0 + i * 0.01) for i in range(15)]
    results = repository.search_local_pois("cafe", CENTER, fetch=lambda term: rows)
    assert len(results) == repository.MAX_LOCAL_RESULTS
    assert results[0].id == "poi-0"


def test_search_local_pois_records_matching_review():
    rows = [
        poi(
            1,
            "Place",
            reviews=[
                {"notes": "nothing", "user_id": "u1", "rating": 3, "rating_type": "out_of_5"},
                {"notes": " great espresso ", "user_id": "abcdef123456", "rating": 5, "rating_type": "out_of_5"},
            ],
        )
    ]
    [candidate] = repository.search_local_pois("espresso", CENTER, fetch=lambda term: rows)
    assert candidate.review_text == "great espresso"
    assert candidate.review_author == "User abcdef12"
    assert candidate.average_rating == 4.0
    assert candidate.review_count == 2


def test_search_local_pois_swallows_database_errors(caplog):
    def broken(term):
        raise psycopg2.OperationalError("connection refused")

    with caplog.at_level("ERROR"):
        assert repository.search_local_pois("cafe", CENTER, fetch=broken) == []
    assert "Local POI search failed" in " ".join(caplog.messages)


def test_search_local_pois_without_center_has_no_distance():
    [candidate] = repository.search_local_pois("cafe", None, fetch=lambda term: [poi(1, "Cafe")])
    assert candidate.distance_meters is None
    assert candidate.locality_flag is False
