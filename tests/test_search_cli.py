import argparse

import pytest

from map_search.core import config
from map_search.etl.rank import RankedResults
from map_search.jobs import search_cli
from map_search.models import BoundingBox, Candidate, SearchFilters, SourceKind


@pytest.fixture(autouse=True)
def settings(monkeypatch):
    monkeypatch.setattr(config, "load_dotenv", lambda: None)
    monkeypatch.setenv("MAPBOX_ACCESS_TOKEN", "pk.test")
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


def test_bbox_argument_parsing():
    assert search_cli._bbox("1,2,3,4") == BoundingBox(1.0, 2.0, 3.0, 4.0)
    with pytest.raises(argparse.ArgumentTypeError):
        search_cli._bbox("1,2")
    with pytest.raises(argparse.ArgumentTypeError):
        search_cli._bbox("a,b,c,d")


def test_parser_reads_filters():
    args = search_cli.build_parser().parse_args(["coffee", "--lng", "2", "--lat", "48", "--open-now", "--select", "0"])
    assert args.query == "coffee"
    assert args.open_now is True
    assert args.accessibility is False
    assert args.select == 0


def test_run_search_job_resolves_selection(monkeypatch):
    unresolved = Candidate(
        id="address.1", display_name="1 Main St", source_kind=SourceKind.GEOCODE, category="address", dedup_key="1 main st"
    )
    monkeypatch.setattr(search_cli, "run_search", lambda term, **kwargs: RankedResults(visible=[unresolved]))
    monkeypatch.setattr(search_cli, "resolve_candidate", lambda candidate, **kwargs: None)

    output = search_cli.run_search_job(
        query="main", lng=2.0, lat=48.0, bbox=None, filters=SearchFilters(), select=0
    )

    assert [item["id"] for item in output["results"]] == ["address.1"]
    assert output["selected"] is None


def test_run_search_job_requires_token(monkeypatch):
    monkeypatch.setenv("MAPBOX_ACCESS_TOKEN", "")
    config.get_settings.cache_clear()
    with pytest.raises(RuntimeError):
        search_cli.run_search_job(query="main", lng=None, lat=None, bbox=None, filters=SearchFilters(), select=None)
