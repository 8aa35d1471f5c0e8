"""Shared fixtures: a small catalog spanning several main groups."""

import pytest

from newsdesk.taxonomy import Catalog, Category


CATALOG_RECORDS = [
    {"category_id": 10, "name": "Parliament", "slug": "politics-parliament"},
    {"category_id": 11, "name": "Elections", "slug": "politics-elections"},
    {"category_id": 12, "name": "Devolution", "slug": "politics-devolution"},
    {"category_id": 13, "name": "Policy", "slug": "politics-policy"},
    {"category_id": 14, "name": "Diplomacy", "slug": "politics-diplomacy"},
    {"category_id": 20, "name": "Football", "slug": "sports-football"},
    {"category_id": 21, "name": "Athletics", "slug": "sports-athletics"},
    {"category_id": 30, "name": "Startups", "slug": "startups", "parent": "Tech"},
    {"category_id": 40, "name": "Breaking", "slug": "live-world-breaking"},
]


@pytest.fixture
def catalog_records():
    return [dict(record) for record in CATALOG_RECORDS]


@pytest.fixture
def catalog(catalog_records):
    """Catalog with politics 10-14, sports 20-21, tech 30, live-world 40."""
    return Catalog([Category(**record) for record in catalog_records])
