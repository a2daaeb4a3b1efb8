# tests/conftest.py
import os
import sys
from datetime import datetime, time, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

# make the project root importable
root_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, root_dir)

from contacts_search.main import app
from contacts_search.services.container import container

NOW = datetime(2026, 6, 15, 13, 30, tzinfo=timezone.utc)

# fields indexed with an analyzer: matched on lower-cased words
ANALYZED = {"formdatas.data", "firstname", "surname", "married_name", "address.street", "address.city"}


class FakeIndices:
    def __init__(self, existing):
        self.existing = set(existing)

    def exists(self, index):
        return index in self.existing

    def stats(self, index):
        return {"indices": {index: {"total": {"docs": {"count": 3}, "store": {"size_in_bytes": 1024}}}}}


class FakeElasticsearch:
    """Records search bodies and answers with queued responses"""

    def __init__(self):
        self.calls = []
        self.responses = []
        self.error = None
        self.indices = FakeIndices(["contacts", "facts"])

    def queue(self, response):
        self.responses.append(response)

    def search(self, index, body):
        self.calls.append((index, body))
        if self.error is not None:
            raise self.error
        if self.responses:
            return self.responses.pop(0)
        return {"hits": {"total": {"value": 0}, "hits": []}}


@pytest.fixture
def fake_es(monkeypatch):
    fake = FakeElasticsearch()
    monkeypatch.setattr(container.elasticsearch_service, "client", fake)
    return fake


@pytest.fixture
def client(fake_es):
    return TestClient(app)


# ---------------------------------------------------------------------------
# in-memory evaluation of rendered queries against synthetic documents


def _lookup(doc, path):
    if path.endswith(".strictdata"):
        return _lookup(doc, path[: -len(".strictdata")])
    current = [doc]
    for part in path.split("."):
        found = []
        for item in current:
            if isinstance(item, dict) and item.get(part) is not None:
                value = item[part]
                found.extend(value if isinstance(value, list) else [value])
        current = found
    return current


def _field_values(doc, field):
    values = _lookup(doc, field)
    if field in ANALYZED:
        return [word for value in values for word in str(value).lower().split()]
    return values


def _to_datetime(value):
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _years_ago(now, years):
    try:
        return now.replace(year=now.year - years)
    except ValueError:
        return now.replace(year=now.year - years, day=28)


def _date_math(expression, now, round_up):
    # supports "now/d" and "now-<n>y/d"
    body = expression[len("now"):]
    moment = now
    if body.startswith("-"):
        years = int(body[1:body.index("y")])
        moment = _years_ago(now, years)
    start = datetime.combine(moment.date(), time.min, tzinfo=timezone.utc)
    if round_up:
        return start + timedelta(days=1) - timedelta(milliseconds=1)
    return start


def _bound(value, now, round_up):
    if isinstance(value, str) and value.startswith("now"):
        return _date_math(value, now, round_up)
    return value


def _comparable(doc_value, bound):
    if isinstance(bound, datetime):
        return _to_datetime(doc_value)
    return doc_value


def _same(a, b):
    return str(a) == str(b)


def matches(query, doc, now=NOW):
    (kind, body), = query.items()
    if kind == "match_all":
        return True
    if kind == "bool":
        return _bool(body, doc, now)
    if kind == "term":
        (field, value), = body.items()
        return any(_same(v, value) for v in _field_values(doc, field))
    if kind == "terms":
        (field, values), = body.items()
        return any(_same(v, wanted) for v in _field_values(doc, field) for wanted in values)
    if kind == "exists":
        return bool(_lookup(doc, body["field"]))
    if kind == "range":
        (field, bounds), = body.items()
        gte = _bound(bounds.get("gte"), now, round_up=False)
        lte = _bound(bounds.get("lte"), now, round_up=True)
        for value in _field_values(doc, field):
            if gte is not None and _comparable(value, gte) < gte:
                continue
            if lte is not None and _comparable(value, lte) > lte:
                continue
            return True
        return False
    if kind == "nested":
        path = body["path"]
        return any(matches(body["query"], {path: [element]}, now) for element in doc.get(path, []))
    if kind == "multi_match":
        words = body["query"].lower().split()
        available = {w for field in body.get("fields", []) for w in _field_values(doc, field)}
        return all(word in available for word in words)
    raise AssertionError(f"query kind {kind} not supported by the test evaluator")


def _bool(body, doc, now):
    must = body.get("must", []) + body.get("filter", [])
    if not all(matches(q, doc, now) for q in must):
        return False
    if any(matches(q, doc, now) for q in body.get("must_not", [])):
        return False
    should = body.get("should", [])
    default = 0 if must else (1 if should else 0)
    required = body.get("minimum_should_match", default)
    return sum(1 for q in should if matches(q, doc, now)) >= required


@pytest.fixture
def es_matches():
    return matches
