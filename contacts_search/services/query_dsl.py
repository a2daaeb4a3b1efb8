"""Immutable query nodes rendering to the Elasticsearch query DSL.

Every node is a frozen dataclass with a ``to_dict()`` method. ``Bool`` is
extended with the ``with_*`` methods, which return a new node and leave the
receiver untouched.
"""
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple, Union


@dataclass(frozen=True)
class MatchAll:
    def to_dict(self) -> Dict[str, Any]:
        return {"match_all": {}}


@dataclass(frozen=True)
class MultiMatch:
    query: str
    fields: Tuple[str, ...] = ()
    type: str = "cross_fields"
    operator: str = "and"

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"query": self.query, "type": self.type, "operator": self.operator}
        if self.fields:
            body["fields"] = list(self.fields)
        return {"multi_match": body}


@dataclass(frozen=True)
class Term:
    field: str
    value: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"term": {self.field: self.value}}


@dataclass(frozen=True)
class Terms:
    field: str
    values: Tuple[Any, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"terms": {self.field: list(self.values)}}


@dataclass(frozen=True)
class Range:
    field: str
    gte: Any = None
    lte: Any = None

    def to_dict(self) -> Dict[str, Any]:
        bounds = {}
        if self.gte is not None:
            bounds["gte"] = self.gte
        if self.lte is not None:
            bounds["lte"] = self.lte
        return {"range": {self.field: bounds}}


@dataclass(frozen=True)
class Missing:
    """Documents where ``field`` is absent or null"""

    field: str

    def to_dict(self) -> Dict[str, Any]:
        return {"bool": {"must_not": [{"exists": {"field": self.field}}]}}


@dataclass(frozen=True)
class Nested:
    path: str
    query: "Clause"

    def to_dict(self) -> Dict[str, Any]:
        return {"nested": {"path": self.path, "query": self.query.to_dict()}}


@dataclass(frozen=True)
class GeoPolygon:
    field: str
    points: Tuple[Tuple[float, float], ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "geo_polygon": {
                self.field: {"points": [{"lat": lat, "lon": lng} for lat, lng in self.points]}
            }
        }


@dataclass(frozen=True)
class GeoDistance:
    field: str
    lat: float
    lng: float
    distance: str

    def to_dict(self) -> Dict[str, Any]:
        return {"geo_distance": {"distance": self.distance, self.field: {"lat": self.lat, "lon": self.lng}}}


@dataclass(frozen=True)
class Bool:
    must: Tuple["Clause", ...] = ()
    should: Tuple["Clause", ...] = ()
    must_not: Tuple["Clause", ...] = ()
    filter: Tuple["Clause", ...] = ()
    minimum_should_match: Optional[int] = None

    def with_must(self, *clauses: "Clause") -> "Bool":
        return replace(self, must=self.must + clauses)

    def with_should(self, *clauses: "Clause") -> "Bool":
        return replace(self, should=self.should + clauses)

    def with_must_not(self, *clauses: "Clause") -> "Bool":
        return replace(self, must_not=self.must_not + clauses)

    def with_filter(self, *clauses: "Clause") -> "Bool":
        return replace(self, filter=self.filter + clauses)

    def with_minimum_should_match(self, count: int) -> "Bool":
        return replace(self, minimum_should_match=count)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {}
        for occur in ("must", "should", "must_not", "filter"):
            clauses = getattr(self, occur)
            if clauses:
                body[occur] = [clause.to_dict() for clause in clauses]
        if self.minimum_should_match is not None:
            body["minimum_should_match"] = self.minimum_should_match
        return {"bool": body}


Clause = Union[MatchAll, MultiMatch, Term, Terms, Range, Missing, Nested, GeoPolygon, GeoDistance, Bool]


def any_of(*clauses: Clause) -> Bool:
    """At least one of ``clauses`` must match"""
    return Bool(should=clauses, minimum_should_match=1)
