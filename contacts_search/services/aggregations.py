"""Aggregation requests and the results parsed back from a response.

Each request node renders itself with ``to_dict()`` and knows how to read its
own slice of a response with ``parse()``, so a response is always read through
the tree that produced it.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .query_dsl import Clause


@dataclass(frozen=True)
class Bucket:
    key: Any
    doc_count: int
    key_as_string: Optional[str] = None
    sub_results: Mapping[str, "AggregationResult"] = field(default_factory=dict)


@dataclass(frozen=True)
class BucketsResult:
    buckets: Tuple[Bucket, ...] = ()


@dataclass(frozen=True)
class SingleBucketResult:
    doc_count: int = 0
    sub_results: Mapping[str, "AggregationResult"] = field(default_factory=dict)


@dataclass(frozen=True)
class TopHitsResult:
    total: int = 0
    hits: Tuple[Dict[str, Any], ...] = ()


@dataclass(frozen=True)
class MetricResult:
    value: Optional[float] = None


AggregationResult = Union[BucketsResult, SingleBucketResult, TopHitsResult, MetricResult]


def _render_subs(body: Dict[str, Any], subs: Mapping[str, "AggregationSpec"]) -> Dict[str, Any]:
    if subs:
        body["aggs"] = {name: spec.to_dict() for name, spec in subs.items()}
    return body


def _parse_bucket(raw: Dict[str, Any], subs: Mapping[str, "AggregationSpec"]) -> Bucket:
    return Bucket(
        key=raw.get("key"),
        key_as_string=raw.get("key_as_string"),
        doc_count=raw.get("doc_count", 0),
        sub_results=parse_aggregations(subs, raw),
    )


class _Bucketed:
    def parse(self, raw: Dict[str, Any]) -> BucketsResult:
        return BucketsResult(tuple(_parse_bucket(b, self.aggs) for b in raw.get("buckets", [])))


class _SingleBucket:
    def parse(self, raw: Dict[str, Any]) -> SingleBucketResult:
        return SingleBucketResult(raw.get("doc_count", 0), parse_aggregations(self.aggs, raw))


@dataclass(frozen=True)
class TermsAgg(_Bucketed):
    field: str
    size: Optional[int] = None
    aggs: Mapping[str, "AggregationSpec"] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        terms: Dict[str, Any] = {"field": self.field}
        if self.size is not None:
            terms["size"] = self.size
        return _render_subs({"terms": terms}, self.aggs)


@dataclass(frozen=True)
class DateHistogramAgg(_Bucketed):
    field: str
    interval: str
    aggs: Mapping[str, "AggregationSpec"] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return _render_subs(
            {"date_histogram": {"field": self.field, "calendar_interval": self.interval}}, self.aggs
        )


@dataclass(frozen=True)
class DateRangeAgg(_Bucketed):
    """``ranges`` are ``(from, to)`` pairs in date math, ``to`` excluded"""

    field: str
    ranges: Tuple[Tuple[Optional[str], Optional[str]], ...]
    aggs: Mapping[str, "AggregationSpec"] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        ranges = []
        for start, end in self.ranges:
            bounds = {}
            if start is not None:
                bounds["from"] = start
            if end is not None:
                bounds["to"] = end
            ranges.append(bounds)
        return _render_subs({"date_range": {"field": self.field, "ranges": ranges}}, self.aggs)


@dataclass(frozen=True)
class GeoHashGridAgg(_Bucketed):
    field: str
    precision: int
    size: Optional[int] = None
    aggs: Mapping[str, "AggregationSpec"] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        grid: Dict[str, Any] = {"field": self.field, "precision": self.precision}
        if self.size is not None:
            grid["size"] = self.size
        return _render_subs({"geohash_grid": grid}, self.aggs)


@dataclass(frozen=True)
class MissingAgg(_SingleBucket):
    field: str
    aggs: Mapping[str, "AggregationSpec"] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return _render_subs({"missing": {"field": self.field}}, self.aggs)


@dataclass(frozen=True)
class NestedAgg(_SingleBucket):
    path: str
    aggs: Mapping[str, "AggregationSpec"] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return _render_subs({"nested": {"path": self.path}}, self.aggs)


@dataclass(frozen=True)
class FilterAgg(_SingleBucket):
    query: Clause
    aggs: Mapping[str, "AggregationSpec"] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return _render_subs({"filter": self.query.to_dict()}, self.aggs)


@dataclass(frozen=True)
class TopHitsAgg:
    size: int
    source_includes: Tuple[str, ...] = ()
    sort: Tuple[Dict[str, Any], ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        top_hits: Dict[str, Any] = {"size": self.size}
        if self.source_includes:
            top_hits["_source"] = {"includes": list(self.source_includes)}
        if self.sort:
            top_hits["sort"] = list(self.sort)
        return {"top_hits": top_hits}

    def parse(self, raw: Dict[str, Any]) -> TopHitsResult:
        hits = raw.get("hits", {})
        total = hits.get("total", 0)
        if isinstance(total, dict):
            total = total.get("value", 0)
        return TopHitsResult(total, tuple(hit.get("_source", {}) for hit in hits.get("hits", [])))


@dataclass(frozen=True)
class AvgAgg:
    field: str

    def to_dict(self) -> Dict[str, Any]:
        return {"avg": {"field": self.field}}

    def parse(self, raw: Dict[str, Any]) -> MetricResult:
        return MetricResult(raw.get("value"))


AggregationSpec = Union[
    TermsAgg, DateHistogramAgg, DateRangeAgg, GeoHashGridAgg, MissingAgg, NestedAgg, FilterAgg, TopHitsAgg, AvgAgg
]


def render_aggregations(specs: Mapping[str, AggregationSpec]) -> Dict[str, Any]:
    return {name: spec.to_dict() for name, spec in specs.items()}


def parse_aggregations(specs: Mapping[str, AggregationSpec],
                       raw: Optional[Mapping[str, Any]]) -> Dict[str, AggregationResult]:
    """Parse the named aggregations of ``raw``, skipping the ones the engine did not return"""
    results: Dict[str, AggregationResult] = {}
    if not raw:
        return results
    for name, spec in specs.items():
        if name in raw and raw[name] is not None:
            results[name] = spec.parse(raw[name])
    return results
