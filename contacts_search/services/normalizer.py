"""Turn parsed aggregation results into reply structures.

Two ways of reading a response:

* typed extraction, for aggregations with a known fixed layout (address
  clusters, geo clusters, KPI blocks). Each named aggregation is looked up on
  its own; an absent one is logged and read as empty, so the caller still gets
  the other facets.
* pivot flattening, for an ordered list of dimensions. Every level is paired
  with a ``<dimension>_missing`` aggregation whose rows carry ``"N/A"`` in
  place of the key.
"""
import logging
from typing import Any, List, Mapping, Optional, Sequence, Type, TypeVar

from ..models.errors import PartialAggregationMissing, UnsupportedValue
from ..models.schemas import AddressAggReply, Contact, GeoCluster
from .aggregations import (
    AggregationResult,
    BucketsResult,
    MetricResult,
    SingleBucketResult,
    TopHitsResult,
)

log = logging.getLogger("contacts_search.normalizer")

NOT_AVAILABLE = "N/A"
MISSING_SUFFIX = "_missing"

R = TypeVar("R", BucketsResult, SingleBucketResult, TopHitsResult, MetricResult)


def get_aggregation(results: Mapping[str, AggregationResult], name: str, kind: Type[R]) -> R:
    """Return the named result, raising ``PartialAggregationMissing`` when it is absent"""
    result = results.get(name)
    if result is None:
        raise PartialAggregationMissing(name)
    if not isinstance(result, kind):
        raise TypeError(f"aggregation {name!r} is a {type(result).__name__}, expected {kind.__name__}")
    return result


def find_aggregation(results: Mapping[str, AggregationResult], name: str, kind: Type[R]) -> R:
    """Like ``get_aggregation`` but an absent aggregation is logged and read as empty"""
    try:
        return get_aggregation(results, name, kind)
    except PartialAggregationMissing as exc:
        log.error("%s", exc)
        return kind()


def format_key(key: Any, key_as_string: Optional[str] = None) -> str:
    if key_as_string is not None:
        return key_as_string
    if isinstance(key, float) and key.is_integer():
        return str(int(key))
    return str(key)


# ---------------------------------------------------------------------------
# typed extraction


def extract_address_aggs(results: Mapping[str, AggregationResult], name: str,
                         sub_name: str) -> List[AddressAggReply]:
    """One reply per address bucket, holding the contacts found at that address"""
    try:
        addresses = get_aggregation(results, name, BucketsResult)
    except PartialAggregationMissing as exc:
        log.debug("%s", exc)
        return []

    replies = []
    for bucket in addresses.buckets:
        top_hits = bucket.sub_results.get(sub_name)
        if not isinstance(top_hits, TopHitsResult):
            continue
        replies.append(AddressAggReply(contacts=[Contact.model_validate(hit) for hit in top_hits.hits]))
    return replies


def extract_geo_clusters(results: Mapping[str, AggregationResult], name: str,
                         lat_name: str, lng_name: str) -> List[GeoCluster]:
    cells = find_aggregation(results, name, BucketsResult)
    clusters = []
    for bucket in cells.buckets:
        lat = find_aggregation(bucket.sub_results, lat_name, MetricResult)
        lng = find_aggregation(bucket.sub_results, lng_name, MetricResult)
        clusters.append(
            GeoCluster(key=str(bucket.key), doc_count=bucket.doc_count, latitude=lat.value, longitude=lng.value)
        )
    return clusters


def extract_top_hits(results: Mapping[str, AggregationResult], name: str) -> List[Contact]:
    try:
        hits = get_aggregation(results, name, TopHitsResult)
    except PartialAggregationMissing as exc:
        log.debug("%s", exc)
        return []
    return [Contact.model_validate(hit) for hit in hits.hits]


# ---------------------------------------------------------------------------
# pivot flattening


def flatten_pivot(results: Mapping[str, AggregationResult], dimensions: Sequence[str],
                  known_dimensions: Optional[Sequence[str]] = None) -> List[List[str]]:
    """Flatten nested dimension aggregations into ``[key, key, ..., count]`` rows.

    ``results`` holds, for the first dimension ``d``, a bucketed ``d`` result and
    a ``d_missing`` single bucket result, each bucket holding the same pair for
    the next dimension. The ``"N/A"`` rows are always emitted, even with a zero
    count.
    """
    if known_dimensions is not None:
        for dimension in dimensions:
            if dimension not in known_dimensions:
                raise UnsupportedValue(f"unsupported pivot dimension {dimension!r}")

    rows: List[List[str]] = []
    if not dimensions:
        return rows
    _flatten_level(results, list(dimensions), [], rows)
    return rows


def _flatten_level(results: Mapping[str, AggregationResult], dimensions: List[str],
                   prefix: List[str], rows: List[List[str]]) -> None:
    dimension, rest = dimensions[0], dimensions[1:]

    values = find_aggregation(results, dimension, BucketsResult)
    for bucket in values.buckets:
        _emit(bucket.sub_results, bucket.doc_count, rest, prefix + [format_key(bucket.key, bucket.key_as_string)], rows)

    missing = find_aggregation(results, dimension + MISSING_SUFFIX, SingleBucketResult)
    _emit(missing.sub_results, missing.doc_count, rest, prefix + [NOT_AVAILABLE], rows)


def _emit(sub_results: Mapping[str, AggregationResult], doc_count: int, rest: List[str],
          row: List[str], rows: List[List[str]]) -> None:
    if rest:
        _flatten_level(sub_results, rest, row, rows)
    else:
        rows.append(row + [str(doc_count)])
