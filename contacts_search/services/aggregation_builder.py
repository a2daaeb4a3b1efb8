"""Aggregation trees requested by the KPI, clustering and analytics endpoints."""
from typing import Callable, Dict, Mapping, Optional, Sequence

from ..config.settings import settings
from ..models.errors import UnsupportedValue
from .aggregations import (
    AggregationSpec,
    AvgAgg,
    DateHistogramAgg,
    DateRangeAgg,
    FilterAgg,
    GeoHashGridAgg,
    MissingAgg,
    NestedAgg,
    TermsAgg,
    TopHitsAgg,
)
from .normalizer import MISSING_SUFFIX
from .query_dsl import Term

ADDRESS_AGG = "result_aggreg"
ADDRESS_HITS_AGG = "result_subaggreg"
GEODISTANCE_AGG = "aggreg_sortGeodistance"

GEO_GRID_AGG = "geo_grid"
GEO_LAT_AGG = "centroid_lat"
GEO_LNG_AGG = "centroid_lng"

FORM_ANSWERS_AGG = "form_answers"
FORM_FILTER_AGG = "form"
FORM_REFS_AGG = "refs"

GENDER_AGG = "gender_aggreg"
GENDER_MISSING_AGG = "gender_missing_aggreg"
POLLINGSTATION_AGG = "pollingstation_aggreg"
POLLINGSTATION_MISSING_AGG = "pollingstation_missing_aggreg"
AGECATEGORY_AGG = "agecategory_aggreg"
LASTCHANGE_AGG = "lastchange_aggreg"
MAIL_MISSING_AGG = "mail_missing_aggreg"
PHONE_MISSING_AGG = "phone_missing_aggreg"

# date math bounds of the birthdate ranges, index i is the upper bound of
# age category i + 1 and the lower bound of age category i
AGE_CATEGORY_BOUNDS = (
    "now/d",
    "now-18y/d",
    "now-25y/d",
    "now-35y/d",
    "now-50y/d",
    "now-65y/d",
    "now-150y/d",
)


def inner_hits_size(size: int) -> int:
    return min(size, settings.max_inner_result_window)


def birthdate_agg_name(category: int) -> str:
    return f"{category}_aggreg"


def kpi_aggregations() -> Dict[str, AggregationSpec]:
    """KPI facets, in the order their blocks appear in the reply"""
    aggs: Dict[str, AggregationSpec] = {
        GENDER_AGG: TermsAgg("gender"),
        GENDER_MISSING_AGG: MissingAgg("gender"),
        POLLINGSTATION_AGG: TermsAgg("address.PollingStation", size=settings.pollingstation_facet_size),
        POLLINGSTATION_MISSING_AGG: MissingAgg("address.PollingStation"),
        AGECATEGORY_AGG: TermsAgg("age_category"),
        LASTCHANGE_AGG: DateHistogramAgg("lastchange", "week"),
        birthdate_agg_name(0): MissingAgg("birthdate"),
    }
    for category in range(1, 7):
        aggs[birthdate_agg_name(category)] = DateRangeAgg(
            "birthdate", ((AGE_CATEGORY_BOUNDS[category], AGE_CATEGORY_BOUNDS[category - 1]),)
        )
    aggs[MAIL_MISSING_AGG] = MissingAgg("mail")
    aggs[PHONE_MISSING_AGG] = MissingAgg("phone")
    return aggs


def address_aggregations(contacts_per_address: int, addresses: int,
                         source_includes: Sequence[str] = ()) -> Dict[str, AggregationSpec]:
    """Contacts grouped by address, one bucket per distinct latitude"""
    return {
        ADDRESS_AGG: TermsAgg(
            "address.latitude",
            size=contacts_per_address,
            aggs={ADDRESS_HITS_AGG: TopHitsAgg(inner_hits_size(addresses), tuple(source_includes))},
        )
    }


def geodistance_aggregations(lat: float, lng: float, size: int,
                             source_includes: Sequence[str] = ()) -> Dict[str, AggregationSpec]:
    sort = {
        "_geo_distance": {
            "address.location": {"lat": lat, "lon": lng},
            "order": "asc",
            "unit": "km",
            "distance_type": "arc",
        }
    }
    return {GEODISTANCE_AGG: TopHitsAgg(inner_hits_size(size), tuple(source_includes), (sort,))}


def geo_grid_aggregations(precision: Optional[int] = None, size: Optional[int] = None) -> Dict[str, AggregationSpec]:
    """Map clusters: contacts per geohash cell with the cell's mean coordinates"""
    return {
        GEO_GRID_AGG: GeoHashGridAgg(
            "address.location",
            precision or settings.geohash_precision,
            size=size,
            aggs={GEO_LAT_AGG: AvgAgg("address.latitude"), GEO_LNG_AGG: AvgAgg("address.longitude")},
        )
    }


def form_answer_aggregations(form_id: int) -> Dict[str, AggregationSpec]:
    """Answer counts per reference for one custom form"""
    return {
        FORM_ANSWERS_AGG: NestedAgg(
            "formdatas",
            aggs={
                FORM_FILTER_AGG: FilterAgg(
                    Term("formdatas.form_id", form_id),
                    aggs={FORM_REFS_AGG: TermsAgg("formdatas.form_ref_id", size=settings.pollingstation_facet_size)},
                )
            },
        )
    }


# ---------------------------------------------------------------------------
# pivot dimensions


def _terms(field: str) -> Callable[[str, Mapping[str, AggregationSpec]], AggregationSpec]:
    def build(interval: str, aggs: Mapping[str, AggregationSpec]) -> AggregationSpec:
        return TermsAgg(field, size=settings.pollingstation_facet_size, aggs=aggs)
    return build


def _lastchange_histogram(interval: str, aggs: Mapping[str, AggregationSpec]) -> AggregationSpec:
    return DateHistogramAgg("lastchange", interval, aggs=aggs)


PIVOT_DIMENSIONS = {
    "user": ("lastchangeuserid", _terms("lastchangeuserid")),
    "date": ("lastchange", _lastchange_histogram),
    "gender": ("gender", _terms("gender")),
    "pollingstation": ("address.PollingStation", _terms("address.PollingStation")),
    "agecategory": ("age_category", _terms("age_category")),
    "city": ("address.city", _terms("address.city")),
    "postalcode": ("address.postalcode", _terms("address.postalcode")),
}


def pivot_aggregations(dimensions: Sequence[str], interval: str = "week") -> Dict[str, AggregationSpec]:
    """Nested aggregations for ``dimensions``, outermost first.

    Each level holds ``<dimension>`` and ``<dimension>_missing``, both carrying
    the next level as sub-aggregations.
    """
    if not dimensions:
        return {}
    dimension = dimensions[0]
    if dimension not in PIVOT_DIMENSIONS:
        raise UnsupportedValue(f"unsupported pivot dimension {dimension!r}")
    field, build = PIVOT_DIMENSIONS[dimension]
    inner = pivot_aggregations(dimensions[1:], interval)
    return {
        dimension: build(interval, inner),
        dimension + MISSING_SUFFIX: MissingAgg(field, aggs=inner),
    }
