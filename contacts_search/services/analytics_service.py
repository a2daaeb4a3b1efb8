"""Cross-filter analytics: matching contacts pivoted over several dimensions."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..models.errors import UnsupportedValue
from ..models.schemas import PivotRequest, PivotResponse
from .aggregation_builder import PIVOT_DIMENSIONS, pivot_aggregations
from .elasticsearch_service import ElasticsearchService, sort_spec
from .filter_decoder import decode_fields
from .normalizer import flatten_pivot
from .query_compiler import compile_query
from .query_dsl import Bool, Missing
from .search_service import polygon_filter

log = logging.getLogger("contacts_search.analytics")

LASTCHANGE = "lastchange"


def choose_interval(oldest: Optional[datetime], newest: Optional[datetime]) -> str:
    """Histogram granularity for the span of last change dates"""
    if oldest is None or newest is None:
        return "week"
    span = newest - oldest
    if span <= timedelta(days=31):
        return "day"
    if span <= timedelta(days=180):
        return "week"
    if span <= timedelta(days=3 * 365):
        return "month"
    return "year"


def parse_timestamp(value) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError:
        log.warning("unparseable lastchange %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class AnalyticsService:
    """Service class for pivot analytics"""

    def __init__(self, es_service: ElasticsearchService):
        self.es_service = es_service

    async def _lastchange_bound(self, query: Bool, ascending: bool) -> Optional[datetime]:
        outcome = await self.es_service.search(
            self.es_service.contacts_index,
            query.with_must_not(Missing(LASTCHANGE)),
            size=1,
            sort=sort_spec(LASTCHANGE, ascending),
            source_includes=(LASTCHANGE,),
        )
        if not outcome.hits:
            return None
        return parse_timestamp(outcome.hits[0].get(LASTCHANGE))

    async def pivot_contacts(self, request: PivotRequest) -> PivotResponse:
        for dimension in request.dimensions:
            if dimension not in PIVOT_DIMENSIONS:
                raise UnsupportedValue(f"unsupported pivot dimension {dimension!r}")

        filters = decode_fields(request.fields)
        query = compile_query(request.query, filters)
        if request.polygon:
            query = query.with_filter(polygon_filter(request.polygon))

        interval = None
        if "date" in request.dimensions:
            # the interval depends on both bounds, so they are fetched before the main call
            oldest = await self._lastchange_bound(query, ascending=True)
            newest = await self._lastchange_bound(query, ascending=False)
            interval = choose_interval(oldest, newest)
            log.debug("lastchange span %s -> %s, interval %s", oldest, newest, interval)

        outcome = await self.es_service.search(
            self.es_service.contacts_index,
            query,
            aggregations=pivot_aggregations(request.dimensions, interval or "week"),
            size=0,
        )
        if outcome.aggregations is None:
            return PivotResponse(dimensions=request.dimensions, interval=interval)
        rows = flatten_pivot(outcome.aggregations, request.dimensions, list(PIVOT_DIMENSIONS))
        return PivotResponse(dimensions=request.dimensions, interval=interval, rows=rows)
