"""KPI counts over the contacts matching a search.

Reply blocks, in order: total, gender, polling station, age category, weekly
last change, contacts without email, contacts without phone.
"""
import logging
from typing import Dict, List, Mapping, Optional

from ..models.schemas import KpiAggs, KpiReply, SearchRequest
from .aggregation_builder import (
    AGECATEGORY_AGG,
    FORM_ANSWERS_AGG,
    FORM_FILTER_AGG,
    FORM_REFS_AGG,
    GENDER_AGG,
    GENDER_MISSING_AGG,
    LASTCHANGE_AGG,
    MAIL_MISSING_AGG,
    PHONE_MISSING_AGG,
    POLLINGSTATION_AGG,
    POLLINGSTATION_MISSING_AGG,
    birthdate_agg_name,
    form_answer_aggregations,
    kpi_aggregations,
)
from .aggregations import AggregationResult, BucketsResult, SingleBucketResult
from .elasticsearch_service import ElasticsearchService
from .filter_decoder import decode_fields
from .normalizer import find_aggregation, format_key
from .query_compiler import compile_query
from .search_service import polygon_filter

log = logging.getLogger("contacts_search.kpi")

MISSING_KEY = "missing"
AGE_CATEGORY_COUNT = 7


def reconcile_age_categories(missing_birthdate: int, age_category_counts: Mapping[int, int],
                             birthdate_ranges: Mapping[int, BucketsResult]) -> List[KpiReply]:
    """Merge the stored ``age_category`` counts with the birthdate ranges.

    Categories 1 to 6 add both counts. Category 0 is the number of contacts
    without birthdate minus the ones that still have a known age category.
    """
    replies = []
    known = sum(age_category_counts.values()) - age_category_counts.get(0, 0)
    replies.append(KpiReply(key="0", doc_count=missing_birthdate - known))
    for category in range(1, AGE_CATEGORY_COUNT):
        for bucket in birthdate_ranges.get(category, BucketsResult()).buckets:
            replies.append(
                KpiReply(key=str(category), doc_count=bucket.doc_count + age_category_counts.get(category, 0))
            )
    return replies


def age_category_counts(result: BucketsResult) -> Dict[int, int]:
    """Counts per stored age category. Indexed values outside 0..6 are skipped."""
    counts: Dict[int, int] = {}
    for bucket in result.buckets:
        try:
            category = int(bucket.key)
        except (TypeError, ValueError):
            category = None
        if category is None or not 0 <= category < AGE_CATEGORY_COUNT:
            log.warning("skipping age_category bucket %r (%d contacts)", bucket.key, bucket.doc_count)
            continue
        counts[category] = counts.get(category, 0) + bucket.doc_count
    return counts


def _terms_block(values: BucketsResult, missing: SingleBucketResult, empty_key_is_missing: bool = False) -> KpiAggs:
    block = KpiAggs()
    for bucket in values.buckets:
        key = format_key(bucket.key, bucket.key_as_string)
        if empty_key_is_missing and key == "":
            key = MISSING_KEY
        block.kpi_replies.append(KpiReply(key=key, doc_count=bucket.doc_count))
    if missing.doc_count > 0:
        block.kpi_replies.append(KpiReply(key=MISSING_KEY, doc_count=missing.doc_count))
    return block


def _missing_block(missing: SingleBucketResult) -> KpiAggs:
    return KpiAggs(kpi_replies=[KpiReply(key=MISSING_KEY, doc_count=missing.doc_count)])


def build_kpi_blocks(total: int, results: Optional[Mapping[str, AggregationResult]]) -> List[KpiAggs]:
    """KPI blocks from a parsed response, empty when it had no aggregations"""
    if results is None:
        log.debug("no aggregations in response, nothing matched")
        return []

    blocks = [KpiAggs(kpi_replies=[KpiReply(key="total", doc_count=total)])]

    blocks.append(_terms_block(
        find_aggregation(results, GENDER_AGG, BucketsResult),
        find_aggregation(results, GENDER_MISSING_AGG, SingleBucketResult),
    ))
    blocks.append(_terms_block(
        find_aggregation(results, POLLINGSTATION_AGG, BucketsResult),
        find_aggregation(results, POLLINGSTATION_MISSING_AGG, SingleBucketResult),
        empty_key_is_missing=True,
    ))

    counts = age_category_counts(find_aggregation(results, AGECATEGORY_AGG, BucketsResult))
    missing_birthdate = find_aggregation(results, birthdate_agg_name(0), SingleBucketResult)
    ranges = {
        category: find_aggregation(results, birthdate_agg_name(category), BucketsResult)
        for category in range(1, AGE_CATEGORY_COUNT)
    }
    blocks.append(KpiAggs(kpi_replies=reconcile_age_categories(missing_birthdate.doc_count, counts, ranges)))

    lastchange = find_aggregation(results, LASTCHANGE_AGG, BucketsResult)
    blocks.append(KpiAggs(kpi_replies=[
        KpiReply(key=format_key(b.key, b.key_as_string), doc_count=b.doc_count) for b in lastchange.buckets
    ]))

    blocks.append(_missing_block(find_aggregation(results, MAIL_MISSING_AGG, SingleBucketResult)))
    blocks.append(_missing_block(find_aggregation(results, PHONE_MISSING_AGG, SingleBucketResult)))
    return blocks


def form_answer_block(results: Optional[Mapping[str, AggregationResult]]) -> List[KpiAggs]:
    if results is None:
        return []
    nested = find_aggregation(results, FORM_ANSWERS_AGG, SingleBucketResult)
    form = find_aggregation(nested.sub_results, FORM_FILTER_AGG, SingleBucketResult)
    refs = find_aggregation(form.sub_results, FORM_REFS_AGG, BucketsResult)
    block = KpiAggs(kpi_replies=[KpiReply(key="total", doc_count=form.doc_count)])
    block.kpi_replies.extend(
        KpiReply(key=format_key(b.key, b.key_as_string), doc_count=b.doc_count) for b in refs.buckets
    )
    return [block]


class KpiService:
    """Service class for KPI aggregations"""

    def __init__(self, es_service: ElasticsearchService):
        self.es_service = es_service

    async def kpi_contacts(self, request: SearchRequest) -> List[KpiAggs]:
        filters = decode_fields(request.fields)
        query = compile_query(request.query, filters)
        if request.polygon:
            query = query.with_filter(polygon_filter(request.polygon))

        outcome = await self.es_service.search(
            self.es_service.contacts_index,
            query,
            aggregations=kpi_aggregations(),
            size=0,
            track_total_hits=True,
        )
        return build_kpi_blocks(outcome.total, outcome.aggregations)

    async def form_answers(self, request: SearchRequest, form_id: int) -> List[KpiAggs]:
        filters = decode_fields(request.fields)
        query = compile_query(request.query, filters)
        if request.polygon:
            query = query.with_filter(polygon_filter(request.polygon))

        outcome = await self.es_service.search(
            self.es_service.contacts_index,
            query,
            aggregations=form_answer_aggregations(form_id),
            size=0,
        )
        return form_answer_block(outcome.aggregations)
