import logging
from dataclasses import dataclass
from typing import Dict, Any, List, Mapping, Optional, Sequence, Tuple
from elasticsearch import Elasticsearch
from ..config.settings import settings
from .aggregations import AggregationResult, AggregationSpec, parse_aggregations, render_aggregations
from .query_dsl import Clause

log = logging.getLogger("contacts_search.elasticsearch")


@dataclass(frozen=True)
class SearchOutcome:
    total: int = 0
    hits: Tuple[Dict[str, Any], ...] = ()
    # None when the response carried no aggregation section at all
    aggregations: Optional[Mapping[str, AggregationResult]] = None


def sort_spec(sort_field: str, ascending: bool) -> List[Dict[str, Any]]:
    return [{sort_field: {"order": "asc" if ascending else "desc"}}]


class ElasticsearchService:
    """Service class for Elasticsearch operations"""

    def __init__(self, client: Optional[Elasticsearch] = None):
        self.client = client or Elasticsearch(
            hosts=[settings.elasticsearch_url],
            basic_auth=settings.elasticsearch_auth
        )
        self.contacts_index = settings.contacts_index
        self.facts_index = settings.facts_index

    @property
    def target_indexes(self) -> List[str]:
        return [self.contacts_index, self.facts_index]

    async def search(
        self,
        index: str,
        query: Clause,
        aggregations: Optional[Mapping[str, AggregationSpec]] = None,
        size: Optional[int] = None,
        from_: Optional[int] = None,
        sort: Optional[List[Dict[str, Any]]] = None,
        source_includes: Sequence[str] = (),
        post_filter: Optional[Clause] = None,
        track_total_hits: bool = False,
    ) -> SearchOutcome:
        """Execute one search request.

        Engine errors are raised as the client raises them.
        """
        body: Dict[str, Any] = {"query": query.to_dict()}
        if aggregations:
            body["aggs"] = render_aggregations(aggregations)
        if size is not None:
            body["size"] = size
        if from_ is not None:
            body["from"] = from_
        if sort:
            body["sort"] = sort
        if source_includes:
            body["_source"] = {"includes": list(source_includes)}
        if post_filter is not None:
            body["post_filter"] = post_filter.to_dict()
        if track_total_hits:
            body["track_total_hits"] = True

        log.debug("search on %s: %s", index, body)
        response = self.client.search(index=index, body=body)
        response = getattr(response, "body", response)

        hits = response["hits"]
        total = hits.get("total", 0)
        if isinstance(total, dict):
            total = total.get("value", 0)

        raw_aggs = response.get("aggregations")
        parsed = parse_aggregations(aggregations, raw_aggs) if aggregations and raw_aggs else None
        return SearchOutcome(
            total=total,
            hits=tuple(hit.get("_source", {}) for hit in hits.get("hits", [])),
            aggregations=parsed,
        )

    async def check_index_health(self) -> List[str]:
        """Check which indexes are available and healthy"""
        available_indexes = []
        for index in self.target_indexes:
            if self.client.indices.exists(index=index):
                available_indexes.append(index)
        return available_indexes

    async def get_index_stats(self) -> Dict[str, Any]:
        """Get statistics for all target indexes"""
        stats = {}
        for index in self.target_indexes:
            if self.client.indices.exists(index=index):
                index_stats = self.client.indices.stats(index=index)
                stats[index] = {
                    "doc_count": index_stats["indices"][index]["total"]["docs"]["count"],
                    "size": index_stats["indices"][index]["total"]["store"]["size_in_bytes"]
                }
        return stats
