import logging
from datetime import datetime, timezone
from typing import Dict, Any, List
from ..models.schemas import HealthResponse
from ..config.settings import settings
from .elasticsearch_service import ElasticsearchService

log = logging.getLogger("contacts_search.health")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def index_status(available: List[str], contacts_index: str) -> str:
    """OK when the contacts index is reachable. Only the geopolygon search needs facts."""
    if contacts_index not in available:
        return "ERROR: contacts index unavailable"
    return "OK"


class HealthService:
    """Service class for health checks and system status"""

    def __init__(self, es_service: ElasticsearchService):
        self.es_service = es_service

    async def get_health_status(self) -> HealthResponse:
        try:
            available = await self.es_service.check_index_health()
        except Exception as e:
            log.error("index health check failed: %s", e)
            return HealthResponse(status=f"ERROR: {str(e)}", timestamp=_now(), indexes_available=[])
        return HealthResponse(
            status=index_status(available, self.es_service.contacts_index),
            timestamp=_now(),
            indexes_available=available
        )

    async def get_detailed_status(self) -> Dict[str, Any]:
        """Index statistics plus the search defaults in use"""
        try:
            available = await self.es_service.check_index_health()
            index_stats = await self.es_service.get_index_stats()
        except Exception as e:
            log.error("detailed health check failed: %s", e)
            return {"status": f"ERROR: {str(e)}", "timestamp": _now(), "error_details": str(e)}

        return {
            "status": index_status(available, self.es_service.contacts_index),
            "timestamp": _now(),
            "elasticsearch": {
                "url": settings.elasticsearch_url,
                "contacts_index": self.es_service.contacts_index,
                "facts_index": self.es_service.facts_index,
                "available_indexes": available,
                "index_stats": index_stats
            },
            "configuration": {
                "default_page_size": settings.default_page_size,
                "default_sort_field": settings.default_sort_field,
                "pollingstation_facet_size": settings.pollingstation_facet_size,
                "max_result_window": settings.max_result_window,
                "max_inner_result_window": settings.max_inner_result_window,
                "geohash_precision": settings.geohash_precision
            },
            "api": {
                "title": settings.api_title,
                "version": settings.api_version
            }
        }
