from .elasticsearch_service import ElasticsearchService
from .search_service import SearchService
from .kpi_service import KpiService
from .analytics_service import AnalyticsService
from .health_service import HealthService


class ServiceContainer:
    """Dependency injection container for managing service instances"""

    def __init__(self, es_service: ElasticsearchService = None):
        # Initialize services
        self._elasticsearch_service = es_service or ElasticsearchService()
        self._search_service = SearchService(self._elasticsearch_service)
        self._kpi_service = KpiService(self._elasticsearch_service)
        self._analytics_service = AnalyticsService(self._elasticsearch_service)
        self._health_service = HealthService(self._elasticsearch_service)

    @property
    def elasticsearch_service(self) -> ElasticsearchService:
        return self._elasticsearch_service

    @property
    def search_service(self) -> SearchService:
        return self._search_service

    @property
    def kpi_service(self) -> KpiService:
        return self._kpi_service

    @property
    def analytics_service(self) -> AnalyticsService:
        return self._analytics_service

    @property
    def health_service(self) -> HealthService:
        return self._health_service


# Global container instance
container = ServiceContainer()
