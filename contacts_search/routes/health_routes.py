import logging
from fastapi import APIRouter, HTTPException
from ..models.schemas import HealthResponse
from ..services.container import container

router = APIRouter()
log = logging.getLogger("contacts_search.routes")


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Service status and the contacts/facts indexes currently reachable"""
    try:
        return await container.health_service.get_health_status()
    except Exception as e:
        log.error("health check failed: %s", e)
        raise HTTPException(status_code=500, detail=f"Health check error: {str(e)}")


@router.get("/health/detailed")
async def detailed_health_check():
    """
    Status with index statistics and the search defaults in use.

    Sections:
    - elasticsearch: url, reachable indexes, document count and size per index
    - configuration: paging, facet and geohash settings
    - api: title and version
    """
    try:
        return await container.health_service.get_detailed_status()
    except Exception as e:
        log.error("detailed health check failed: %s", e)
        raise HTTPException(status_code=500, detail=f"Detailed health check error: {str(e)}")
