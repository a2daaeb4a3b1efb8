import logging
from fastapi import APIRouter, HTTPException
from ..models.errors import SearchRequestError
from ..models.schemas import SearchReply, SearchRequest, GeoClusterResponse
from ..services.container import container

router = APIRouter()
log = logging.getLogger("contacts_search.routes")


@router.post("/contacts/search", response_model=SearchReply)
async def search_contacts(request: SearchRequest):
    """Filtered contact search; ``address`` mode groups the contacts by address"""
    try:
        return await container.search_service.search_contacts(request)
    except SearchRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        log.critical("search error: %s", e)
        raise HTTPException(status_code=500, detail=f"Search error: {str(e)}")


@router.post("/contacts/addresses", response_model=SearchReply)
async def search_addresses(request: SearchRequest):
    """Addresses matching the query, with their contacts"""
    try:
        return await container.search_service.search_address_aggs(request)
    except SearchRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        log.critical("address search error: %s", e)
        raise HTTPException(status_code=500, detail=f"Address search error: {str(e)}")


@router.post("/contacts/geoloc", response_model=SearchReply)
async def search_contacts_geoloc(request: SearchRequest):
    """Contacts sorted by distance to the ``lat,lng`` given as query"""
    try:
        return await container.search_service.search_contacts_geoloc(request)
    except SearchRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        log.critical("geoloc search error: %s", e)
        raise HTTPException(status_code=500, detail=f"Geoloc search error: {str(e)}")


@router.post("/contacts/clusters", response_model=GeoClusterResponse)
async def contact_clusters(request: SearchRequest):
    """Matching contacts per geohash cell, with cell centroids"""
    try:
        return await container.search_service.geo_clusters(request)
    except SearchRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        log.critical("cluster search error: %s", e)
        raise HTTPException(status_code=500, detail=f"Cluster search error: {str(e)}")


@router.post("/contacts/retrieve", response_model=SearchReply)
async def retrieve_contacts(request: SearchRequest):
    """Every contact of the group, sorted by surname"""
    try:
        return await container.search_service.retrieve_contacts(request)
    except SearchRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        log.critical("retrieve error: %s", e)
        raise HTTPException(status_code=500, detail=f"Retrieve error: {str(e)}")


@router.post("/facts/geopolygon", response_model=SearchReply)
async def search_ids_via_geopolygon(request: SearchRequest):
    """Ids of contacts with a fact inside the polygon, optionally with a given status"""
    try:
        return await container.search_service.search_ids_via_geopolygon(request)
    except SearchRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        log.critical("geopolygon search error: %s", e)
        raise HTTPException(status_code=500, detail=f"Geopolygon search error: {str(e)}")
