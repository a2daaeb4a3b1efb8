import logging
from fastapi import APIRouter, HTTPException
from ..models.errors import SearchRequestError
from ..models.schemas import KpiResponse, PivotRequest, PivotResponse, SearchRequest
from ..services.container import container

router = APIRouter()
log = logging.getLogger("contacts_search.routes")


@router.post("/contacts/kpi", response_model=KpiResponse)
async def kpi_contacts(request: SearchRequest):
    """
    KPI blocks for the contacts matching the request.

    Blocks, in order:
    - total number of matches
    - gender counts
    - polling station counts
    - age category counts (0 = unknown)
    - weekly last change histogram
    - contacts without email
    - contacts without phone
    """
    try:
        return KpiResponse(kpi=await container.kpi_service.kpi_contacts(request))
    except SearchRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        log.critical("kpi error: %s", e)
        raise HTTPException(status_code=500, detail=f"KPI error: {str(e)}")


@router.post("/contacts/forms/{form_id}/kpi", response_model=KpiResponse)
async def form_answers_kpi(form_id: int, request: SearchRequest):
    """Answer counts per reference for one custom form"""
    try:
        return KpiResponse(kpi=await container.kpi_service.form_answers(request, form_id))
    except SearchRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        log.critical("form kpi error: %s", e)
        raise HTTPException(status_code=500, detail=f"Form KPI error: {str(e)}")


@router.post("/contacts/pivot", response_model=PivotResponse)
async def pivot_contacts(request: PivotRequest):
    """Matching contacts counted over the requested dimensions, one row per combination"""
    try:
        return await container.analytics_service.pivot_contacts(request)
    except SearchRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        log.critical("pivot error: %s", e)
        raise HTTPException(status_code=500, detail=f"Pivot error: {str(e)}")
