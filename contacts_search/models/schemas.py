from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field


class Point(BaseModel):
    lat: float
    lng: float


class SearchRequest(BaseModel):
    query: str = ""
    fields: List[str] = []
    polygon: List[Point] = []
    filter: str = ""


class PivotRequest(SearchRequest):
    dimensions: List[str] = Field(..., min_length=1)


class Address(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)

    id: Optional[int] = None
    housenumber: Optional[str] = None
    street: Optional[str] = None
    postalcode: Optional[str] = None
    city: Optional[str] = None
    polling_station: Optional[str] = Field(None, alias="PollingStation")
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    location: Optional[Any] = None


class Contact(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: Optional[int] = None
    firstname: Optional[str] = None
    surname: Optional[str] = None
    married_name: Optional[str] = None
    gender: Optional[str] = None
    birthdate: Optional[str] = None
    age_category: Optional[int] = None
    mail: Optional[str] = None
    phone: Optional[str] = None
    mobile: Optional[str] = None
    lastchange: Optional[str] = None
    address: Optional[Address] = None
    formdatas: List[Dict[str, Any]] = []


class AddressAggReply(BaseModel):
    contacts: List[Contact] = []


class KpiReply(BaseModel):
    key: str
    doc_count: int


class KpiAggs(BaseModel):
    kpi_replies: List[KpiReply] = []


class GeoCluster(BaseModel):
    key: str
    doc_count: int
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class SearchReply(BaseModel):
    total: int = 0
    contacts: List[Contact] = []
    address_aggs: List[AddressAggReply] = []
    ids: List[int] = []


class KpiResponse(BaseModel):
    kpi: List[KpiAggs] = []


class GeoClusterResponse(BaseModel):
    total: int = 0
    clusters: List[GeoCluster] = []


class PivotResponse(BaseModel):
    dimensions: List[str]
    interval: Optional[str] = None
    rows: List[List[str]] = []


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    indexes_available: List[str]
