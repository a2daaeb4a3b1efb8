import logging
from typing import List
from ..config.settings import settings
from ..models.schemas import Contact, GeoClusterResponse, Point, SearchReply, SearchRequest
from .aggregation_builder import (
    ADDRESS_AGG,
    ADDRESS_HITS_AGG,
    GEODISTANCE_AGG,
    GEO_GRID_AGG,
    GEO_LAT_AGG,
    GEO_LNG_AGG,
    address_aggregations,
    geo_grid_aggregations,
    geodistance_aggregations,
)
from .elasticsearch_service import ElasticsearchService, sort_spec
from .filter_decoder import (
    PAGE_OFFSET,
    decode_address_sizes,
    decode_distance,
    decode_fields,
    decode_geoloc_size,
    decode_geopoint,
)
from .normalizer import extract_address_aggs, extract_geo_clusters, extract_top_hits
from .query_compiler import address_query, compile_query
from .query_dsl import Bool, GeoDistance, GeoPolygon, MatchAll, Term

log = logging.getLogger("contacts_search.search")

CONTACT_SOURCE = (
    "id",
    "firstname",
    "surname",
    "married_name",
    "address.street",
    "address.housenumber",
    "address.city",
    "address.latitude",
    "address.longitude",
    "gender",
    "birthdate",
    "phone",
    "mobile",
    "mail",
    "lastchange",
    "formdatas",
)

ADDRESS_SOURCE = ("address.street", "address.housenumber", "address.city")

LIST_SOURCE = (
    "id",
    "firstname",
    "surname",
    "married_name",
    "address.street",
    "address.housenumber",
    "address.city",
)

CONTACT_LOCATION = "address.location"
FACT_LOCATION = "contact.address.location"


def polygon_filter(polygon: List[Point], field: str = CONTACT_LOCATION) -> GeoPolygon:
    return GeoPolygon(field, tuple((point.lat, point.lng) for point in polygon))


def contacts_from_hits(hits) -> List[Contact]:
    return [Contact.model_validate(hit) for hit in hits]


class SearchService:
    """Service class for contact searches"""

    def __init__(self, es_service: ElasticsearchService):
        self.es_service = es_service

    async def search_contacts(self, request: SearchRequest) -> SearchReply:
        """Filtered contact search, grouped by address in ``address`` mode"""
        log.debug("search_contacts query=%r fields=%r polygon=%r", request.query, request.fields, request.polygon)
        filters = decode_fields(request.fields)
        query = compile_query(request.query, filters)
        post_filter = polygon_filter(request.polygon) if request.polygon else None

        if filters.mode == "address":
            log.debug("address aggregation for group %s", filters.group_id)
            aggregations = address_aggregations(filters.page_size, filters.page_size, CONTACT_SOURCE)
            outcome = await self.es_service.search(
                self.es_service.contacts_index,
                query,
                aggregations=aggregations,
                size=0,
                sort=sort_spec(settings.default_sort_field, True),
                source_includes=CONTACT_SOURCE,
                post_filter=post_filter,
            )
        else:
            outcome = await self.es_service.search(
                self.es_service.contacts_index,
                query,
                size=filters.page_size,
                from_=filters.page_offset,
                sort=sort_spec(filters.sort_field, filters.sort_ascending),
                source_includes=CONTACT_SOURCE,
                post_filter=post_filter,
            )

        address_aggs = []
        if outcome.aggregations is not None:
            address_aggs = extract_address_aggs(outcome.aggregations, ADDRESS_AGG, ADDRESS_HITS_AGG)
        return SearchReply(
            total=outcome.total,
            contacts=contacts_from_hits(outcome.hits),
            address_aggs=address_aggs,
        )

    async def search_address_aggs(self, request: SearchRequest) -> SearchReply:
        """Addresses matching the text query, with the contacts living there"""
        filters = decode_fields(request.fields)
        contacts_per_address, addresses = decode_address_sizes(request.fields)

        outcome = await self.es_service.search(
            self.es_service.contacts_index,
            address_query(request.query, filters.group_id),
            aggregations=address_aggregations(contacts_per_address, addresses, ADDRESS_SOURCE),
            size=0,
            sort=sort_spec(settings.default_sort_field, True),
            source_includes=ADDRESS_SOURCE,
        )
        address_aggs = []
        if outcome.aggregations is not None:
            address_aggs = extract_address_aggs(outcome.aggregations, ADDRESS_AGG, ADDRESS_HITS_AGG)
        return SearchReply(total=outcome.total, address_aggs=address_aggs)

    async def search_contacts_geoloc(self, request: SearchRequest) -> SearchReply:
        """Contacts of the group sorted by distance to the ``"lat,lng"`` query"""
        filters = decode_fields(request.fields)
        lat, lng = decode_geopoint(request.query)
        size = decode_geoloc_size(request.fields)

        query = Bool(must=(Term("group_id", filters.group_id),))
        distance = decode_distance(request.fields, PAGE_OFFSET)
        if distance:
            query = query.with_filter(GeoDistance(CONTACT_LOCATION, lat, lng, distance))

        outcome = await self.es_service.search(
            self.es_service.contacts_index,
            query,
            aggregations=geodistance_aggregations(lat, lng, size * 10, ADDRESS_SOURCE),
            size=0,
        )
        contacts = []
        if outcome.aggregations is not None:
            contacts = extract_top_hits(outcome.aggregations, GEODISTANCE_AGG)
        return SearchReply(total=outcome.total, contacts=contacts)

    async def search_ids_via_geopolygon(self, request: SearchRequest) -> SearchReply:
        """Ids of the contacts with a fact recorded inside the polygon"""
        query = Bool(must=(MatchAll(),), filter=(polygon_filter(request.polygon, FACT_LOCATION),))
        if request.filter:
            query = query.with_filter(Term("status", request.filter))

        outcome = await self.es_service.search(
            self.es_service.facts_index,
            query,
            size=settings.max_result_window,
            source_includes=("contact_id",),
        )
        return SearchReply(
            total=outcome.total,
            ids=[hit["contact_id"] for hit in outcome.hits if "contact_id" in hit],
        )

    async def retrieve_contacts(self, request: SearchRequest) -> SearchReply:
        """Every contact of the group, sorted by surname"""
        filters = decode_fields(request.fields)
        outcome = await self.es_service.search(
            self.es_service.contacts_index,
            Bool(must=(MatchAll(), Term("group_id", filters.group_id))),
            size=settings.max_result_window,
            sort=sort_spec(settings.default_sort_field, True),
            source_includes=LIST_SOURCE,
        )
        return SearchReply(total=outcome.total, contacts=contacts_from_hits(outcome.hits))

    async def geo_clusters(self, request: SearchRequest) -> GeoClusterResponse:
        """Matching contacts grouped per geohash cell for map display"""
        filters = decode_fields(request.fields)
        query = compile_query(request.query, filters)
        if request.polygon:
            query = query.with_filter(polygon_filter(request.polygon))

        outcome = await self.es_service.search(
            self.es_service.contacts_index,
            query,
            aggregations=geo_grid_aggregations(size=filters.page_size),
            size=0,
        )
        if outcome.aggregations is None:
            return GeoClusterResponse(total=outcome.total)
        return GeoClusterResponse(
            total=outcome.total,
            clusters=extract_geo_clusters(outcome.aggregations, GEO_GRID_AGG, GEO_LAT_AGG, GEO_LNG_AGG),
        )
