import asyncio

import pytest
from elasticsearch import ConnectionError as ESConnectionError

from contacts_search.models.errors import DecodeError
from contacts_search.models.schemas import SearchRequest
from contacts_search.services.container import container

search = container.search_service

SQUARE = [{"lat": 0, "lng": 0}, {"lat": 0, "lng": 1}, {"lat": 1, "lng": 1}, {"lat": 1, "lng": 0}]


def hits(*sources, total=None):
    return {"hits": {
        "total": {"value": len(sources) if total is None else total},
        "hits": [{"_source": source} for source in sources],
    }}


def test_search_contacts_body(fake_es):
    fake_es.queue(hits({"id": 1, "surname": "Dupont"}, total=12))
    request = SearchRequest(query="dupont", fields=["42", "fullname", "50", "100", "", "", "", "firstname", "false"])
    reply = asyncio.run(search.search_contacts(request))

    assert reply.total == 12
    assert [c.surname for c in reply.contacts] == ["Dupont"]
    index, body = fake_es.calls[0]
    assert index == "contacts"
    assert body["size"] == 50
    assert body["from"] == 100
    assert body["sort"] == [{"firstname": {"order": "desc"}}]
    assert "aggs" not in body
    assert "post_filter" not in body


def test_search_contacts_polygon_is_a_post_filter(fake_es):
    asyncio.run(search.search_contacts(SearchRequest(fields=["42"], polygon=SQUARE)))
    _, body = fake_es.calls[0]
    assert "filter" not in body["query"]["bool"]
    assert len(body["post_filter"]["geo_polygon"]["address.location"]["points"]) == 4


def test_address_mode_groups_by_address(fake_es):
    fake_es.queue({
        "hits": {"total": {"value": 2}, "hits": []},
        "aggregations": {"result_aggreg": {"buckets": [
            {"key": 44.8, "doc_count": 2, "result_subaggreg": {"hits": {"total": {"value": 2}, "hits": [
                {"_source": {"id": 1}}, {"_source": {"id": 2}},
            ]}}},
        ]}},
    })
    reply = asyncio.run(search.search_contacts(SearchRequest(query="rue", fields=["42", "address", "20", "3"])))
    assert [[c.id for c in agg.contacts] for agg in reply.address_aggs] == [[1, 2]]
    _, body = fake_es.calls[0]
    assert body["size"] == 0
    assert body["aggs"]["result_aggreg"]["terms"] == {"field": "address.latitude", "size": 20}
    assert body["aggs"]["result_aggreg"]["aggs"]["result_subaggreg"]["top_hits"]["size"] == 20


def test_address_aggs(fake_es):
    asyncio.run(search.search_address_aggs(SearchRequest(query="Rue Sainte", fields=["42", "", "5", "8"])))
    _, body = fake_es.calls[0]
    assert body["query"]["bool"]["must"][0]["multi_match"]["query"] == "rue sainte"
    assert body["aggs"]["result_aggreg"]["terms"]["size"] == 5
    assert body["aggs"]["result_aggreg"]["aggs"]["result_subaggreg"]["top_hits"]["size"] == 8


def test_geoloc(fake_es):
    fake_es.queue({
        "hits": {"total": {"value": 3}, "hits": []},
        "aggregations": {"aggreg_sortGeodistance": {"hits": {"total": {"value": 3}, "hits": [
            {"_source": {"id": 7}}, {"_source": {"id": 8}},
        ]}}},
    })
    reply = asyncio.run(search.search_contacts_geoloc(SearchRequest(query="44.84,-0.57", fields=["42", "", "2", "5km"])))
    assert [c.id for c in reply.contacts] == [7, 8]
    _, body = fake_es.calls[0]
    top_hits = body["aggs"]["aggreg_sortGeodistance"]["top_hits"]
    assert top_hits["size"] == 20
    assert top_hits["sort"][0]["_geo_distance"]["address.location"] == {"lat": 44.84, "lon": -0.57}
    assert body["query"]["bool"]["filter"] == [
        {"geo_distance": {"distance": "5km", "address.location": {"lat": 44.84, "lon": -0.57}}}
    ]


def test_geoloc_bad_point(fake_es):
    with pytest.raises(DecodeError):
        asyncio.run(search.search_contacts_geoloc(SearchRequest(query="here", fields=["42"])))
    assert fake_es.calls == []


def test_ids_via_geopolygon(fake_es):
    fake_es.queue(hits({"contact_id": 5}, {"contact_id": 9}, {"status": "done"}))
    reply = asyncio.run(search.search_ids_via_geopolygon(SearchRequest(polygon=SQUARE, filter="done")))
    assert reply.ids == [5, 9]
    index, body = fake_es.calls[0]
    assert index == "facts"
    assert body["size"] == 10000
    filters = body["query"]["bool"]["filter"]
    assert "contact.address.location" in filters[0]["geo_polygon"]
    assert filters[1] == {"term": {"status": "done"}}


def test_retrieve_contacts(fake_es):
    fake_es.queue(hits({"id": 1, "surname": "Albert"}, {"id": 2, "surname": "Bernard"}))
    reply = asyncio.run(search.retrieve_contacts(SearchRequest(fields=["42"])))
    assert [c.id for c in reply.contacts] == [1, 2]
    _, body = fake_es.calls[0]
    assert body["query"]["bool"]["must"][1] == {"term": {"group_id": 42}}
    assert body["sort"] == [{"surname": {"order": "asc"}}]


def test_geo_clusters(fake_es):
    fake_es.queue({
        "hits": {"total": {"value": 4}, "hits": []},
        "aggregations": {"geo_grid": {"buckets": [
            {"key": "ezzx4m", "doc_count": 4, "centroid_lat": {"value": 44.8}, "centroid_lng": {"value": -0.5}},
        ]}},
    })
    reply = asyncio.run(search.geo_clusters(SearchRequest(fields=["42", "all", "100"])))
    assert reply.total == 4
    assert [(c.key, c.doc_count) for c in reply.clusters] == [("ezzx4m", 4)]
    _, body = fake_es.calls[0]
    assert body["aggs"]["geo_grid"]["geohash_grid"] == {"field": "address.location", "precision": 6, "size": 100}


def test_engine_errors_propagate_unchanged(fake_es):
    error = ESConnectionError("connection refused")
    fake_es.error = error
    with pytest.raises(ESConnectionError) as excinfo:
        asyncio.run(search.search_contacts(SearchRequest(fields=["42"])))
    assert excinfo.value is error


def test_inner_hits_are_capped_with_default_tokens(fake_es):
    asyncio.run(search.search_contacts_geoloc(SearchRequest(query="44.84,-0.57", fields=["42"])))
    asyncio.run(search.search_address_aggs(SearchRequest(query="rue", fields=["42"])))
    asyncio.run(search.search_contacts(SearchRequest(query="rue", fields=["42", "address"])))
    geoloc, addresses, address_mode = (body for _, body in fake_es.calls)

    assert geoloc["aggs"]["aggreg_sortGeodistance"]["top_hits"]["size"] == 100
    for body in (addresses, address_mode):
        assert body["aggs"]["result_aggreg"]["aggs"]["result_subaggreg"]["top_hits"]["size"] == 100
        assert body["aggs"]["result_aggreg"]["terms"]["size"] == 1000
