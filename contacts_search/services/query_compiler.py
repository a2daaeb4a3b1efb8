"""Compile decoded search filters into a boolean query.

Every filter adds a ``must`` clause, except the age filter: each requested age
category adds a ``should`` clause and the outer query then requires at least
one of them.
"""
import logging
from typing import Dict, Optional, Tuple

from ..models.filters import EmailFilter, SearchFilters
from .form_filters import compile_form_filter
from .query_dsl import Bool, Clause, MatchAll, Missing, MultiMatch, Range, Term, Terms, any_of

log = logging.getLogger("contacts_search.compiler")

SEARCH_MODE_FIELDS: Dict[str, Tuple[str, ...]] = {
    "firstname": ("firstname",),
    "name": ("surname", "married_name"),
    "fullname": ("firstname", "surname", "married_name"),
    "street": ("address.street", "address.city"),
    "all": ("surname", "firstname", "married_name", "address.street", "address.city"),
    "city&name": ("address.city", "surname", "married_name"),
    "city&name&street": ("address.city", "surname", "married_name", "address.street"),
    "address": ("address.street", "address.housenumber", "address.city"),
}

ADDRESS_FIELDS = SEARCH_MODE_FIELDS["address"]

POLLING_STATION = "address.PollingStation"
BIRTHDATE = "birthdate"
AGE_CATEGORY = "age_category"

# birthdate range per age category, bounds are inclusive so adjacent
# categories share their boundary day
AGE_CATEGORY_RANGES: Dict[int, Tuple[Optional[str], Optional[str]]] = {
    1: ("now-18y/d", None),
    2: ("now-25y/d", "now-18y/d"),
    3: ("now-35y/d", "now-25y/d"),
    4: ("now-50y/d", "now-35y/d"),
    5: ("now-65y/d", "now-50y/d"),
    6: (None, "now-65y/d"),
}


def text_query(query: str, mode: str) -> Clause:
    if query == "":
        return MatchAll()
    return MultiMatch(query.lower(), SEARCH_MODE_FIELDS.get(mode, ()))


def polling_station_clause(filters: SearchFilters) -> Clause:
    if filters.polling_station_missing:
        # "" is indexed for contacts whose polling station is known to be empty
        return any_of(
            Missing(POLLING_STATION),
            Terms(POLLING_STATION, filters.polling_stations + ("",)),
        )
    return Terms(POLLING_STATION, filters.polling_stations)


def unknown_age_clause() -> Clause:
    # TODO: confirm with the indexing side why two of three are required here
    return Bool(
        should=(Missing(BIRTHDATE), Missing(AGE_CATEGORY), Term(AGE_CATEGORY, "0")),
        minimum_should_match=2,
    )


def age_range_clause(category: int) -> Clause:
    gte, lte = AGE_CATEGORY_RANGES[category]
    return Range(BIRTHDATE, gte=gte, lte=lte)


def email_clause(bq: Bool, email: EmailFilter) -> Bool:
    if email == EmailFilter.SET:
        return bq.with_must_not(Missing("mail"))
    return bq.with_must(Missing("mail"))


def compile_query(query: str, filters: SearchFilters) -> Bool:
    """Build the boolean query for a free text ``query`` and decoded ``filters``"""
    bq = Bool().with_must(text_query(query, filters.mode))

    # tenant boundary, authorization is checked upstream
    bq = bq.with_must(Term("group_id", filters.group_id))

    if filters.genders:
        bq = bq.with_must(Terms("gender", filters.genders))

    if filters.polling_stations or filters.polling_station_missing:
        bq = bq.with_must(polling_station_clause(filters))

    if filters.has_age_filter:
        if filters.age_unknown:
            bq = bq.with_should(unknown_age_clause())
        for category in filters.age_categories:
            bq = bq.with_should(age_range_clause(category))
        if filters.age_categories:
            bq = bq.with_should(Terms(AGE_CATEGORY, tuple(str(c) for c in filters.age_categories)))
        bq = bq.with_minimum_should_match(1)

    if filters.lastchange_from:
        bq = bq.with_must(Range("lastchange", gte=filters.lastchange_from))

    if filters.email is not None:
        bq = email_clause(bq, filters.email)

    for spec in filters.form_filters:
        bq = bq.with_must(compile_form_filter(spec))

    log.debug("compiled query: %s", bq.to_dict())
    return bq


def address_query(query: str, group_id: int) -> Bool:
    """Query used by the address aggregation endpoint"""
    return Bool(must=(MultiMatch(query.lower(), ADDRESS_FIELDS), Term("group_id", group_id)))
