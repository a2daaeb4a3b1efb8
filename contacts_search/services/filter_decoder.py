"""Decoding of the positional ``fields`` protocol.

``fields`` is sent by the clients as a flat list of strings::

    0  group id (mandatory)        6  age categories, "0" = unknown age
    1  search mode                 7  sort field
    2  page size                   8  ascending flag
    3  page offset                 9  last change lower bound
    4  genders                     10 email presence ("SET" or not)
    5  polling stations, "missing" 11.. one custom form filter per token

Multi-valued tokens are slash separated. A token that is absent or empty means
"no filter". Only tokens that are present and malformed raise ``DecodeError``.
"""
import logging
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from ..config.settings import settings
from ..models.errors import DecodeError, UnsupportedValue, NO_GROUP_ID
from ..models.filters import (
    EmailFilter,
    FormFilter,
    FormKind,
    FormPresenceFilter,
    FormRangeFilter,
    FormReferenceFilter,
    FormValueFilter,
    SearchFilters,
)

log = logging.getLogger("contacts_search.decoder")

GROUP_ID = 0
MODE = 1
PAGE_SIZE = 2
PAGE_OFFSET = 3
GENDER = 4
POLLING_STATION = 5
AGE_CATEGORY = 6
SORT_FIELD = 7
SORT_ASCENDING = 8
LASTCHANGE = 9
EMAIL = 10
FIRST_FORM = 11

POLLING_STATION_MISSING = "missing"
AGE_CATEGORY_UNKNOWN = "0"
AGE_CATEGORIES = range(1, 7)
EMAIL_SET = "SET"

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


def token(fields: Sequence[str], index: int) -> str:
    """Return ``fields[index]`` or an empty string when the list is too short"""
    if len(fields) > index:
        return fields[index]
    return ""


def parse_bool(value: str) -> bool:
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"invalid boolean {value!r}")


def parse_int(value: str, default: int) -> int:
    """Lenient integer parsing used for paging tokens"""
    try:
        return int(value)
    except ValueError:
        return default


def split_set(value: str) -> List[str]:
    return value.split("/")


def decode_fields(fields: Sequence[str]) -> SearchFilters:
    """Decode a full ``fields`` array into a ``SearchFilters``"""
    if not fields or fields[GROUP_ID] == "":
        raise DecodeError(NO_GROUP_ID)
    try:
        group_id = int(fields[GROUP_ID])
    except ValueError:
        raise DecodeError(f"group_id must be an integer, got {fields[GROUP_ID]!r}")

    mode = token(fields, MODE)

    page_size = settings.default_page_size
    page_offset = settings.default_page_offset
    if len(fields) > PAGE_SIZE:
        page_size = parse_int(fields[PAGE_SIZE], settings.default_page_size)
        if len(fields) > PAGE_OFFSET:
            page_offset = parse_int(fields[PAGE_OFFSET], settings.default_page_offset)
    # mobile clients <= 0.1.4 send a stray 4th token on address searches
    if mode == "address" and len(fields) == 4:
        page_offset = 0

    sort_field = settings.default_sort_field
    sort_ascending = True
    if len(fields) > SORT_ASCENDING and fields[SORT_FIELD] != "":
        sort_field = fields[SORT_FIELD]
        try:
            sort_ascending = parse_bool(fields[SORT_ASCENDING])
        except ValueError:
            log.debug("unparseable sort direction %r, sorting ascending", fields[SORT_ASCENDING])

    genders: Tuple[str, ...] = ()
    if token(fields, GENDER):
        genders = tuple(split_set(fields[GENDER]))

    polling_stations, polling_station_missing = _decode_polling_stations(token(fields, POLLING_STATION))
    age_categories, age_unknown = _decode_age_categories(token(fields, AGE_CATEGORY))

    lastchange_from = token(fields, LASTCHANGE) or None

    email = None
    email_token = token(fields, EMAIL)
    if email_token:
        parts = split_set(email_token)
        # several values mean "with or without an email": no filter
        if len(parts) == 1:
            email = EmailFilter.SET if parts[0] == EMAIL_SET else EmailFilter.UNSET

    form_filters = tuple(
        decode_form_filter(raw) for raw in fields[FIRST_FORM:] if raw != ""
    )

    return SearchFilters(
        group_id=group_id,
        mode=mode,
        page_size=page_size,
        page_offset=page_offset,
        sort_field=sort_field,
        sort_ascending=sort_ascending,
        genders=genders,
        polling_stations=polling_stations,
        polling_station_missing=polling_station_missing,
        age_categories=age_categories,
        age_unknown=age_unknown,
        lastchange_from=lastchange_from,
        email=email,
        form_filters=form_filters,
    )


def _decode_polling_stations(value: str) -> Tuple[Tuple[str, ...], bool]:
    if not value:
        return (), False
    stations = split_set(value)
    missing = POLLING_STATION_MISSING in stations
    if missing:
        stations = [s for s in stations if s != POLLING_STATION_MISSING]
    return tuple(stations), missing


def _decode_age_categories(value: str) -> Tuple[Tuple[int, ...], bool]:
    if not value:
        return (), False
    codes = split_set(value)
    unknown = AGE_CATEGORY_UNKNOWN in codes
    categories = []
    for code in codes:
        if code == AGE_CATEGORY_UNKNOWN:
            continue
        try:
            category = int(code)
        except ValueError:
            raise UnsupportedValue(f"wrong age_category parameter {code!r}")
        if category not in AGE_CATEGORIES:
            raise UnsupportedValue(f"wrong age_category parameter {code!r}")
        categories.append(category)
    return tuple(categories), unknown


def _form_error(raw: str, step: int) -> DecodeError:
    return DecodeError(f"Contact support (bad arguments in the filtering of forms)-{step}: {raw!r}")


def _parse_rfc3339_millis(value: str) -> int:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp without offset {value!r}")
    return int(parsed.timestamp()) * 1000


def _decode_form_value(kind: FormKind, value: str, raw: str):
    if kind == FormKind.DATE:
        try:
            return _parse_rfc3339_millis(value)
        except ValueError:
            raise _form_error(raw, 3)
    if kind == FormKind.RANGE:
        try:
            return int(value)
        except ValueError:
            raise _form_error(raw, 4)
    return value


def decode_form_filter(raw: str) -> FormFilter:
    """Decode one ``KIND/formID/exists[/refID[/value[/high]]]`` token"""
    parts = split_set(raw)
    if len(parts) not in (3, 4, 5, 6):
        raise DecodeError(f"form filter must have 3 to 6 parts, got {len(parts)}: {raw!r}")

    try:
        kind = FormKind(parts[0])
    except ValueError:
        raise UnsupportedValue(f"unknown form filter kind {parts[0]!r}")
    try:
        form_id = int(parts[1])
    except ValueError:
        raise _form_error(raw, 1)
    try:
        must_exist = parse_bool(parts[2])
    except ValueError:
        raise _form_error(raw, 2)

    if len(parts) == 3:
        return FormPresenceFilter(kind=kind, form_id=form_id, must_exist=must_exist)

    try:
        form_ref_id = int(parts[3])
    except ValueError:
        raise _form_error(raw, 1)
    if len(parts) == 4:
        return FormReferenceFilter(kind=kind, form_id=form_id, must_exist=must_exist, form_ref_id=form_ref_id)

    value = _decode_form_value(kind, parts[4], raw)
    if len(parts) == 5:
        return FormValueFilter(
            kind=kind, form_id=form_id, must_exist=must_exist, form_ref_id=form_ref_id, value=value
        )

    if kind not in (FormKind.DATE, FormKind.RANGE):
        raise UnsupportedValue(f"{kind.value} form filters do not take a range: {raw!r}")
    return FormRangeFilter(
        kind=kind,
        form_id=form_id,
        must_exist=must_exist,
        form_ref_id=form_ref_id,
        value=value,
        range_high=_decode_form_value(kind, parts[5], raw),
    )


def decode_address_sizes(fields: Sequence[str]) -> Tuple[int, int]:
    """Contacts per address and number of addresses for address aggregations.

    Both are only read when exactly four tokens are sent.
    """
    default = settings.default_page_size
    if len(fields) != 4:
        return default, default
    return parse_int(fields[PAGE_SIZE], default), parse_int(fields[PAGE_OFFSET], default)


def decode_geoloc_size(fields: Sequence[str]) -> int:
    default = settings.default_page_size
    if len(fields) not in (3, 4):
        return default
    return parse_int(fields[PAGE_SIZE], default)


def decode_geopoint(query: str) -> Tuple[float, float]:
    """Parse a ``"lat,lng"`` query"""
    parts = query.split(",")
    if len(parts) != 2:
        raise DecodeError(f"expected 'lat,lng', got {query!r}")
    try:
        return float(parts[0]), float(parts[1])
    except ValueError:
        raise DecodeError(f"expected 'lat,lng', got {query!r}")


def decode_distance(fields: Sequence[str], index: int) -> Optional[str]:
    """Optional radius token for geolocated searches, e.g. ``"2km"``"""
    return token(fields, index) or None
