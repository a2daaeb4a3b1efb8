import pytest

from contacts_search.models.errors import DecodeError, UnsupportedValue
from contacts_search.models.filters import (
    EmailFilter,
    FormKind,
    FormPresenceFilter,
    FormRangeFilter,
    FormReferenceFilter,
    FormValueFilter,
)
from contacts_search.services.filter_decoder import (
    decode_address_sizes,
    decode_fields,
    decode_form_filter,
    decode_geoloc_size,
    decode_geopoint,
    parse_bool,
)


def test_group_id_only_uses_defaults():
    filters = decode_fields(["42"])
    assert filters.group_id == 42
    assert filters.mode == ""
    assert filters.page_size == 1000
    assert filters.page_offset == 0
    assert filters.sort_field == "surname"
    assert filters.sort_ascending is True
    assert filters.genders == ()
    assert filters.form_filters == ()
    assert filters.email is None
    assert not filters.has_age_filter


def test_missing_group_id_is_a_decode_error():
    with pytest.raises(DecodeError):
        decode_fields([])
    with pytest.raises(DecodeError):
        decode_fields(["", "all"])
    with pytest.raises(DecodeError):
        decode_fields(["abc", "all"])


def test_full_vector():
    filters = decode_fields(
        ["42", "fullname", "50", "10", "F/M", "12/missing", "0/1/3", "firstname", "false",
         "2016-01-01", "SET", "RADIO/7/true/70"]
    )
    assert filters.mode == "fullname"
    assert (filters.page_size, filters.page_offset) == (50, 10)
    assert filters.genders == ("F", "M")
    assert filters.polling_stations == ("12",)
    assert filters.polling_station_missing is True
    assert filters.age_categories == (1, 3)
    assert filters.age_unknown is True
    assert filters.sort_field == "firstname"
    assert filters.sort_ascending is False
    assert filters.lastchange_from == "2016-01-01"
    assert filters.email == EmailFilter.SET
    assert filters.form_filters == (
        FormReferenceFilter(kind=FormKind.RADIO, form_id=7, must_exist=True, form_ref_id=70),
    )


def test_unparseable_paging_falls_back_to_defaults():
    filters = decode_fields(["42", "all", "lots", "first"])
    assert filters.page_size == 1000
    assert filters.page_offset == 0


def test_sort_direction_defaults_to_ascending_when_unparseable():
    filters = decode_fields(["42", "all", "10", "0", "", "", "", "city", "maybe"])
    assert filters.sort_field == "city"
    assert filters.sort_ascending is True


def test_sort_needs_both_tokens():
    filters = decode_fields(["42", "all", "10", "0", "", "", "", "city"])
    assert filters.sort_field == "surname"


def test_legacy_mobile_address_search_resets_offset():
    filters = decode_fields(["42", "address", "20", "5"])
    assert filters.page_offset == 0
    assert decode_fields(["42", "all", "20", "5"]).page_offset == 5


def test_empty_tokens_mean_no_filter():
    filters = decode_fields(["42", "all", "10", "0", "", "", "", "", "", "", "", ""])
    assert filters.genders == ()
    assert filters.polling_stations == ()
    assert not filters.polling_station_missing
    assert not filters.has_age_filter
    assert filters.lastchange_from is None
    assert filters.email is None
    assert filters.form_filters == ()


def test_polling_station_missing_alone():
    filters = decode_fields(["42", "all", "10", "0", "", "missing"])
    assert filters.polling_stations == ()
    assert filters.polling_station_missing is True


def test_email_filter_values():
    assert decode_fields(["1", "", "", "", "", "", "", "", "", "", "SET"]).email == EmailFilter.SET
    assert decode_fields(["1", "", "", "", "", "", "", "", "", "", "UNSET"]).email == EmailFilter.UNSET
    assert decode_fields(["1", "", "", "", "", "", "", "", "", "", "SET/UNSET"]).email is None


@pytest.mark.parametrize("token", ["7", "1/9", "x"])
def test_age_category_out_of_range(token):
    with pytest.raises(UnsupportedValue):
        decode_fields(["42", "all", "10", "0", "", "", token])


def test_parse_bool_accepts_the_usual_spellings():
    assert parse_bool("t") and parse_bool("TRUE") and parse_bool("1")
    assert not parse_bool("f") and not parse_bool("False") and not parse_bool("0")
    with pytest.raises(ValueError):
        parse_bool("yes")


def test_form_filter_arities():
    assert decode_form_filter("TEXT/123/true") == FormPresenceFilter(kind=FormKind.TEXT, form_id=123, must_exist=True)
    assert decode_form_filter("CHECKBOX/123/false/333") == FormReferenceFilter(
        kind=FormKind.CHECKBOX, form_id=123, must_exist=False, form_ref_id=333
    )
    assert decode_form_filter("TEXT/123/true/666/Bénévole actif") == FormValueFilter(
        kind=FormKind.TEXT, form_id=123, must_exist=True, form_ref_id=666, value="Bénévole actif"
    )
    assert decode_form_filter("RANGE/123/false/645/43/98") == FormRangeFilter(
        kind=FormKind.RANGE, form_id=123, must_exist=False, form_ref_id=645, value=43, range_high=98
    )


def test_form_filter_date_is_epoch_millis():
    spec = decode_form_filter("DATE/123/true/645/2015-12-23T00:00:00+00:00")
    assert spec.value == 1450828800000


@pytest.mark.parametrize("token", [
    "TEXT/123",
    "TEXT/123/true/1/a/b/c",
    "TEXT/abc/true",
    "TEXT/123/perhaps",
    "RADIO/123/true/abc",
    "RANGE/123/true/645/many",
    "DATE/123/true/645/23-12-2015",
    "DATE/123/true/645/2015-12-23T00:00:00",
])
def test_malformed_form_filters(token):
    with pytest.raises(DecodeError):
        decode_form_filter(token)


def test_unknown_form_kind():
    with pytest.raises(UnsupportedValue):
        decode_form_filter("SLIDER/1/true")


def test_form_filters_start_after_email_token():
    fields = ["42", "all", "10", "0", "", "", "", "", "", "", "SET", "RADIO/7/false", "", "TEXT/8/true"]
    filters = decode_fields(fields)
    assert [type(f) for f in filters.form_filters] == [FormPresenceFilter, FormPresenceFilter]
    assert filters.form_filters[0].must_exist is False


def test_malformed_form_filter_aborts_decoding():
    with pytest.raises(DecodeError):
        decode_fields(["42", "all", "10", "0", "", "", "", "", "", "", "", "RADIO/seven/true"])


def test_address_sizes_only_read_with_four_tokens():
    assert decode_address_sizes(["42", "rue", "20", "30"]) == (20, 30)
    assert decode_address_sizes(["42", "rue", "20"]) == (1000, 1000)
    assert decode_address_sizes(["42", "rue", "x", "30"]) == (1000, 30)


def test_geoloc_inputs():
    assert decode_geopoint("44.84,-0.57") == (44.84, -0.57)
    assert decode_geoloc_size(["42", "", "25"]) == 25
    assert decode_geoloc_size(["42"]) == 1000
    with pytest.raises(DecodeError):
        decode_geopoint("44.84")
    with pytest.raises(DecodeError):
        decode_geopoint("north,west")
