"""Clauses for custom form filters.

Answers are stored in the ``formdatas`` nested array, one element per answer::

    {"form_id": 12, "form_ref_id": 645, "data": "...", "data.strictdata": "..."}

Negative filters keep contacts that never answered the reference at all as
well as contacts whose answer does not match.
"""
from typing import List

from ..models.filters import (
    FormFilter,
    FormKind,
    FormPresenceFilter,
    FormRangeFilter,
    FormReferenceFilter,
    FormValueFilter,
)
from .query_dsl import Bool, Clause, Missing, Nested, Range, Term, Terms, any_of

FORMDATAS = "formdatas"
FORM_ID = "formdatas.form_id"
FORM_REF_ID = "formdatas.form_ref_id"
DATA = "formdatas.data"
STRICT_DATA = "formdatas.data.strictdata"

# a DATE answer matches anywhere within its day
DAY_MILLIS = 86399000


def text_terms(value: str) -> List[str]:
    return [word.lower() for word in value.split(" ") if word != ""]


def _presence(field: str, value: int, must_exist: bool) -> Clause:
    if must_exist:
        return Terms(field, (value,))
    return any_of(Missing(FORM_REF_ID), Bool(must_not=(Term(field, value),)))


def _value_match(spec: FormFilter) -> Clause:
    if isinstance(spec, FormRangeFilter):
        return Range(STRICT_DATA, gte=spec.value, lte=spec.range_high)
    if spec.kind == FormKind.DATE:
        return Range(STRICT_DATA, gte=spec.value, lte=spec.value + DAY_MILLIS)
    if spec.kind == FormKind.TEXT:
        return Terms(DATA, tuple(text_terms(spec.value)))
    return Terms(STRICT_DATA, (spec.value,))


def _answer(spec: FormFilter) -> Clause:
    """Answer clause for 5 and 6 part specs, scoped to a single answer element"""
    reference = Term(FORM_REF_ID, spec.form_ref_id)
    match = _value_match(spec)
    if spec.must_exist:
        return Nested(FORMDATAS, Bool(must=(reference, match)))

    mismatching = Nested(
        FORMDATAS,
        any_of(Missing(FORM_REF_ID), Bool(must=(reference,), must_not=(match,))),
    )
    unanswered = Bool(must_not=(reference,))
    return any_of(mismatching, unanswered)


def compile_form_filter(spec: FormFilter) -> Clause:
    if isinstance(spec, FormPresenceFilter):
        return _presence(FORM_ID, spec.form_id, spec.must_exist)
    if isinstance(spec, FormReferenceFilter):
        return _presence(FORM_REF_ID, spec.form_ref_id, spec.must_exist)
    if isinstance(spec, (FormValueFilter, FormRangeFilter)):
        return _answer(spec)
    raise TypeError(f"unsupported form filter {type(spec).__name__}")
