from enum import Enum
from typing import Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict


class FormKind(str, Enum):
    TEXT = "TEXT"
    RADIO = "RADIO"
    CHECKBOX = "CHECKBOX"
    RANGE = "RANGE"
    DATE = "DATE"


class _FormFilterBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: FormKind
    form_id: int
    must_exist: bool


class FormPresenceFilter(_FormFilterBase):
    """KIND/formID/exists: the form was answered or not"""


class FormReferenceFilter(_FormFilterBase):
    """KIND/formID/exists/refID: a given answer reference (radio or checkbox option)"""

    form_ref_id: int


class FormValueFilter(_FormFilterBase):
    """KIND/formID/exists/refID/value: a single recorded value"""

    form_ref_id: int
    value: Union[int, str]


class FormRangeFilter(_FormFilterBase):
    """KIND/formID/exists/refID/low/high: an inclusive range of values"""

    form_ref_id: int
    value: int
    range_high: int


FormFilter = Union[FormPresenceFilter, FormReferenceFilter, FormValueFilter, FormRangeFilter]


class EmailFilter(str, Enum):
    SET = "SET"
    UNSET = "UNSET"


class SearchFilters(BaseModel):
    """Typed view of the positional ``fields`` array, decoded once per request"""

    model_config = ConfigDict(frozen=True)

    group_id: int
    mode: str = ""
    page_size: int = 1000
    page_offset: int = 0
    sort_field: str = "surname"
    sort_ascending: bool = True
    genders: Tuple[str, ...] = ()
    polling_stations: Tuple[str, ...] = ()
    polling_station_missing: bool = False
    age_categories: Tuple[int, ...] = ()
    age_unknown: bool = False
    lastchange_from: Optional[str] = None
    email: Optional[EmailFilter] = None
    form_filters: Tuple[FormFilter, ...] = ()

    @property
    def has_age_filter(self) -> bool:
        return bool(self.age_categories) or self.age_unknown
