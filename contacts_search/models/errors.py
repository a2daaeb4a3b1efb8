"""Error kinds raised while turning a search request into a reply.

Engine failures are not wrapped here: whatever the elasticsearch client raises
reaches the caller unchanged.
"""


class SearchRequestError(Exception):
    """Base class for errors caused by the request itself"""


class DecodeError(SearchRequestError):
    """A provided filter token is malformed"""


class UnsupportedValue(SearchRequestError):
    """A well-formed token carries a value the service does not handle"""


class PartialAggregationMissing(Exception):
    """An expected named aggregation is absent from the engine response"""

    def __init__(self, name: str):
        super().__init__(f"we should have an aggregation called {name!r}")
        self.name = name


NO_GROUP_ID = "No group_id specified as first field parameter"
