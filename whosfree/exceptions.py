"""Exception hierarchy for whosfree.

Malformed events inside a calendar feed are never raised; they are skipped
by the normalizer. The types below cover whole-request failures that the
HTTP layer maps onto status codes.
"""


class WhosFreeError(Exception):
    """Base exception for all whosfree errors."""


class ICSParseError(WhosFreeError):
    """Calendar content is not an iCalendar document.

    Should result in HTTP 400 Bad Request response.
    """


class ICSContentTooLargeError(ICSParseError):
    """Calendar content exceeds the configured size limit.

    Should result in HTTP 413 Payload Too Large response.
    """


class TimeParameterError(WhosFreeError):
    """The ``time`` query parameter is not H:MM, HH:MM or HH:MM:SS.

    Should result in HTTP 400 Bad Request response.
    """


class AuthenticationError(WhosFreeError):
    """No authenticated user id accompanied the request.

    Should result in HTTP 401 Unauthorized response.
    """


class GroupAccessError(WhosFreeError):
    """The requesting user is not a member of the queried group.

    Should result in HTTP 403 Forbidden response.
    """


class DataAccessError(WhosFreeError):
    """A read or write against the persistence layer failed.

    The message names the operation that failed, e.g. "Failed to load busy
    blocks". Should result in HTTP 500 Internal Server Error response.
    """
