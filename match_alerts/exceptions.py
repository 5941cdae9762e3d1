class MatchAlertError(Exception):
    """Base class for errors raised by match-alerts."""


class FetchError(MatchAlertError):
    """The match feed could not be read for this tick."""


class FeedNetworkError(FetchError):
    """Transport failure, timeout or non-2xx response from the feed."""


class FeedParseError(FetchError):
    """The feed answered but the document or one of its records is malformed."""


class DeliveryError(MatchAlertError):
    """No delivery channel accepted the notification."""


class PersistenceError(MatchAlertError):
    """The backing store could not be read or written."""
