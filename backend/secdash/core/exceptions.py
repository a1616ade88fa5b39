# backend/secdash/core/exceptions.py


class SecDashError(Exception):
    """Base class for application errors"""


class InputRejectedError(SecDashError):
    """The whole upload is unusable and was rejected before row processing."""


class RowError(SecDashError):
    """A single row could not be normalized; the import continues."""


class FeedFetchError(SecDashError):
    """An RSS feed answered with a non-2xx status."""
