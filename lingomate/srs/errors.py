"""Errors raised by the review scheduling core and its storage boundary."""


class ReviewError(Exception):
    """Base class for errors surfaced to API and CLI callers."""

    status_code = 500


class InvalidRating(ReviewError):
    status_code = 400


class InvalidLimit(ReviewError):
    status_code = 400


class InvalidWord(ReviewError):
    status_code = 400


class NotFound(ReviewError):
    status_code = 404


class StorageFailure(ReviewError):
    """A read or write against the review store failed."""

    status_code = 503


class ConcurrentReviewError(StorageFailure):
    """The stored state changed since it was loaded; the update was not applied."""

    status_code = 409


class CapabilityDenied(ReviewError):
    status_code = 403
