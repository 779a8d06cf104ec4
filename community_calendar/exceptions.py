"""Domain exceptions shared by the sync pipeline, the moderation workflow and the API."""


class CalendarError(Exception):
    """Base class for all application errors."""


class ConfigurationError(CalendarError):
    """Required credentials or configuration are missing."""


class EventDateError(CalendarError):
    """An extracted event cannot be turned into a concrete start instant."""


class MissingEventDateError(EventDateError):
    """The extracted event carries no start day."""


class InvalidEventDateError(EventDateError):
    """The extracted date fields do not form a valid calendar date."""


class DocumentStoreError(CalendarError):
    """The key-document store could not be read or written."""


class DocumentNotFoundError(DocumentStoreError):
    """The requested document does not exist."""


class DocumentConflictError(DocumentStoreError):
    """The document changed since it was read; the write was refused."""


class SubmissionValidationError(CalendarError):
    """A calendar submission is missing required fields or is malformed."""


class NoMatchingSubmissionsError(CalendarError):
    """None of the requested submission ids exist in the pending list."""
