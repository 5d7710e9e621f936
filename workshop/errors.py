# ortoist/workshop/errors.py


class WorkshopError(Exception):
    """Base class for errors surfaced to the user by a workshop action."""


class ValidationError(WorkshopError):
    """A required field is missing or malformed. Nothing was written."""


class NotFoundError(WorkshopError):
    """A referenced job, doctor or user does not exist."""


class StorageError(WorkshopError):
    """The data file could not be read back or written."""
