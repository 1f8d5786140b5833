"""Exceptions raised by the generator, the queue clients and the table services"""
from typing import Union


class WaterLevelException(Exception):
    """Base class of every exception raised by this package."""

    def __init__(self, message: Union[str, None] = None):
        super().__init__(message)
        self.message = message


class InvalidArgumentException(WaterLevelException, ValueError):
    """An argument is outside of the accepted domain (e.g. a negative duration)."""


class ConfigurationException(WaterLevelException):
    """The service configuration is missing or inconsistent."""


class QueueException(WaterLevelException):
    """The message queue rejected an operation."""


class StorageException(WaterLevelException):
    """The table store rejected an operation."""

    def __init__(self, message: Union[str, None] = None, status_code: Union[int, None] = None):
        super().__init__(message)
        self.status_code = status_code


class TableNotFoundException(StorageException):
    """The table does not exist."""


class TableAlreadyExistsException(StorageException):
    """The table is already present."""


class EntityNotFoundException(StorageException):
    """No entity with the given PartitionKey/RowKey."""


class EntityAlreadyExistsException(StorageException):
    """An entity with the same PartitionKey/RowKey is already stored."""


class PreconditionFailedException(StorageException):
    """The supplied etag does not match the stored entity."""


class BatchException(StorageException):
    """A batch is malformed or one of its operations failed."""
