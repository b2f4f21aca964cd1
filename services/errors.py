# -*- coding: utf-8 -*-


class ServiceError(Exception):
    """An operation failed; the message is safe to show to a user or remote client."""


class ModelUnavailableError(ServiceError):
    """The shared timer model could not be acquired in time."""


class StorageError(ServiceError):
    """Persisting or reading the SQLite store failed."""
