"""Registry error taxonomy.

Routes translate these into JSON error payloads; anything else that escapes
a request is an unhandled error and renders the 500 page.
"""


class RegistryError(Exception):
    """Base class for expected registry failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(RegistryError):
    """Malformed input: bad length, disallowed characters, missing field."""


class Conflict(RegistryError):
    """Duplicate domain, or duplicate subdomain under one school."""


class NotFound(RegistryError):
    """Referenced domain or subdomain does not exist."""


class StorageFailure(RegistryError):
    """The database read or write behind the registry failed."""
