"""Error types raised by the schema service collaborators."""


class SchemaServiceError(Exception):
    """Base exception for schema load/save/export/import failures."""
    pass


class NotFound(SchemaServiceError):
    """The requested schema does not exist or sharing is disabled."""
    pass


class AccessDenied(SchemaServiceError):
    """The caller may not read or write this schema."""
    pass


class Unauthorized(SchemaServiceError):
    """Missing, expired or invalid credentials."""
    pass


class Conflict(SchemaServiceError):
    """The store rejected a write because the stored copy changed underneath it."""
    pass


class NetworkError(SchemaServiceError):
    """Transport failure or unexpected server error. Retryable."""
    pass


class UnsupportedFormat(SchemaServiceError):
    """Export or import format not understood by the service."""
    pass


class ParseError(SchemaServiceError):
    """Structured-text or SQL input could not be turned into a schema."""
    pass
