"""Exception types raised by the read layer."""

from typing import Optional


class FolioError(Exception):
    """Base class for folio errors."""


class SchemaIntrospectionError(FolioError):
    """Catalog introspection failed (connectivity, permissions, unsupported dialect)."""


class QueryExecutionError(FolioError):
    """A content query failed at the driver level.

    The message is safe to log; callers on the admin surface must not hand it
    to end users verbatim.
    """

    def __init__(self, message: str, caller: Optional[str] = None):
        super().__init__(message)
        self.caller = caller
