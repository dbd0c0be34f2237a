# scanner/errors.py
"""Scanner exceptions.

All exceptions inherit from ScannerError so callers (the CLI, a scheduler)
can treat any failure of a check as one terminal error for that run.

Example:
    >>> try:
    ...     check.run()
    ... except QueryError as e:
    ...     print(f"API server query failed: {e}")
"""

from typing import Optional


class ScannerError(Exception):
    """Base exception for all scanner errors."""

    pass


class ConfigurationError(ScannerError):
    """Raised when a resource declaration cannot be turned into a check.

    This can indicate:
    - Missing resource kind
    - Missing or unsupported apiRequest verb
    """

    pass


class InvalidRequestError(ScannerError):
    """Raised when a "get" request has no resource name to fetch."""

    pass


class ClusterClientError(ScannerError):
    """Raised by cluster clients for any API server or transport failure."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class QueryError(ScannerError):
    """Raised when the get/list call against the API server failed.

    Carries the resource coordinates so the failing query can be diagnosed;
    the underlying client error is chained as __cause__.
    """

    def __init__(self, message: str, resource: str = "", namespace: str = "", name: str = ""):
        super().__init__(message)
        self.resource = resource
        self.namespace = namespace
        self.name = name


class JSONQueryError(ScannerError):
    """Raised for a malformed query path or a type mismatch while evaluating it."""

    pass


class ExtractionError(ScannerError):
    """Raised when a report field could not be evaluated against a resource."""

    pass


class UnsupportedRuleError(ExtractionError):
    """Raised when a report field names an extraction kind other than jsonquery."""

    pass
