"""Exceptions raised by the matrix query engine."""


class MatrixQueryValidationError(ValueError):
    """The request is malformed or names an unknown location."""


class QueryCancelled(RuntimeError):
    """The caller cancelled the request or its deadline passed mid-scan."""
