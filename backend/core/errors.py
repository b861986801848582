"""Typed errors shared by the exchange, model and storage layers."""


class ScreenerError(Exception):
    """Base error that keeps the underlying exception around."""

    def __init__(self, message: str, original: Exception | None = None):
        super().__init__(message)
        self.original = original


class RemoteServiceError(ScreenerError):
    """An upstream HTTP service (exchange or model) failed or returned garbage."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        original: Exception | None = None,
    ):
        super().__init__(message, original)
        self.status_code = status_code


class StorageError(ScreenerError):
    """A repository backend failed (connectivity, constraint violation, ...)."""
