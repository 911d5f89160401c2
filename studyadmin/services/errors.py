class ServiceError(RuntimeError):
    """Recoverable service error (validation/store/fetch)."""


class StoreError(ServiceError):
    """Row store unreachable or the operation was rejected."""


class ValidationError(ServiceError):
    """Required form input missing or invalid; raised before any store call."""


class FetchError(ServiceError):
    """An asynchronous list/count/email-resolution fetch failed or timed out."""
