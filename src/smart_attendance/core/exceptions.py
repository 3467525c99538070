class DomainError(Exception):
    """Base exception for business rule violations."""

    kind = "domain_error"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    kind = "invalid_argument"


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""

    kind = "not_found"


class AuthenticationError(DomainError):
    """Raised when credentials or tokens are invalid."""

    kind = "unauthenticated"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    kind = "forbidden"


class ConflictError(DomainError):
    """Raised on uniqueness violations and on requests that were already decided."""

    kind = "conflict"


class UnavailableError(DomainError):
    """Raised when the backing store is not ready."""

    kind = "unavailable"


class StoreMissingError(DomainError):
    """Raised by adapters when a table/collection is not provisioned yet."""

    kind = "store_missing"
