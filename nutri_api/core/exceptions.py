from typing import Any, Optional


class ServiceError(Exception):
    """Generic service-layer error to avoid leaking provider details."""
    status_code: int = 500

    def __init__(self, message: str, *, detail: Any = None, cause: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.cause = cause


class ConfigurationError(ServiceError):
    """Supabase credentials are missing from the environment."""


class UpstreamError(ServiceError):
    """Raw failure reported by a Supabase API; `status` is the provider's status/code, if any."""

    def __init__(self, message: str, *, status: Optional[Any] = None, detail: Any = None, cause: Exception | None = None):
        super().__init__(message, detail=detail, cause=cause)
        self.status = status


class IdentityProviderError(UpstreamError):
    pass


class DatabaseError(UpstreamError):
    pass


class ValidationError(ServiceError):
    """Missing or malformed input; raised before any remote call."""
    status_code = 400


class IdentityCreationError(ServiceError):
    """The identity provider rejected the new user or returned no id."""


class ReferenceDataError(ServiceError):
    """A preference/role code did not resolve to a row. The identity already exists by then."""
    status_code = 400

    def __init__(
        self,
        message: str,
        *,
        table: str,
        code: str,
        identity_id: Optional[str] = None,
        detail: Any = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, detail=detail, cause=cause)
        self.table = table
        self.code = code
        self.identity_id = identity_id


class ProfileUpsertError(ServiceError):
    """
    The identity exists but its profile row could not be written.
    Nothing is rolled back: the orphaned identity id is reported to the caller.
    """

    def __init__(self, message: str, *, identity_id: str, detail: Any = None, cause: Exception | None = None):
        super().__init__(message, detail=detail, cause=cause)
        self.identity_id = identity_id


class AuthError(ServiceError):
    """Login failure. `detail` holds the raw provider message, `code` its status."""
    status_code = 401

    def __init__(self, message: str, *, detail: Any = None, code: Optional[Any] = None, cause: Exception | None = None):
        super().__init__(message, detail=detail, cause=cause)
        self.code = code


class InvalidCredentials(AuthError):
    pass


class EmailNotConfirmed(AuthError):
    pass


class UserNotFound(AuthError):
    pass


class GenericAuthFailure(AuthError):
    pass


class SessionCreationError(AuthError):
    """Sign-in reported success but the session or the user was missing."""


class EmailLookupError(ServiceError):
    """The provider failed while looking a user up by email."""


class UpstreamTimeout(ServiceError):
    status_code = 504
