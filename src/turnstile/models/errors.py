"""Error model for the OAuth 2.0 authorization server core.

Every failure that can reach a client or resource owner is an ``OAuthError``
carrying an RFC 6749 error code. Diagnostic causes are plain exceptions
chained onto the ``OAuthError`` so callers can test for a specific underlying
failure without the cause's message ever reaching the end user.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterator, Sequence


class ErrorType(str, Enum):
    """OAuth 2.0 error codes (RFC 6749 Sections 4.1.2.1 and 5.2)."""

    INVALID_REQUEST = "invalid_request"
    UNAUTHORIZED_CLIENT = "unauthorized_client"
    INVALID_CLIENT = "invalid_client"
    ACCESS_DENIED = "access_denied"
    UNSUPPORTED_RESPONSE_TYPE = "unsupported_response_type"
    INVALID_SCOPE = "invalid_scope"
    SERVER_ERROR = "server_error"
    TEMPORARILY_UNAVAILABLE = "temporarily_unavailable"
    INVALID_GRANT = "invalid_grant"
    UNSUPPORTED_GRANT_TYPE = "unsupported_grant_type"


class TurnstileError(Exception):
    """Base exception for diagnostic causes raised inside the server core."""

    pass


class InvalidRequestMethodError(TurnstileError):
    """Raised when a request uses the wrong HTTP method for its endpoint."""

    pass


class QueryStringParseError(TurnstileError):
    """Raised when an authorization request query string is malformed."""

    pass


class RequestBodyParseError(TurnstileError):
    """Raised when a token request body cannot be decoded."""

    pass


class MissingGrantTypeError(TurnstileError):
    pass


class MissingClientIDError(TurnstileError):
    pass


class MissingClientSecretError(TurnstileError):
    pass


class MissingResponseTypeError(TurnstileError):
    pass


class ClientNotFoundError(TurnstileError):
    """Raised when the client repository has no client for an identifier."""

    pass


class ClientHasNoRedirectURIsError(TurnstileError):
    """Raised when a client has no registered redirect URIs."""

    pass


class ClientRequiresRedirectURIError(TurnstileError):
    """Raised when a client has several redirect URIs and none was requested.

    RFC 6749 Section 3.1.2.3: with more than one registered redirect URI the
    request MUST include ``redirect_uri``.
    """

    pass


class InvalidRedirectURIError(TurnstileError):
    """Raised when a requested redirect URI is not valid for the client."""

    pass


class UnsupportedCodeChallengeMethodError(TurnstileError):
    """Raised when a PKCE code challenge method is not supported.

    Distinct from a verification mismatch, which is reported as ``False``.
    """

    pass


class OAuthError(Exception):
    """An RFC 6749 error object with an optional diagnostic cause.

    Attributes:
        error_type: The OAuth error code.
        description: Human readable description, safe to show to users.
        uri: Optional URI with more information about the error.
        status_code: Optional HTTP status hint for the transport layer.
        cause: Optional underlying exception, never shown to users.
    """

    def __init__(
        self,
        error_type: ErrorType | str,
        description: str = "",
        *,
        uri: str = "",
        status_code: int | None = None,
        cause: BaseException | None = None,
    ):
        self.error_type = ErrorType(error_type)
        self.description = description
        self.uri = uri
        self.status_code = status_code
        self.cause = cause
        super().__init__(self._render())
        if cause is not None:
            self.__cause__ = cause

    def _render(self) -> str:
        message = self.error_type.value
        if self.description:
            message = f"{message}: {self.description}"
        if self.cause is not None:
            message = f"{message} caused by {self.cause}"
        return message

    def __str__(self) -> str:
        return self._render()

    def __repr__(self) -> str:
        return (
            f"OAuthError(error_type={self.error_type.value!r}, "
            f"description={self.description!r}, cause={self.cause!r})"
        )

    def unwrap(self) -> BaseException | None:
        """Return the directly wrapped cause, if any."""
        return self.cause

    def caused_by(self, target: BaseException | type[BaseException]) -> bool:
        """Check whether ``target`` appears anywhere in this error's chain."""
        return error_matches(self, target)

    def to_dict(self) -> dict[str, str]:
        """Wire shape of the error (RFC 6749 Section 5.2)."""
        body = {"error": self.error_type.value}
        if self.description:
            body["error_description"] = self.description
        if self.uri:
            body["error_uri"] = self.uri
        return body


def iter_error_chain(error: BaseException | None) -> Iterator[BaseException]:
    """Yield ``error`` followed by each of its causes, outermost first."""
    seen: set[int] = set()
    while error is not None and id(error) not in seen:
        seen.add(id(error))
        yield error
        if isinstance(error, OAuthError):
            error = error.cause
        else:
            error = error.__cause__


def error_matches(
    error: BaseException | None, target: BaseException | type[BaseException]
) -> bool:
    """Check whether ``target`` is in the cause chain of ``error``.

    Exception classes match with ``isinstance``; exception instances match by
    identity.
    """
    for link in iter_error_chain(error):
        if isinstance(target, type):
            if isinstance(link, target):
                return True
        elif link is target:
            return True
    return False


def as_oauth_error(error: BaseException | None) -> OAuthError | None:
    """Return the first ``OAuthError`` in the cause chain of ``error``."""
    for link in iter_error_chain(error):
        if isinstance(link, OAuthError):
            return link
    return None


def maybe_wrap_error(cause: BaseException | None) -> OAuthError | None:
    """Normalize any failure into an ``OAuthError``.

    ``None`` stays ``None``, typed errors are returned unchanged and anything
    else becomes a ``server_error`` that keeps the error as its cause.
    """
    if cause is None:
        return None

    oauth_error = as_oauth_error(cause)
    if oauth_error is not None:
        return oauth_error

    return server_error(cause)


def invalid_request(description: str, cause: BaseException | None = None) -> OAuthError:
    return OAuthError(ErrorType.INVALID_REQUEST, description, cause=cause)


def missing_request_parameter(
    param_name: str, cause: BaseException | None = None
) -> OAuthError:
    return invalid_request(f"request is missing the {param_name} parameter", cause)


def invalid_client(description: str, cause: BaseException | None = None) -> OAuthError:
    return OAuthError(ErrorType.INVALID_CLIENT, description, cause=cause)


def invalid_grant(description: str, cause: BaseException | None = None) -> OAuthError:
    return OAuthError(ErrorType.INVALID_GRANT, description, cause=cause)


def server_error(cause: BaseException | None) -> OAuthError:
    # No description: the cause must not leak to the caller
    return OAuthError(ErrorType.SERVER_ERROR, cause=cause)


def invalid_scope(invalid_scopes: Sequence[str]) -> OAuthError:
    return OAuthError(
        ErrorType.INVALID_SCOPE, f"invalid scopes: {' '.join(invalid_scopes)}"
    )


def unsupported_response_type(invalid_types: Sequence[str]) -> OAuthError:
    return OAuthError(
        ErrorType.UNSUPPORTED_RESPONSE_TYPE,
        f"unsupported response types: {' '.join(invalid_types)}",
    )


def unsupported_grant_type(grant_type: str) -> OAuthError:
    return OAuthError(
        ErrorType.UNSUPPORTED_GRANT_TYPE,
        f"the {grant_type} grant type is not supported",
    )


def unauthorized_client(reason: str) -> OAuthError:
    return OAuthError(ErrorType.UNAUTHORIZED_CLIENT, reason)


def access_denied(reason: str) -> OAuthError:
    return OAuthError(ErrorType.ACCESS_DENIED, reason)
