"""Extension points for token grants and authorization response types."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from turnstile.models.clients import Client
from turnstile.models.requests import AccessTokenRequest, AuthorizationRequest
from turnstile.models.tokens import AccessTokenResponse


@runtime_checkable
class Grant(Protocol):
    """Exchanges credentials for tokens at the token endpoint."""

    @property
    def grant_type(self) -> str:
        """The ``grant_type`` value this grant handles."""
        ...

    async def token(self, request: AccessTokenRequest) -> AccessTokenResponse:
        """Respond to an access token request.

        Raise ``OAuthError`` to send a specific error to the client. Any other
        exception becomes a ``server_error`` without a description.
        """
        ...


@runtime_checkable
class AuthorizationHandler(Protocol):
    """Handles one ``response_type`` at the authorization endpoint.

    Grants may implement this as well, for example an authorization code grant
    doubles as the ``code`` handler.
    """

    @property
    def response_type(self) -> str: ...

    async def validate_authorization_request(
        self, client: Client, request: AuthorizationRequest
    ) -> None:
        """Validate the parts of the request this response type cares about.

        Raise ``OAuthError`` to reject the request; any other exception
        becomes a ``server_error``.
        """
        ...
