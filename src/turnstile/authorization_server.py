"""OAuth 2.0 authorization server core.

Validates authorization requests and dispatches token requests to grants.
Rendering consent screens, issuing tokens and storing codes are left to the
application and the grants it registers.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from types import MappingProxyType
from typing import Mapping, Sequence

from starlette.requests import Request

from turnstile.models.clients import Client, client_allows_response_type
from turnstile.models.errors import (
    OAuthError,
    access_denied,
    maybe_wrap_error,
    unauthorized_client,
    unsupported_grant_type,
    unsupported_response_type,
)
from turnstile.models.requests import AuthorizationRequest
from turnstile.models.tokens import AccessTokenResponse
from turnstile.primitives.scopes import ScopeValidator, allow_all_scopes
from turnstile.services.clients import ClientRepository, get_client
from turnstile.services.grants import AuthorizationHandler, Grant
from turnstile.services.parsing import (
    parse_access_token_request,
    parse_authorization_request,
)
from turnstile.services.redirect_uri import resolve_redirect_uri

logger = logging.getLogger(__name__)


class ServerOptions:
    """Builder for the grants, handlers and policies of a server.

    Registration is last-write-wins per ``grant_type`` / ``response_type``.
    ``AuthorizationServer`` copies everything at construction, so changing
    the options afterwards does not affect an existing server.
    """

    def __init__(self) -> None:
        self.grants: dict[str, Grant] = {}
        self.authorization_handlers: dict[str, AuthorizationHandler] = {}
        self.scope_validator: ScopeValidator | None = None

    def with_grant(self, grant: Grant) -> ServerOptions:
        """Register a grant, and its response type if it also handles one."""
        self.grants[grant.grant_type] = grant
        if isinstance(grant, AuthorizationHandler):
            self.authorization_handlers[grant.response_type] = grant
        return self

    def with_authorization_handler(self, handler: AuthorizationHandler) -> ServerOptions:
        self.authorization_handlers[handler.response_type] = handler
        return self

    def with_scope_validator(self, validator: ScopeValidator) -> ServerOptions:
        self.scope_validator = validator
        return self


class AuthorizationServer:
    """Validates authorization requests and routes token requests.

    Both entry points return ``(result, error)`` instead of raising for
    request failures. For authorization requests the returned request is
    None when the failure happened before a redirect URI was trusted; such
    errors must be shown to the resource owner and never redirected.
    """

    def __init__(self, clients: ClientRepository, options: ServerOptions | None = None):
        options = options or ServerOptions()

        self.clients = clients
        self.grants: Mapping[str, Grant] = MappingProxyType(dict(options.grants))
        self.authorization_handlers: Mapping[str, AuthorizationHandler] = (
            MappingProxyType(dict(options.authorization_handlers))
        )
        self.scope_validator = options.scope_validator or allow_all_scopes()

    async def validate_authorization_request(
        self, request: Request
    ) -> tuple[AuthorizationRequest | None, OAuthError | None]:
        """Parse and validate an authorization request.

        Returns:
            Tuple of (authorization_request, error)
            - (request, None): valid, ready for the consent step
            - (request, error): invalid, redirect the error to
              ``request.final_redirect_uri``
            - (None, error): invalid, show the error directly
        """
        try:
            auth_request = parse_authorization_request(request)
            client = await get_client(self.clients, auth_request.client_id)
            final_redirect_uri = resolve_redirect_uri(client, auth_request.redirect_uri)
        except OAuthError as e:
            logger.warning(f"Rejected authorization request before redirect: {e}")
            return None, e

        auth_request = replace(auth_request, final_redirect_uri=final_redirect_uri)

        # From here on the redirect URI is trusted and errors may be redirected
        try:
            self._check_response_types(client, auth_request.response_type)
            await self._check_handlers(client, auth_request)
        except OAuthError as e:
            logger.warning(
                f"Rejected authorization request for client {client.client_id}: {e}"
            )
            return auth_request, e

        logger.info(
            f"Validated authorization request for client {client.client_id} "
            f"redirecting to {final_redirect_uri}"
        )
        return auth_request, None

    def deny_authorization_request(
        self, request: AuthorizationRequest, reason: str
    ) -> OAuthError:
        """Build the error for a request the user or server chose to deny."""
        logger.info(f"Denied authorization request for client {request.client_id}")
        return access_denied(reason)

    async def token(
        self, request: Request
    ) -> tuple[AccessTokenResponse | None, OAuthError | None]:
        """Respond to an access token request by delegating to its grant.

        Returns:
            Tuple of (token_response, error), exactly one of which is set
        """
        try:
            token_request = await parse_access_token_request(request)
        except OAuthError as e:
            logger.warning(f"Rejected token request: {e}")
            return None, e

        grant = self.grants.get(token_request.grant_type)
        if grant is None:
            logger.warning(f"Unsupported grant type {token_request.grant_type!r}")
            return None, unsupported_grant_type(token_request.grant_type)

        try:
            response = await grant.token(token_request)
        except OAuthError as e:
            logger.warning(f"Grant {token_request.grant_type} rejected token request: {e}")
            return None, e
        except Exception as e:
            logger.exception(f"Grant {token_request.grant_type} failed")
            return None, maybe_wrap_error(e)

        if response is None:
            logger.error(f"Grant {token_request.grant_type} returned no token response")
            return None, maybe_wrap_error(
                TypeError(f"grant {token_request.grant_type} returned no token response")
            )

        logger.info(
            f"Issued access token via {token_request.grant_type} "
            f"for client {token_request.client_id or 'unknown'}"
        )
        return response, None

    def _check_response_types(self, client: Client, wanted: Sequence[str]) -> None:
        unsupported = [t for t in wanted if t not in self.authorization_handlers]
        if unsupported:
            raise unsupported_response_type(unsupported)

        if not client_allows_response_type(client, wanted):
            raise unauthorized_client(
                f"client {client.client_id} does not support response type: "
                f"{' '.join(wanted)}"
            )

    async def _check_handlers(self, client: Client, request: AuthorizationRequest) -> None:
        try:
            self.scope_validator.validate_scopes(request.scope)
            for response_type in request.response_type:
                handler = self.authorization_handlers[response_type]
                await handler.validate_authorization_request(client, request)
        except OAuthError:
            raise
        except Exception as e:
            logger.exception(
                f"Authorization request validation failed for client {client.client_id}"
            )
            raise maybe_wrap_error(e)
