"""HTTP responses for authorization and token endpoint results.

Token endpoint errors are JSON bodies (RFC 6749 Section 5.2). Authorization
endpoint errors are redirected to the resolved redirect URI when one exists
(Section 4.1.2.1) and rendered directly otherwise.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response
from starlette.routing import Route

from turnstile.models.errors import OAuthError
from turnstile.models.requests import AuthorizationRequest
from turnstile.models.tokens import AccessTokenResponse
from turnstile.primitives.params import PARAM_STATE

if TYPE_CHECKING:
    from turnstile.authorization_server import AuthorizationServer

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store",
    "Pragma": "no-cache",
}


def error_response(error: OAuthError) -> JSONResponse:
    """JSON error response, 400 unless the error carries a status hint."""
    return JSONResponse(
        error.to_dict(),
        status_code=error.status_code or 400,
        headers=NO_CACHE_HEADERS,
    )


def access_token_response(token: AccessTokenResponse) -> JSONResponse:
    return JSONResponse(token.to_dict(), status_code=200, headers=NO_CACHE_HEADERS)


def error_redirect_url(request: AuthorizationRequest, error: OAuthError) -> str:
    """Build the redirect URL carrying an authorization error.

    Raises:
        ValueError: If the request has no resolved redirect URI
    """
    if not request.is_redirectable():
        raise ValueError("cannot redirect an error without a resolved redirect URI")

    params = error.to_dict()
    if request.state:
        params[PARAM_STATE] = request.state

    parts = urlsplit(request.final_redirect_uri)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend(params.items())

    return urlunsplit(parts._replace(query=urlencode(query)))


def authorization_error_response(
    request: AuthorizationRequest | None, error: OAuthError
) -> Response:
    """Redirect the error to the client if trusted, otherwise show it."""
    if request is not None and request.is_redirectable():
        logger.debug(f"Redirecting {error.error_type.value} to {request.final_redirect_uri}")
        return RedirectResponse(error_redirect_url(request, error), status_code=302)

    return error_response(error)


def token_route(server: AuthorizationServer, path: str = "/token") -> Route:
    """Starlette route serving the token endpoint of ``server``."""

    async def token_endpoint(request: Request) -> Response:
        token, error = await server.token(request)
        if error is not None:
            return error_response(error)
        return access_token_response(token)

    return Route(path, token_endpoint, methods=["POST"])
