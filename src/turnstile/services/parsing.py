"""Parsing of incoming authorization and token HTTP requests.

Turns Starlette requests into ``AuthorizationRequest`` and
``AccessTokenRequest`` records, failing with ``invalid_request`` when the
request cannot be understood.
"""

from __future__ import annotations

import base64
import binascii
import logging

from starlette.requests import Request

from turnstile.models.errors import (
    InvalidRequestMethodError,
    MissingClientIDError,
    MissingGrantTypeError,
    MissingResponseTypeError,
    QueryStringParseError,
    RequestBodyParseError,
    invalid_request,
    missing_request_parameter,
)
from turnstile.models.requests import AccessTokenRequest, AuthorizationRequest
from turnstile.primitives.params import (
    PARAM_CLIENT_ID,
    PARAM_CLIENT_SECRET,
    PARAM_CODE_CHALLENGE,
    PARAM_CODE_CHALLENGE_METHOD,
    PARAM_GRANT_TYPE,
    PARAM_REDIRECT_URI,
    PARAM_RESPONSE_TYPE,
    PARAM_SCOPE,
    PARAM_STATE,
    first_value,
    parse_query_string,
    parse_space_separated,
)
from turnstile.primitives.pkce import CODE_CHALLENGE_METHOD_PLAIN

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def parse_authorization_request(request: Request) -> AuthorizationRequest:
    """Parse an authorization request (RFC 6749 Section 4.1.1).

    Args:
        request: Incoming GET request to the authorization endpoint

    Returns:
        AuthorizationRequest: Parsed request, without a final redirect URI

    Raises:
        OAuthError: ``invalid_request`` if the request is malformed or misses
            ``response_type`` or ``client_id``
    """
    if request.method != "GET":
        raise invalid_request(
            "authorization requests should be GET requests",
            InvalidRequestMethodError(request.method),
        )

    try:
        query = parse_query_string(request.url.query)
    except ValueError as e:
        cause = QueryStringParseError(f"could not parse query string: {e}")
        cause.__cause__ = e
        raise invalid_request("could not parse query string", cause)

    response_types = parse_space_separated(first_value(query, PARAM_RESPONSE_TYPE))
    if not response_types:
        raise missing_request_parameter(
            PARAM_RESPONSE_TYPE,
            MissingResponseTypeError("response_type was not included in the request"),
        )

    client_id = first_value(query, PARAM_CLIENT_ID)
    if not client_id:
        raise missing_request_parameter(
            PARAM_CLIENT_ID,
            MissingClientIDError("client_id was not included in the request"),
        )

    code_challenge = first_value(query, PARAM_CODE_CHALLENGE)
    code_challenge_method = first_value(query, PARAM_CODE_CHALLENGE_METHOD)
    # RFC 7636 Section 4.3: defaults to "plain" if not present in the request
    if code_challenge and not code_challenge_method:
        code_challenge_method = CODE_CHALLENGE_METHOD_PLAIN

    logger.debug(
        f"Parsed authorization request for client {client_id} "
        f"with response_type={' '.join(response_types)!r}"
    )

    return AuthorizationRequest(
        client_id=client_id,
        redirect_uri=first_value(query, PARAM_REDIRECT_URI),
        state=first_value(query, PARAM_STATE),
        code_challenge=code_challenge,
        code_challenge_method=code_challenge_method,
        scope=parse_space_separated(first_value(query, PARAM_SCOPE)),
        response_type=response_types,
        query=query,
    )


async def parse_access_token_request(request: Request) -> AccessTokenRequest:
    """Parse an access token request (RFC 6749 Section 4.1.3).

    Client credentials come from HTTP Basic authentication when present and
    otherwise from the ``client_id`` / ``client_secret`` body parameters.

    Raises:
        OAuthError: ``invalid_request`` if the request is not a POST, the body
            cannot be decoded, or ``grant_type`` is missing
    """
    if request.method != "POST":
        raise invalid_request(
            "token requests must be POST requests",
            InvalidRequestMethodError(request.method),
        )

    try:
        form = await _read_form(request)
    except ValueError as e:
        cause = RequestBodyParseError(f"could not parse request body: {e}")
        cause.__cause__ = e
        raise invalid_request("could not parse request body", cause)

    grant_type = first_value(form, PARAM_GRANT_TYPE)
    if not grant_type:
        raise missing_request_parameter(
            PARAM_GRANT_TYPE,
            MissingGrantTypeError("missing grant_type in request body"),
        )

    credentials = parse_basic_auth(request.headers.get("Authorization", ""))
    if credentials is not None:
        client_id, client_secret = credentials
    else:
        client_id = first_value(form, PARAM_CLIENT_ID)
        client_secret = first_value(form, PARAM_CLIENT_SECRET)

    logger.debug(
        f"Parsed token request: grant_type={grant_type}, client_id={client_id}, "
        f"basic_auth={credentials is not None}"
    )

    return AccessTokenRequest(
        grant_type=grant_type,
        client_id=client_id,
        client_secret=client_secret,
        used_basic_auth=credentials is not None,
        form=form,
    )


def parse_basic_auth(header: str) -> tuple[str, str] | None:
    """Extract ``(client_id, client_secret)`` from a Basic auth header.

    Returns None if the header is absent or is not valid Basic credentials.
    """
    scheme, _, encoded = header.partition(" ")
    if scheme.lower() != "basic" or not encoded:
        return None

    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None

    username, separator, password = decoded.partition(":")
    if not separator:
        return None

    return username, password


async def _read_form(request: Request) -> dict[str, list[str]]:
    content_type = request.headers.get("Content-Type", "")
    media_type = content_type.split(";", 1)[0].strip().lower()
    if media_type != FORM_CONTENT_TYPE:
        return {}

    body = await request.body()
    return parse_query_string(body.decode("utf-8"))
