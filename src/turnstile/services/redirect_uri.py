"""Redirect URI resolution for authorization requests.

Determines the single redirect URI a response may be sent to, or fails
closed. Failures from here must be shown to the resource owner directly:
until resolution succeeds the destination is not trusted.
"""

from __future__ import annotations

import logging

from turnstile.models.clients import Client, ValidatesRedirectURI
from turnstile.models.errors import (
    ClientHasNoRedirectURIsError,
    ClientRequiresRedirectURIError,
    InvalidRedirectURIError,
    OAuthError,
    invalid_client,
    missing_request_parameter,
)
from turnstile.primitives.params import PARAM_REDIRECT_URI

logger = logging.getLogger(__name__)


def resolve_redirect_uri(client: Client, redirect_uri: str) -> str:
    """Resolve the final redirect URI for a client.

    Clients implementing ``ValidatesRedirectURI`` decide on their own,
    including what an empty ``redirect_uri`` means, but must end up with a
    non-empty URI. Everyone else gets
    ``default_redirect_uri_resolution``.

    Args:
        client: The client making the authorization request
        redirect_uri: The redirect URI from the request, possibly empty

    Returns:
        The redirect URI responses must be delivered to

    Raises:
        OAuthError: If no trusted redirect URI can be determined
    """
    if isinstance(client, ValidatesRedirectURI):
        final_redirect_uri = client.valid_redirect_uri(redirect_uri)
        if final_redirect_uri is None:
            logger.warning(
                f"Client {client.client_id} rejected redirect URI {redirect_uri!r}"
            )
            raise _invalid_redirect_uri(redirect_uri)

        final_redirect_uri = final_redirect_uri or redirect_uri
        if not final_redirect_uri:
            logger.warning(
                f"Client {client.client_id} accepted an empty redirect URI"
            )
            raise _invalid_redirect_uri(redirect_uri)

        return final_redirect_uri

    return default_redirect_uri_resolution(client, redirect_uri)


def default_redirect_uri_resolution(client: Client, redirect_uri: str) -> str:
    """Resolve against the client's registered redirect URIs.

    RFC 6749 Section 3.1.2.2 says servers SHOULD require registration; here
    at least one registered redirect URI is required. Requested URIs are
    compared by simple string comparison (Section 3.1.2.3); partial matching
    is not supported.
    """
    registered = list(client.redirect_uris)

    if not registered:
        logger.warning(f"Client {client.client_id} has no registered redirect URIs")
        raise invalid_client(
            f"client {client.client_id} does not have any registered redirect URIs",
            ClientHasNoRedirectURIsError(client.client_id),
        )

    if not redirect_uri:
        if len(registered) > 1:
            raise missing_request_parameter(
                PARAM_REDIRECT_URI,
                ClientRequiresRedirectURIError(
                    "the client has more than one redirect URI and redirect_uri "
                    "must be included in the request"
                ),
            )

        return registered[0]

    if redirect_uri in registered:
        return redirect_uri

    logger.warning(
        f"Redirect URI {redirect_uri!r} is not registered for client {client.client_id}"
    )
    raise _invalid_redirect_uri(redirect_uri)


def _invalid_redirect_uri(redirect_uri: str) -> OAuthError:
    return invalid_client(
        f"{redirect_uri} is not a valid {PARAM_REDIRECT_URI}",
        InvalidRedirectURIError(redirect_uri),
    )
