"""Parsed authorization and access token requests.

Both request models are immutable records built once per incoming HTTP
request. The resolved redirect URI of an authorization request is added with
``dataclasses.replace`` after redirect URI resolution succeeds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from turnstile.models.errors import (
    MissingClientIDError,
    MissingClientSecretError,
    invalid_client,
    missing_request_parameter,
)
from turnstile.primitives.params import QueryValues, first_value


@dataclass(frozen=True)
class AuthorizationRequest:
    """A parsed authorization request (RFC 6749 Section 4.1.1).

    ``final_redirect_uri`` is only ever set from a successful redirect URI
    resolution and is the only URI responses or errors may be sent to.
    """

    client_id: str
    redirect_uri: str = ""
    final_redirect_uri: str = ""
    state: str = ""
    code_challenge: str = ""  # RFC 7636
    code_challenge_method: str = ""
    scope: tuple[str, ...] = ()
    response_type: tuple[str, ...] = ()

    # Raw query values for extension handlers
    query: QueryValues = field(default_factory=dict, compare=False, repr=False)

    def is_redirectable(self) -> bool:
        """Check if errors for this request may be delivered via redirect."""
        return bool(self.final_redirect_uri)

    def param(self, name: str) -> str:
        """Return a raw query parameter, or an empty string if absent."""
        return first_value(self.query, name)


@dataclass(frozen=True)
class AccessTokenRequest:
    """A parsed access token request (RFC 6749 Section 4.1.3).

    Client credentials come either from HTTP Basic authentication or from the
    request body, never a mix of both.
    """

    grant_type: str
    client_id: str = ""
    client_secret: str = ""
    used_basic_auth: bool = False
    form: Mapping[str, list[str]] = field(
        default_factory=dict, compare=False, repr=False
    )

    def param(self, name: str) -> str:
        """Return a body parameter, or an empty string if absent."""
        return first_value(self.form, name)

    def require_param(self, name: str) -> str:
        """Return a body parameter.

        Raises:
            OAuthError: ``invalid_request`` naming the missing parameter
        """
        value = self.param(name)
        if not value:
            raise missing_request_parameter(name)
        return value

    def require_client_id(self) -> str:
        if not self.client_id:
            cause = MissingClientIDError("client_id was not included in the request")
            raise invalid_client(str(cause), cause)
        return self.client_id

    def require_client_secret(self) -> str:
        if not self.client_secret:
            cause = MissingClientSecretError(
                "client_secret was not included in the request"
            )
            raise invalid_client(str(cause), cause)
        return self.client_secret
