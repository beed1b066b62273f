"""Authorization code response type with PKCE (RFC 6749 4.1, RFC 7636).

Validates the PKCE parameters of ``response_type=code`` requests and checks
code verifiers when an authorization code is redeemed. Issuing and storing
codes is left to the grant that owns the code storage.
"""

from __future__ import annotations

import logging
import re

from turnstile.models.clients import Client
from turnstile.models.errors import (
    UnsupportedCodeChallengeMethodError,
    invalid_grant,
    invalid_request,
    missing_request_parameter,
)
from turnstile.models.requests import AuthorizationRequest
from turnstile.primitives.params import PARAM_CODE_CHALLENGE, PARAM_CODE_VERIFIER
from turnstile.primitives.pkce import PKCEVerifier, default_pkce

logger = logging.getLogger(__name__)

RESPONSE_TYPE_CODE = "code"

# RFC 7636 Section 4.1: 43-128 characters of [A-Z] / [a-z] / [0-9] / "-" / "." / "_" / "~"
_PKCE_VALUE = re.compile(r"^[A-Za-z0-9\-._~]{43,128}$")


class CodeResponseHandler:
    """Handler for the ``code`` response type.

    Args:
        pkce: Verifier deciding which challenge methods are supported
        require_pkce: Reject requests without a code challenge
        require_pkce_for_public_clients: Reject public client requests
            without a code challenge
    """

    response_type = RESPONSE_TYPE_CODE

    def __init__(
        self,
        pkce: PKCEVerifier | None = None,
        require_pkce: bool = False,
        require_pkce_for_public_clients: bool = False,
    ):
        self.pkce = pkce if pkce is not None else default_pkce()
        self.require_pkce = require_pkce
        self.require_pkce_for_public_clients = require_pkce_for_public_clients

    async def validate_authorization_request(
        self, client: Client, request: AuthorizationRequest
    ) -> None:
        if not request.code_challenge:
            if self._pkce_required(client):
                raise missing_request_parameter(PARAM_CODE_CHALLENGE)
            return

        method = request.code_challenge_method
        if method not in self.pkce.challenge_methods():
            logger.warning(
                f"Client {client.client_id} requested unsupported code challenge "
                f"method {method!r}"
            )
            raise invalid_request(
                f"code challenge method {method} is not supported",
                UnsupportedCodeChallengeMethodError(method),
            )

        if not _PKCE_VALUE.match(request.code_challenge):
            raise invalid_request(
                "code_challenge must be 43-128 characters of "
                "[A-Z] / [a-z] / [0-9] / '-' / '.' / '_' / '~'"
            )

    def verify_code_verifier(self, challenge: str, method: str, verifier: str) -> None:
        """Check a code verifier presented when redeeming an authorization code.

        Args:
            challenge: Code challenge stored with the authorization code
            method: Code challenge method stored with the authorization code
            verifier: ``code_verifier`` from the token request

        Raises:
            OAuthError: ``invalid_request`` if the verifier is missing or the
                method unsupported, ``invalid_grant`` if it does not match
        """
        if not challenge:
            # Code was issued without PKCE
            return

        if not verifier:
            raise missing_request_parameter(PARAM_CODE_VERIFIER)

        try:
            verified = self.pkce.verify_code_challenge(method, challenge, verifier)
        except UnsupportedCodeChallengeMethodError as e:
            raise invalid_request(f"code challenge method {method} is not supported", e)

        if not verified:
            raise invalid_grant("code_verifier does not match the code challenge")

    def _pkce_required(self, client: Client) -> bool:
        if self.require_pkce:
            return True
        return self.require_pkce_for_public_clients and not client.is_confidential
