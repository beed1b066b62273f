"""PKCE (Proof Key for Code Exchange) code challenge verification.

Implements the server side of RFC 7636: a code challenge and method arrive
with the authorization request and are stored alongside the authorization
code. When the code is redeemed the client sends a code verifier, which is
checked against the stored challenge using the stored method.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from typing import Protocol, runtime_checkable

from turnstile.models.errors import UnsupportedCodeChallengeMethodError

CODE_CHALLENGE_METHOD_PLAIN = "plain"
CODE_CHALLENGE_METHOD_S256 = "S256"


@runtime_checkable
class PKCEVerifier(Protocol):
    """Verifies code verifiers for one or more challenge methods."""

    def challenge_methods(self) -> list[str]: ...

    def verify_code_challenge(self, method: str, challenge: str, verifier: str) -> bool:
        """Check ``verifier`` against ``challenge``.

        Returns:
            True if the verifier matches the challenge

        Raises:
            UnsupportedCodeChallengeMethodError: If ``method`` is not supported
        """
        ...


def constant_time_equals(a: str, b: str) -> bool:
    """Compare two strings without an early exit on the first mismatch."""
    return secrets.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def s256_challenge(verifier: str) -> str:
    """BASE64URL-ENCODE(SHA256(ASCII(code_verifier))) without padding."""
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


class PlainPKCE:
    """The ``plain`` method: the verifier must equal the challenge."""

    def challenge_methods(self) -> list[str]:
        return [CODE_CHALLENGE_METHOD_PLAIN]

    def verify_code_challenge(self, method: str, challenge: str, verifier: str) -> bool:
        if method != CODE_CHALLENGE_METHOD_PLAIN:
            raise UnsupportedCodeChallengeMethodError(method)

        return constant_time_equals(verifier, challenge)


class S256PKCE:
    """The ``S256`` method: the challenge is the hashed verifier."""

    def challenge_methods(self) -> list[str]:
        return [CODE_CHALLENGE_METHOD_S256]

    def verify_code_challenge(self, method: str, challenge: str, verifier: str) -> bool:
        if method != CODE_CHALLENGE_METHOD_S256:
            raise UnsupportedCodeChallengeMethodError(method)

        return constant_time_equals(s256_challenge(verifier), challenge)


class CompositePKCE:
    """Dispatches verification to a verifier registered per method name.

    Verifiers are registered in order and a later verifier claiming the same
    method replaces the earlier one.
    """

    def __init__(self, *verifiers: PKCEVerifier):
        self._methods: dict[str, PKCEVerifier] = {}
        for verifier in verifiers:
            self.register(verifier)

    def register(self, verifier: PKCEVerifier) -> None:
        for method in verifier.challenge_methods():
            self._methods[method] = verifier

    def challenge_methods(self) -> list[str]:
        return list(self._methods.keys())

    def verify_code_challenge(self, method: str, challenge: str, verifier: str) -> bool:
        try:
            delegate = self._methods[method]
        except KeyError:
            raise UnsupportedCodeChallengeMethodError(method) from None

        return delegate.verify_code_challenge(method, challenge, verifier)


def default_pkce(*extra: PKCEVerifier) -> CompositePKCE:
    """Build a verifier supporting ``plain``, ``S256`` and any ``extra`` methods."""
    return CompositePKCE(PlainPKCE(), S256PKCE(), *extra)
