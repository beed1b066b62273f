"""Scope validation policies.

Scopes are not entities here: a validator is the extension point that
decides which requested scope identifiers are acceptable.
"""

from __future__ import annotations

from typing import Iterable, Protocol, Sequence, runtime_checkable

from turnstile.models.errors import invalid_scope


@runtime_checkable
class ScopeValidator(Protocol):
    def validate_scopes(self, scopes: Sequence[str]) -> None:
        """Check the requested scopes.

        Raises:
            OAuthError: ``invalid_scope`` if any scope is not acceptable. Any
                other exception is reported to the client as ``server_error``.
        """
        ...


class AllowAllScopes:
    """Accepts every requested scope."""

    def validate_scopes(self, scopes: Sequence[str]) -> None:
        return None


class AllowListScopes:
    """Accepts only scopes from a fixed set."""

    def __init__(self, scopes: Iterable[str]):
        self.scopes = frozenset(scopes)

    def validate_scopes(self, scopes: Sequence[str]) -> None:
        rejected = [scope for scope in scopes if scope not in self.scopes]
        if rejected:
            raise invalid_scope(rejected)


def allow_all_scopes() -> AllowAllScopes:
    return AllowAllScopes()


def allow_scopes(*scopes: str) -> AllowListScopes:
    return AllowListScopes(scopes)
