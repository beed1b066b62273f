"""OAuth 2.0 client contract and optional client capabilities.

A client only has to provide its identity and redirect URIs. Extra behaviour
is opted into by implementing one of the capability protocols below; the
server probes for them at runtime with ``isinstance``.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Protocol, Sequence, runtime_checkable


@runtime_checkable
class Client(Protocol):
    @property
    def client_id(self) -> str: ...

    @property
    def secret(self) -> str:
        """The client secret, empty for public clients."""
        ...

    @property
    def is_confidential(self) -> bool:
        """Whether the client can keep its secret a secret.

        Public clients are native apps or single page apps, confidential
        clients run server side.
        """
        ...

    @property
    def redirect_uris(self) -> Sequence[str]: ...


@runtime_checkable
class ValidatesRedirectURI(Protocol):
    def valid_redirect_uri(self, redirect_uri: str) -> str | None:
        """Validate a requested redirect URI, which may be empty.

        Returns:
            The redirect URI to use (may differ from the input, an empty
            string means the input as-is), or None to reject it.
        """
        ...


@runtime_checkable
class ValidatesSecret(Protocol):
    def valid_secret(self, secret: str) -> bool: ...


@runtime_checkable
class AllowsGrantType(Protocol):
    def allows_grant_type(self, grant_type: str) -> bool: ...


@runtime_checkable
class AllowsResponseType(Protocol):
    def allows_response_type(self, response_types: Sequence[str]) -> bool:
        """Check the full set of requested response types at once."""
        ...


@dataclass(frozen=True)
class SimpleClient:
    """Plain client record with no optional capabilities."""

    client_id: str
    secret: str = ""
    redirect_uris: tuple[str, ...] = ()
    is_confidential: bool = True

    @classmethod
    def confidential(
        cls, client_id: str, secret: str, redirect_uris: Sequence[str]
    ) -> SimpleClient:
        return cls(client_id, secret, tuple(redirect_uris), True)

    @classmethod
    def public(cls, client_id: str, redirect_uris: Sequence[str]) -> SimpleClient:
        return cls(client_id, "", tuple(redirect_uris), False)


def client_secret_matches(client: Client, secret: str) -> bool:
    """Check a presented secret, preferring the client's own validation."""
    if isinstance(client, ValidatesSecret):
        return client.valid_secret(secret)

    if not client.secret:
        return False

    return secrets.compare_digest(client.secret.encode("utf-8"), secret.encode("utf-8"))


def client_allows_grant_type(client: Client, grant_type: str) -> bool:
    """Check a grant type against the client's allow-list, if it has one."""
    if isinstance(client, AllowsGrantType):
        return client.allows_grant_type(grant_type)

    return True


def client_allows_response_type(client: Client, response_types: Sequence[str]) -> bool:
    """Check response types against the client's allow-list, if it has one."""
    if isinstance(client, AllowsResponseType):
        return client.allows_response_type(response_types)

    return True
