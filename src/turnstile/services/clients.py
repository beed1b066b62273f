"""Client lookup through a pluggable client repository."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Protocol, runtime_checkable

from turnstile.models.clients import Client
from turnstile.models.errors import (
    ClientNotFoundError,
    OAuthError,
    invalid_client,
    maybe_wrap_error,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class ClientRepository(Protocol):
    """Storage backend for OAuth clients."""

    async def get(self, client_id: str) -> Client | None:
        """Fetch a client by identifier.

        Returns None if no such client exists. Any exception raised here is
        reported to the caller as ``server_error``.
        """
        ...


async def get_client(clients: ClientRepository, client_id: str) -> Client:
    """Fetch a client for a request, failing with an ``OAuthError``.

    Raises:
        OAuthError: ``server_error`` wrapping a repository failure, or
            ``invalid_client`` if the client does not exist
    """
    try:
        client = await clients.get(client_id)
    except OAuthError:
        raise
    except Exception as e:
        logger.exception(f"Client repository failed to load client {client_id}")
        raise maybe_wrap_error(e)

    if client is None:
        logger.debug(f"Client {client_id} not found")
        raise invalid_client(
            f"client {client_id} not found",
            ClientNotFoundError(client_id),
        )

    return client


class _ReadWriteLock:
    """Many concurrent readers or one exclusive writer."""

    def __init__(self) -> None:
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._condition:
            self._readers += 1
        try:
            yield
        finally:
            with self._condition:
                self._readers -= 1
                if self._readers == 0:
                    self._condition.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._condition:
            self._condition.wait_for(lambda: self._readers == 0)
            yield


class InMemoryClientRepository:
    """Dictionary backed client repository, mainly for tests and examples.

    Errors registered with ``add_error`` are raised by ``get`` for the
    matching client identifier.

    The store is guarded by a thread-level reader/writer lock, so ``get``
    blocks the event loop while a writer on another thread holds it.
    Critical sections are single dictionary operations; production
    deployments should supply their own async ``ClientRepository``.
    """

    def __init__(self) -> None:
        self._lock = _ReadWriteLock()
        self._clients: dict[str, Client] = {}
        self._errors: dict[str, Exception] = {}

    async def get(self, client_id: str) -> Client | None:
        with self._lock.read():
            client = self._clients.get(client_id)
            error = self._errors.get(client_id)

        if error is not None:
            raise error

        return client

    def add(self, client: Client) -> None:
        with self._lock.write():
            self._clients[client.client_id] = client

    def remove(self, client_id: str) -> None:
        with self._lock.write():
            self._clients.pop(client_id, None)

    def add_error(self, client_id: str, error: Exception) -> None:
        with self._lock.write():
            self._errors[client_id] = error

    def remove_error(self, client_id: str) -> None:
        with self._lock.write():
            self._errors.pop(client_id, None)
